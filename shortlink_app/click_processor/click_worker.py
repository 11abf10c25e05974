"""
Click Worker

Consumes click messages published by the redirect route and makes them
durable: one click_events row plus one click_count increment per message.

The two writes are independent. Each gets ``max_retries`` extra attempts and
is then logged and dropped, so a lost increment with a kept event (or the
reverse) is possible but neither write is ever partial.

Runs either embedded in the API process (started/stopped by the app
lifespan, queue drained on shutdown) or standalone:

    python -m shortlink_app.click_processor.click_worker
"""

import asyncio
import signal
import sys
from typing import List, Optional

import structlog
from sqlalchemy.orm import sessionmaker

from shortlink_app.config import settings
from shortlink_app.database.connection import SessionLocal
from shortlink_app.exceptions import NotFoundError
from shortlink_app.queue.models import ClickMessage
from shortlink_app.queue.strategies import QueueStrategy
from shortlink_app.services.click_recorder import ClickRecorder
from shortlink_app.services.url_service import URLService


logger = structlog.get_logger()


class ClickWorker:
    """
    Queue consumer that records clicks and bumps counters.

    Features:
    - Batch consumption
    - Independent record / increment with bounded retries
    - drain() to flush everything pending (used on shutdown and in tests)
    """

    def __init__(
        self,
        queue: QueueStrategy,
        session_factory: sessionmaker = SessionLocal,
        queue_name: str = "click_events",
        batch_size: int = 100,
        poll_interval: float = 1.0,
        max_retries: int = 0
    ):
        """
        Initialize worker with dependencies.

        Args:
            queue: Queue strategy for consuming messages
            session_factory: Factory for creating database sessions
            queue_name: Queue to consume from
            batch_size: Messages per consume call
            poll_interval: Seconds to sleep when the queue is empty
            max_retries: Extra attempts per write before the click is dropped
        """
        self.queue = queue
        self.session_factory = session_factory
        self.queue_name = queue_name
        self.batch_size = batch_size
        self.poll_interval = poll_interval
        self.max_retries = max_retries
        self.running = False
        self.processed_count = 0
        self.dropped_events = 0
        self.dropped_increments = 0

    async def start(self):
        """Consume until stop() is called"""
        self.running = True
        logger.info(
            "Click worker started",
            queue=self.queue_name,
            batch_size=self.batch_size,
            max_retries=self.max_retries,
        )

        while self.running:
            try:
                processed = await self.process_pending(block_time=None)
                if not processed:
                    await asyncio.sleep(self.poll_interval)

            except asyncio.CancelledError:
                logger.info("Click worker task cancelled")
                break
            except Exception as e:
                logger.error("Click worker loop error", error=str(e))
                await asyncio.sleep(self.poll_interval)

        logger.info("Click worker stopped", processed=self.processed_count)

    def stop(self):
        self.running = False

    async def process_pending(self, block_time: Optional[int] = None) -> int:
        """Consume and process one batch. Returns the number of messages handled."""
        messages = await self.queue.consume_batch(
            queue_name=self.queue_name,
            batch_size=self.batch_size,
            block_time=block_time
        )
        if not messages:
            return 0

        await self.process_batch(messages)
        return len(messages)

    async def drain(self) -> int:
        """Process batches until the queue is empty. Returns the total handled."""
        total = 0
        while True:
            processed = await self.process_pending(block_time=None)
            if not processed:
                break
            total += processed

        if total:
            logger.info("Click queue drained", processed=total)
        return total

    async def process_batch(self, messages: List[ClickMessage]):
        """
        Record and count each message, then acknowledge the batch.

        Failures are logged and swallowed per message; the batch is always
        acknowledged, since retries already happened here.
        """
        for message in messages:
            await asyncio.to_thread(self.handle, message)

        message_ids = [msg.message_id for msg in messages if msg.message_id]
        if message_ids:
            await self.queue.ack(self.queue_name, message_ids)

        self.processed_count += len(messages)

    def handle(self, message: ClickMessage) -> None:
        """Both durability writes for one click (blocking)"""
        if not self._attempt("record", message, self._record):
            self.dropped_events += 1
        if not self._attempt("increment", message, self._increment):
            self.dropped_increments += 1

    def _attempt(self, action: str, message: ClickMessage, operation) -> bool:
        for attempt in range(1, self.max_retries + 2):
            try:
                operation(message)
                return True
            except NotFoundError:
                # URL vanished; the event row is still kept by _record
                logger.info("Click for unknown code", code=message.code, action=action)
                return False
            except Exception as e:
                logger.warning(
                    "Click write failed",
                    action=action,
                    code=message.code,
                    attempt=attempt,
                    error=str(e),
                )

        logger.error("Click write dropped", action=action, code=message.code)
        return False

    def _record(self, message: ClickMessage) -> None:
        db = self.session_factory()
        try:
            ClickRecorder(db).record(message)
        finally:
            db.close()

    def _increment(self, message: ClickMessage) -> None:
        db = self.session_factory()
        try:
            URLService(db).increment_clicks(message.code)
        finally:
            db.close()


async def main():
    """
    Standalone worker entry point.

    Usage:
        python -m shortlink_app.click_processor.click_worker
    """
    from shortlink_app.logging_config import configure_logging
    from shortlink_app.queue.factory import QueueFactory, QueueBackend

    configure_logging(settings.log_level, settings.log_json)
    logger.info(
        "Starting click worker",
        environment=settings.environment,
        queue_backend=settings.queue_backend,
    )

    queue = QueueFactory.create(QueueBackend(settings.queue_backend))
    worker = ClickWorker(
        queue=queue,
        queue_name=settings.queue_name,
        batch_size=settings.queue_batch_size,
        poll_interval=settings.queue_worker_interval,
        max_retries=settings.click_record_retries,
    )

    def _signal_handler(signum, frame):
        logger.info("Received signal, shutting down", signum=signum)
        worker.stop()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        await worker.start()
        await worker.drain()
    except Exception as e:
        logger.error("Click worker crashed", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
