"""
Queue strategies using Strategy Pattern.
Allows switching between different click dispatch backends (Redis Streams, In-Memory).

Drop policy: ``publish`` never raises. A message that cannot be enqueued
(backend error, or in-memory queue full) is logged and dropped, and
``publish`` returns False. The redirect has already been answered by then.
"""

import asyncio
import json
import socket
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Dict, List, Optional

import structlog

from .models import ClickMessage


logger = structlog.get_logger()


class QueueStrategy(ABC):
    """
    Abstract base class for queue strategies.

    This is the Strategy Pattern interface - allows multiple queue implementations
    without changing the route/worker code.
    """

    @abstractmethod
    async def publish(self, queue_name: str, message: ClickMessage) -> bool:
        """
        Publish a message to the queue.

        Args:
            queue_name: Name of the queue
            message: ClickMessage to publish

        Returns:
            True if enqueued, False if dropped
        """
        pass

    @abstractmethod
    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: Optional[int] = 1000
    ) -> List[ClickMessage]:
        """
        Consume messages from the queue.

        Args:
            queue_name: Name of the queue
            batch_size: Maximum number of messages to retrieve
            block_time: Time to wait for messages (milliseconds), None to return immediately

        Returns:
            List of ClickMessage objects
        """
        pass

    @abstractmethod
    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        """
        Acknowledge messages (mark as processed).

        Args:
            queue_name: Name of the queue
            message_ids: List of message IDs to acknowledge

        Returns:
            True if successful
        """
        pass

    @abstractmethod
    async def get_queue_length(self, queue_name: str) -> int:
        """Number of messages waiting in the queue"""
        pass

    async def consume_batch(
        self,
        queue_name: str,
        batch_size: int = 100,
        block_time: Optional[int] = 1000
    ) -> List[ClickMessage]:
        """Consume a batch of messages (alias for consume with larger default batch size)."""
        return await self.consume(queue_name, batch_size, block_time)


class RedisStreamQueue(QueueStrategy):
    """
    Redis Streams implementation for the click queue.

    Lets several API instances feed one or more standalone workers:
    1. Producer publishes messages using XADD
    2. Consumer reads messages using XREADGROUP
    3. Consumer acknowledges messages using XACK

    Expects an asyncio client (``redis.asyncio``), so a slow or unreachable
    Redis never holds up the event loop serving redirects. ``publish`` is
    additionally capped at ``publish_timeout`` seconds.

    Entries read but never acknowledged stay in the group's pending list
    under ``consumer_name``. The first ``consume`` on a stream re-reads that
    consumer's pending entries before asking for new ones, so a worker that
    restarts under the same name picks up what it had not finished.
    """

    def __init__(
        self,
        redis_client,
        consumer_group: str = "click_workers",
        consumer_name: Optional[str] = None,
        publish_timeout: Optional[float] = None,
    ):
        """
        Initialize Redis Streams queue.

        Args:
            redis_client: asyncio Redis client instance
            consumer_group: Name of consumer group for workers
            consumer_name: Stable name of this consumer within the group
            publish_timeout: Seconds a publish may take before the click is dropped
        """
        self.redis = redis_client
        self.consumer_group = consumer_group
        self.consumer_name = consumer_name or f"worker-{socket.gethostname()}"
        self.publish_timeout = publish_timeout
        self._initialized_streams = set()
        self._recovered_streams = set()

    async def _ensure_stream_exists(self, queue_name: str):
        """Create the stream and consumer group if they don't exist yet."""
        if queue_name in self._initialized_streams:
            return

        try:
            await self.redis.xgroup_create(
                name=queue_name,
                groupname=self.consumer_group,
                id='0',
                mkstream=True
            )
            logger.info("Created Redis stream", stream=queue_name)
        except Exception as e:
            # Group might already exist, that's OK
            if "BUSYGROUP" not in str(e):
                raise

        self._initialized_streams.add(queue_name)

    async def _publish(self, queue_name: str, message: ClickMessage):
        await self._ensure_stream_exists(queue_name)
        await self.redis.xadd(queue_name, {'data': message.model_dump_json()})

    async def publish(self, queue_name: str, message: ClickMessage) -> bool:
        try:
            await asyncio.wait_for(self._publish(queue_name, message), timeout=self.publish_timeout)
            return True

        except asyncio.TimeoutError:
            logger.warning(
                "Click dropped, Redis publish timed out",
                code=message.code,
                timeout=self.publish_timeout,
            )
            return False

        except Exception as e:
            logger.warning("Click dropped, Redis publish failed", code=message.code, error=str(e))
            return False

    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: Optional[int] = 1000
    ) -> List[ClickMessage]:
        """
        Read messages for this consumer group.

        Until this consumer's pending entries on the stream are exhausted,
        those are returned first. Messages stay pending until acknowledged.
        """
        recovering = queue_name not in self._recovered_streams
        try:
            await self._ensure_stream_exists(queue_name)

            # '0' re-reads this consumer's pending entries, '>' asks for new ones
            messages = await self.redis.xreadgroup(
                groupname=self.consumer_group,
                consumername=self.consumer_name,
                streams={queue_name: '0' if recovering else '>'},
                count=batch_size,
                block=None if recovering else block_time
            )

        except Exception as e:
            logger.error("Redis consume failed", stream=queue_name, error=str(e))
            return []

        if recovering and not any(entries for _stream, entries in messages or []):
            self._recovered_streams.add(queue_name)
            return await self.consume(queue_name, batch_size, block_time)

        if not messages:
            return []

        events = []
        unreadable = []
        for _stream_name, stream_messages in messages:
            for message_id, message_data in stream_messages:
                try:
                    data = json.loads(message_data[b'data'].decode('utf-8'))
                    event = ClickMessage(**data)
                    event.message_id = message_id.decode('utf-8')
                    events.append(event)
                except Exception as e:
                    logger.warning("Unparseable click message", message_id=str(message_id), error=str(e))
                    unreadable.append(message_id.decode('utf-8'))

        # Never processable; acknowledged so they are not redelivered
        if unreadable:
            await self.ack(queue_name, unreadable)

        return events

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        try:
            if not message_ids:
                return True

            await self.redis.xack(queue_name, self.consumer_group, *message_ids)
            return True

        except Exception as e:
            logger.error("Redis ack failed", stream=queue_name, error=str(e))
            return False

    async def get_queue_length(self, queue_name: str) -> int:
        """Approximate queue length"""
        try:
            info = await self.redis.xinfo_stream(queue_name)
            return info['length']
        except Exception:
            return 0


class InMemoryQueue(QueueStrategy):
    """
    Bounded in-memory queue using Python deque.

    Pros:
    - Simple (no external dependencies)
    - Fast (no network overhead)
    - Good for single-instance deployments, development and testing

    Cons:
    - Not persistent: pending clicks are lost if the process dies before the
      worker drains them
    - Not distributed (each process has its own queue)

    When ``max_size`` messages are waiting, new messages are dropped.
    """

    def __init__(self, max_size: int = 10000):
        self.max_size = max_size
        self._queues: Dict[str, Deque[ClickMessage]] = {}
        self.dropped_count = 0

    def _get_queue(self, queue_name: str) -> Deque[ClickMessage]:
        if queue_name not in self._queues:
            self._queues[queue_name] = deque()
        return self._queues[queue_name]

    async def publish(self, queue_name: str, message: ClickMessage) -> bool:
        queue = self._get_queue(queue_name)

        if len(queue) >= self.max_size:
            self.dropped_count += 1
            logger.warning(
                "Click dropped, in-memory queue full",
                code=message.code,
                max_size=self.max_size,
                dropped=self.dropped_count,
            )
            return False

        queue.append(message)
        return True

    async def consume(
        self,
        queue_name: str,
        batch_size: int = 1,
        block_time: Optional[int] = 1000
    ) -> List[ClickMessage]:
        """
        Pop up to ``batch_size`` messages.

        Note: block_time is ignored (no blocking in this simple implementation)
        """
        queue = self._get_queue(queue_name)
        messages = []

        while queue and len(messages) < batch_size:
            messages.append(queue.popleft())

        return messages

    async def ack(self, queue_name: str, message_ids: List[str]) -> bool:
        """Nothing to do: messages are removed on consume"""
        return True

    async def get_queue_length(self, queue_name: str) -> int:
        return len(self._get_queue(queue_name))
