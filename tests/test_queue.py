"""
Tests for click queue strategies and the drop policy.
"""
import asyncio
import socket
from unittest.mock import AsyncMock

import pytest

from shortlink_app.queue.factory import QueueBackend, QueueFactory
from shortlink_app.queue.models import ClickMessage
from shortlink_app.queue.strategies import InMemoryQueue, RedisStreamQueue


class TestInMemoryQueue:

    def test_fifo_batches(self):
        queue = InMemoryQueue()
        for code in ["a", "b", "c"]:
            asyncio.run(queue.publish("clicks", ClickMessage(code=code)))

        first = asyncio.run(queue.consume_batch("clicks", batch_size=2))
        second = asyncio.run(queue.consume_batch("clicks", batch_size=2))

        assert [m.code for m in first] == ["a", "b"]
        assert [m.code for m in second] == ["c"]

    def test_full_queue_drops_new_messages(self):
        queue = InMemoryQueue(max_size=2)

        results = [
            asyncio.run(queue.publish("clicks", ClickMessage(code=code)))
            for code in ["a", "b", "c"]
        ]

        assert results == [True, True, False]
        assert queue.dropped_count == 1
        assert asyncio.run(queue.get_queue_length("clicks")) == 2

    def test_queues_are_separate(self):
        queue = InMemoryQueue()
        asyncio.run(queue.publish("one", ClickMessage(code="a")))

        assert asyncio.run(queue.consume("two", batch_size=10)) == []


class SlowRedis:
    """Async client whose XADD hangs for a second and then fails"""

    async def xgroup_create(self, **kwargs):
        return True

    async def xadd(self, *args, **kwargs):
        await asyncio.sleep(1)
        raise ConnectionError("timed out")


def redis_client():
    client = AsyncMock()
    client.xreadgroup.return_value = []
    return client


def stream_entries(*entries):
    return [(b"clicks", [(entry_id, {b"data": payload}) for entry_id, payload in entries])]


class TestRedisStreamQueue:

    def test_publish_serializes_message(self):
        client = redis_client()
        queue = RedisStreamQueue(client, consumer_group="workers")

        assert asyncio.run(queue.publish("clicks", ClickMessage(code="abc123", platform="ios"))) is True

        stream, fields = client.xadd.call_args[0]
        assert stream == "clicks"
        assert '"code":"abc123"' in fields["data"]
        assert "message_id" not in fields["data"]

    def test_publish_failure_drops_message(self):
        """Publishing never raises into the redirect path"""
        client = redis_client()
        client.xadd.side_effect = ConnectionError("redis down")
        queue = RedisStreamQueue(client)

        assert asyncio.run(queue.publish("clicks", ClickMessage(code="abc123"))) is False

    def test_slow_redis_does_not_stall_event_loop(self):
        """Other coroutines keep running while a publish waits on Redis"""
        queue = RedisStreamQueue(SlowRedis(), publish_timeout=0.2)

        async def scenario():
            loop = asyncio.get_running_loop()
            done = asyncio.Event()
            gaps = []

            async def ticker():
                last = loop.time()
                while not done.is_set():
                    await asyncio.sleep(0.05)
                    now = loop.time()
                    gaps.append(now - last)
                    last = now

            ticks = asyncio.create_task(ticker())
            started = loop.time()
            published = await queue.publish("clicks", ClickMessage(code="abc123"))
            elapsed = loop.time() - started
            done.set()
            await ticks
            return published, elapsed, gaps

        published, elapsed, gaps = asyncio.run(scenario())

        assert published is False
        assert elapsed < 0.5
        assert gaps and max(gaps) < 0.5

    def test_consume_sets_message_ids(self):
        client = redis_client()
        payload = ClickMessage(code="abc123").model_dump_json().encode("utf-8")
        client.xreadgroup.side_effect = [[], stream_entries((b"1-0", payload))]
        queue = RedisStreamQueue(client)

        messages = asyncio.run(queue.consume("clicks", batch_size=10, block_time=None))

        assert [m.code for m in messages] == ["abc123"]
        assert messages[0].message_id == "1-0"

    def test_pending_entries_are_redelivered_first(self):
        """A restarted consumer finishes its unacknowledged entries before new ones"""
        client = redis_client()
        pending = ClickMessage(code="old111").model_dump_json().encode("utf-8")
        fresh = ClickMessage(code="new222").model_dump_json().encode("utf-8")
        client.xreadgroup.side_effect = [
            stream_entries((b"1-0", pending)),
            [(b"clicks", [])],
            stream_entries((b"2-0", fresh)),
        ]
        queue = RedisStreamQueue(client, consumer_name="worker-a")

        async def scenario():
            first = await queue.consume("clicks", batch_size=10, block_time=None)
            second = await queue.consume("clicks", batch_size=10, block_time=None)
            return first, second

        first, second = asyncio.run(scenario())

        assert [m.code for m in first] == ["old111"]
        assert [m.code for m in second] == ["new222"]
        start_ids = [c.kwargs["streams"]["clicks"] for c in client.xreadgroup.call_args_list]
        assert start_ids == ["0", "0", ">"]
        assert {c.kwargs["consumername"] for c in client.xreadgroup.call_args_list} == {"worker-a"}

    def test_unparseable_entries_are_acknowledged(self):
        client = redis_client()
        client.xreadgroup.side_effect = [[], stream_entries((b"3-0", b"not json"))]
        queue = RedisStreamQueue(client, consumer_group="workers")

        assert asyncio.run(queue.consume("clicks", batch_size=10, block_time=None)) == []
        client.xack.assert_awaited_once_with("clicks", "workers", "3-0")

    def test_consumer_name_defaults_to_hostname(self):
        queue = RedisStreamQueue(redis_client())

        assert queue.consumer_name == f"worker-{socket.gethostname()}"


class TestQueueFactory:

    @pytest.fixture(autouse=True)
    def reset_factory(self):
        QueueFactory.clear_instance()
        yield
        QueueFactory.clear_instance()

    def test_memory_backend_is_singleton(self):
        first = QueueFactory.create(QueueBackend.MEMORY)
        second = QueueFactory.create(QueueBackend.MEMORY)

        assert isinstance(first, InMemoryQueue)
        assert first is second
