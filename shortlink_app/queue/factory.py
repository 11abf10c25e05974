"""
Factory for creating queue instances.
Simple, clean factory with singleton caching.
"""

from enum import Enum

import structlog

from .strategies import QueueStrategy, RedisStreamQueue, InMemoryQueue
from shortlink_app.config import settings


logger = structlog.get_logger()


class QueueBackend(Enum):
    """Available queue backends"""
    REDIS_STREAMS = "redis_streams"
    MEMORY = "memory"


class QueueFactory:
    """
    Simple factory for creating queue instances.

    Gets configuration from settings (not passed as parameters).
    """

    _instance: QueueStrategy = None  # Single cached instance

    @classmethod
    def create(cls, backend: QueueBackend) -> QueueStrategy:
        """
        Create or return cached queue instance.

        A Redis backend that cannot be reached at startup falls back to the
        in-memory queue, so redirects keep working.

        Args:
            backend: Type of queue backend (from enum)

        Returns:
            Singleton queue instance
        """
        if cls._instance is not None:
            return cls._instance

        if backend == QueueBackend.REDIS_STREAMS:
            import redis
            import redis.asyncio as aioredis

            try:
                # Blocking reachability check, only while the queue is first built
                with redis.from_url(
                    settings.redis_url,
                    socket_connect_timeout=2,
                    socket_timeout=2,
                ) as check_client:
                    check_client.ping()

                redis_client = aioredis.from_url(
                    settings.redis_url,
                    decode_responses=False,
                    socket_connect_timeout=2,
                    socket_timeout=2,
                )

                cls._instance = RedisStreamQueue(
                    redis_client,
                    settings.queue_consumer_group,
                    consumer_name=settings.queue_consumer_name,
                    publish_timeout=settings.queue_publish_timeout,
                )
                logger.info("Redis queue initialized", url=settings.redis_url)

            except Exception as e:
                logger.warning("Redis connection failed, using in-memory queue", error=str(e))
                cls._instance = InMemoryQueue(max_size=settings.queue_max_size)

        elif backend == QueueBackend.MEMORY:
            cls._instance = InMemoryQueue(max_size=settings.queue_max_size)
            logger.info("In-memory queue initialized", max_size=settings.queue_max_size)

        else:
            raise ValueError(f"Unknown queue backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
