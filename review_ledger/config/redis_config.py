"""Redis configuration for the redis-backed verification ledger."""

import redis
from typing import Optional
import logging
from .settings import settings

logger = logging.getLogger(__name__)


class RedisConfig:
    """Redis configuration and connection management."""

    def __init__(self, redis_url: Optional[str] = None):
        self.redis_url = redis_url or settings.REDIS_URL
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> redis.Redis:
        """Get Redis client connection."""
        if self._client is None:
            self._client = redis.from_url(
                self.redis_url,
                decode_responses=True,
                health_check_interval=30,
                socket_timeout=settings.LEDGER_IO_TIMEOUT,
            )
            # Test connection
            try:
                self._client.ping()
                logger.info("Redis connection established")
            except redis.ConnectionError as e:
                logger.error(f"Redis connection failed: {e}")
                raise
        return self._client


def get_redis_client(redis_url: Optional[str] = None) -> redis.Redis:
    """Build a connected client for the configured (or given) URL."""
    return RedisConfig(redis_url).client
