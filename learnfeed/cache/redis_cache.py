"""Redis-backed cache.

Redis failures are logged and treated as misses so a cache outage degrades
to recomputation instead of failing requests.
"""

import json

import redis
import structlog
from pydantic import JsonValue
from redis.exceptions import RedisError


logger = structlog.get_logger()


class RedisCache:
    """Cache over a ``redis.Redis`` client storing JSON strings."""

    def __init__(self, client: redis.Redis) -> None:
        """Initialize with a client created with ``decode_responses=True``.

        Args:
            client: Redis client.
        """
        self._client = client
        self._log = logger.bind(component="cache", subcomponent="redis")

    @classmethod
    def from_url(cls, url: str) -> "RedisCache":
        """Create a cache from a Redis URL.

        Args:
            url: Connection URL such as ``redis://localhost:6379/0``.

        Returns:
            RedisCache using a pooled client.
        """
        client = redis.Redis.from_url(
            url,
            socket_timeout=5,
            socket_connect_timeout=5,
            retry_on_timeout=True,
            decode_responses=True,
        )
        return cls(client)

    def get(self, key: str) -> JsonValue | None:
        """Return the cached value or None on miss or Redis error."""
        try:
            cached = self._client.get(key)
        except RedisError as e:
            self._log.warning("cache_read_failed", key=key, error=str(e))
            return None
        if cached is None:
            return None
        try:
            value: JsonValue = json.loads(cached)
        except json.JSONDecodeError:
            self._log.warning("cache_value_corrupt", key=key)
            return None
        return value

    def set(self, key: str, value: JsonValue, ttl_seconds: int) -> None:
        """Store a value with expiry; errors are logged."""
        try:
            self._client.setex(key, ttl_seconds, json.dumps(value))
        except RedisError as e:
            self._log.warning("cache_write_failed", key=key, error=str(e))

    def delete(self, key: str) -> None:
        """Delete a key; errors are logged."""
        try:
            self._client.delete(key)
        except RedisError as e:
            self._log.warning("cache_delete_failed", key=key, error=str(e))
