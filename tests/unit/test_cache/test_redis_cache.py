"""Unit tests for the Redis cache adapter."""

import json
from unittest.mock import MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError

from learnfeed.cache.redis_cache import RedisCache


class TestRedisCache:
    """Tests for RedisCache with a mocked client."""

    def test_get_decodes_json(self) -> None:
        """Stored JSON strings are decoded."""
        client = MagicMock()
        client.get.return_value = json.dumps({"a": 1})

        assert RedisCache(client).get("k") == {"a": 1}
        client.get.assert_called_once_with("k")

    def test_get_miss(self) -> None:
        """A missing key returns None."""
        client = MagicMock()
        client.get.return_value = None

        assert RedisCache(client).get("k") is None

    def test_set_uses_expiry(self) -> None:
        """Values are written with SETEX."""
        client = MagicMock()

        RedisCache(client).set("k", [1, 2], ttl_seconds=30)

        client.setex.assert_called_once_with("k", 30, "[1, 2]")

    def test_errors_degrade_to_miss(self) -> None:
        """Connection failures never propagate."""
        client = MagicMock()
        client.get.side_effect = RedisConnectionError("down")
        client.setex.side_effect = RedisConnectionError("down")
        client.delete.side_effect = RedisConnectionError("down")
        cache = RedisCache(client)

        assert cache.get("k") is None
        cache.set("k", 1, ttl_seconds=10)
        cache.delete("k")

    def test_corrupt_value_is_miss(self) -> None:
        """Non-JSON values are treated as misses."""
        client = MagicMock()
        client.get.return_value = "{not json"

        assert RedisCache(client).get("k") is None
