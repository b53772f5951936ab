"""Key-value cache backends and key helpers."""

from learnfeed.cache.keys import (
    KeyIndex,
    feed_key,
    feedback_key,
    insights_key,
    pack_key,
    recommendations_key,
    summary_key,
)
from learnfeed.cache.memory import InMemoryCache
from learnfeed.cache.protocols import KeyValueCache
from learnfeed.cache.redis_cache import RedisCache


__all__ = [
    "InMemoryCache",
    "KeyIndex",
    "KeyValueCache",
    "RedisCache",
    "feed_key",
    "feedback_key",
    "insights_key",
    "pack_key",
    "recommendations_key",
    "summary_key",
]
