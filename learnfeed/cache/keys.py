"""Deterministic cache keys and per-user key tracking."""

import threading
from datetime import date

import structlog

from learnfeed.cache.protocols import KeyValueCache


logger = structlog.get_logger()

ALL_SKILLS = "all"


def feed_key(user_id: str, limit: int, offset: int) -> str:
    """Key of one personalized feed page."""
    return f"personalized_feed:{user_id}:{limit}:{offset}"


def pack_key(user_id: str, day: date) -> str:
    """Key of a user's daily pack."""
    return f"session:pack:{user_id}:{day.isoformat()}"


def summary_key(paper_id: str) -> str:
    """Key of a cached paper summary."""
    return f"arxiv:summary:{paper_id}"


def feedback_key(user_id: str, day: date) -> str:
    """Key of a user's daily pack feedback list."""
    return f"feedback:{user_id}:{day.isoformat()}"


def recommendations_key(user_id: str, skill_area: str | None, limit: int) -> str:
    """Key of a cached recommendation list."""
    return f"learning:recommendations:{user_id}:{skill_area or ALL_SKILLS}:{limit}"


def insights_key(user_id: str) -> str:
    """Key of cached progress insights."""
    return f"learning:insights:{user_id}"


class KeyIndex:
    """Records which keys a service wrote for each user.

    The index itself lives in the cache under ``keyindex:<namespace>:<user>``
    so every process sharing the cache sees it. Invalidation deletes exactly
    the recorded keys, never a pattern.
    """

    def __init__(self, cache: KeyValueCache, namespace: str, ttl_seconds: int) -> None:
        """Initialize the index.

        Args:
            cache: Backing cache.
            namespace: Index namespace, e.g. ``feed``.
            ttl_seconds: Lifetime of the index entry; at least the longest
                TTL of the keys it tracks.
        """
        self._cache = cache
        self._namespace = namespace
        self._ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        self._log = logger.bind(component="cache", subcomponent="key_index")

    def _index_key(self, user_id: str) -> str:
        return f"keyindex:{self._namespace}:{user_id}"

    def _read(self, user_id: str) -> list[str]:
        raw = self._cache.get(self._index_key(user_id))
        if not isinstance(raw, list):
            return []
        return [k for k in raw if isinstance(k, str)]

    def tracked(self, user_id: str) -> list[str]:
        """Keys currently recorded for a user."""
        return self._read(user_id)

    def track(self, user_id: str, key: str) -> None:
        """Record that ``key`` was written for ``user_id``."""
        with self._lock:
            keys = self._read(user_id)
            if key in keys:
                return
            keys.append(key)
            self._cache.set(self._index_key(user_id), keys, self._ttl_seconds)

    def invalidate(self, user_id: str) -> int:
        """Delete every recorded key for a user.

        Args:
            user_id: User whose keys to drop.

        Returns:
            Number of keys deleted.
        """
        with self._lock:
            keys = self._read(user_id)
            for key in keys:
                self._cache.delete(key)
            self._cache.delete(self._index_key(user_id))
        self._log.debug(
            "cache_keys_invalidated",
            namespace=self._namespace,
            user_id=user_id,
            key_count=len(keys),
        )
        return len(keys)
