"""Thread-safe in-process cache with TTL."""

import json
import threading
import time
from collections.abc import Callable

import structlog
from pydantic import JsonValue


logger = structlog.get_logger()


class InMemoryCache:
    """Dictionary-backed cache.

    Values are stored as JSON text so a read never returns an object shared
    with a writer, matching what a network cache would return.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the cache.

        Args:
            clock: Seconds source used for expiry.
        """
        self._clock = clock
        self._entries: dict[str, tuple[float, str]] = {}
        self._lock = threading.Lock()
        self._log = logger.bind(component="cache", subcomponent="memory")

    def get(self, key: str) -> JsonValue | None:
        """Return the cached value or None when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, payload = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self._log.debug("cache_entry_expired", key=key)
                return None
        value: JsonValue = json.loads(payload)
        return value

    def set(self, key: str, value: JsonValue, ttl_seconds: int) -> None:
        """Store a value for ``ttl_seconds``."""
        payload = json.dumps(value)
        with self._lock:
            self._entries[key] = (self._clock() + ttl_seconds, payload)

    def delete(self, key: str) -> None:
        """Remove a key if present."""
        with self._lock:
            self._entries.pop(key, None)

    def keys(self) -> list[str]:
        """Live keys, for diagnostics and tests."""
        now = self._clock()
        with self._lock:
            return sorted(k for k, (exp, _) in self._entries.items() if exp > now)
