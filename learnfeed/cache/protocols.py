"""Key-value cache interface."""

from typing import Protocol, runtime_checkable

from pydantic import JsonValue


@runtime_checkable
class KeyValueCache(Protocol):
    """Minimal cache contract used by every service.

    Values must be JSON-serializable. A miss and an expired entry are
    indistinguishable to callers.
    """

    def get(self, key: str) -> JsonValue | None:
        """Return the cached value or None."""
        ...

    def set(self, key: str, value: JsonValue, ttl_seconds: int) -> None:
        """Store a value with an explicit time-to-live."""
        ...

    def delete(self, key: str) -> None:
        """Remove a key if present."""
        ...
