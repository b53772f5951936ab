"""Metrics collection for daily pack composition."""

from dataclasses import dataclass
from typing import ClassVar


@dataclass
class PackMetrics:
    """Metrics for pack composition and enrichment.

    Attributes:
        packs_built: Packs composed from sources.
        cache_hits: Packs served from cache.
        padding_items: Synthetic padding tiles emitted.
        summary_cache_hits: Paper summaries served from cache.
        summary_calls: Summarization calls made.
        summary_failures: Calls that raised a provider error.
        summary_timeouts: Calls abandoned after the per-item timeout.
        feedback_recorded: Feedback entries appended.
    """

    packs_built: int = 0
    cache_hits: int = 0
    padding_items: int = 0
    summary_cache_hits: int = 0
    summary_calls: int = 0
    summary_failures: int = 0
    summary_timeouts: int = 0
    feedback_recorded: int = 0

    _instance: ClassVar["PackMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "PackMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def to_dict(self) -> dict[str, int]:
        """Export metrics as dictionary."""
        return {
            "packs_built": self.packs_built,
            "cache_hits": self.cache_hits,
            "padding_items": self.padding_items,
            "summary_cache_hits": self.summary_cache_hits,
            "summary_calls": self.summary_calls,
            "summary_failures": self.summary_failures,
            "summary_timeouts": self.summary_timeouts,
            "feedback_recorded": self.feedback_recorded,
        }
