"""Metrics collection for the ranker module."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class RankerMetrics:
    """Metrics for ranker operations.

    Attributes:
        items_in: Number of items scored in the last ranking.
        items_out: Number of items returned in the last ranking.
        deferred_total: Items pushed behind the accepted phase by diversity.
        score_values: All scores for percentile calculation.
        scoring_duration_ms: Time spent scoring.
        diversity_duration_ms: Time spent in the diversity filter.
        cache_hits: Feed cache hits.
        cache_misses: Feed cache misses.
    """

    items_in: int = 0
    items_out: int = 0
    deferred_total: int = 0
    score_values: list[float] = field(default_factory=list)
    scoring_duration_ms: float = 0.0
    diversity_duration_ms: float = 0.0
    cache_hits: int = 0
    cache_misses: int = 0

    _instance: ClassVar["RankerMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "RankerMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_ranking(self, items_in: int, items_out: int, deferred: int) -> None:
        """Record the counts of one ranking pass.

        Args:
            items_in: Number of input items.
            items_out: Number of output items.
            deferred: Items deferred by the diversity filter.
        """
        self.items_in = items_in
        self.items_out = items_out
        self.deferred_total += deferred

    def record_score(self, score: float) -> None:
        """Record a score for percentile calculation."""
        self.score_values.append(score)

    def record_durations(self, scoring_ms: float, diversity_ms: float) -> None:
        """Record phase durations.

        Args:
            scoring_ms: Scoring duration in milliseconds.
            diversity_ms: Diversity filter duration in milliseconds.
        """
        self.scoring_duration_ms = scoring_ms
        self.diversity_duration_ms = diversity_ms

    def record_cache(self, hit: bool) -> None:
        """Record a feed cache lookup outcome."""
        if hit:
            self.cache_hits += 1
        else:
            self.cache_misses += 1

    def get_score_percentiles(self) -> dict[str, float]:
        """Calculate score percentiles.

        Returns:
            Dictionary with p50, p90, p99 percentiles.
        """
        if not self.score_values:
            return {"p50": 0.0, "p90": 0.0, "p99": 0.0}

        sorted_scores = sorted(self.score_values)
        n = len(sorted_scores)

        def percentile(p: float) -> float:
            idx = int(p * (n - 1))
            return sorted_scores[idx]

        return {
            "p50": percentile(0.5),
            "p90": percentile(0.9),
            "p99": percentile(0.99),
        }

    def to_dict(self) -> dict[str, object]:
        """Export metrics as dictionary."""
        return {
            "items_in": self.items_in,
            "items_out": self.items_out,
            "deferred_total": self.deferred_total,
            "score_percentiles": self.get_score_percentiles(),
            "scoring_duration_ms": self.scoring_duration_ms,
            "diversity_duration_ms": self.diversity_duration_ms,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
        }
