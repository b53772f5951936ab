"""Metrics collection for the learning module."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class LearningMetricsRecorder:
    """Metrics for learning operations.

    Attributes:
        activities_total: Tracked activities.
        activities_by_type: Tracked activities per activity type.
        level_ups_total: Skill level advancements.
        achievements_awarded_total: Achievements awarded.
        recommendation_cache_hits: Recommendation cache hits.
        insight_cache_hits: Insight cache hits.
    """

    activities_total: int = 0
    activities_by_type: dict[str, int] = field(default_factory=dict)
    level_ups_total: int = 0
    achievements_awarded_total: int = 0
    recommendation_cache_hits: int = 0
    insight_cache_hits: int = 0

    _instance: ClassVar["LearningMetricsRecorder | None"] = None

    @classmethod
    def get_instance(cls) -> "LearningMetricsRecorder":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_activity(self, activity_type: str, level_ups: int, awards: int) -> None:
        """Record one tracked activity.

        Args:
            activity_type: Kind of activity.
            level_ups: Levels gained by the activity.
            awards: Achievements awarded by the activity.
        """
        self.activities_total += 1
        self.activities_by_type[activity_type] = (
            self.activities_by_type.get(activity_type, 0) + 1
        )
        self.level_ups_total += level_ups
        self.achievements_awarded_total += awards

    def record_recommendation_cache_hit(self) -> None:
        """Record a recommendation cache hit."""
        self.recommendation_cache_hits += 1

    def record_insight_cache_hit(self) -> None:
        """Record an insight cache hit."""
        self.insight_cache_hits += 1

    def to_dict(self) -> dict[str, object]:
        """Export metrics as dictionary."""
        return {
            "activities_total": self.activities_total,
            "activities_by_type": dict(self.activities_by_type),
            "level_ups_total": self.level_ups_total,
            "achievements_awarded_total": self.achievements_awarded_total,
            "recommendation_cache_hits": self.recommendation_cache_hits,
            "insight_cache_hits": self.insight_cache_hits,
        }
