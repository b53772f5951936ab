"""Learning service: activity tracking, recommendations, and insights.

Profile mutations for one user run under that user's lock so concurrent
activities never lose updates. Derived views are cached and the keys a user
owns are dropped after every tracked activity.
"""

import random
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime

import structlog
from pydantic import JsonValue, ValidationError

from learnfeed.cache.keys import KeyIndex, insights_key, recommendations_key
from learnfeed.cache.protocols import KeyValueCache
from learnfeed.config.schemas import ProgressionConfig
from learnfeed.data_model import StrictBaseModel
from learnfeed.errors import ValidationFailedError
from learnfeed.learning.achievements import DEFAULT_ACHIEVEMENTS, AchievementEvaluator
from learnfeed.learning.insights import ProgressInsightsBuilder
from learnfeed.learning.locks import UserLockRegistry
from learnfeed.learning.metrics import LearningMetricsRecorder
from learnfeed.learning.models import (
    Achievement,
    ActivityMetadata,
    ActivityType,
    ContentDifficultyAssessment,
    LearningProfile,
    ProgressInsights,
    Recommendation,
    UserAchievement,
)
from learnfeed.learning.progression import SkillProgressionEngine
from learnfeed.learning.recommendations import RecommendationEvaluator
from learnfeed.store.protocols import ContentRepository, ProfileRepository


logger = structlog.get_logger()

RECOMMENDATIONS_NAMESPACE = "recommendations"


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ActivityResult(StrictBaseModel):
    """Outcome of one tracked activity.

    Attributes:
        user_id: Acting user.
        activity_type: Kind of activity.
        level_ups: Levels gained by the credited skill.
        awards: Achievements newly awarded.
    """

    user_id: str
    activity_type: ActivityType
    level_ups: int = 0
    awards: list[UserAchievement]


class LearningService:
    """Orchestrates the progression engine, evaluators, and persistence."""

    def __init__(
        self,
        profiles: ProfileRepository,
        content: ContentRepository,
        cache: KeyValueCache,
        config: ProgressionConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utc_now,
        locks: UserLockRegistry | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            profiles: Profile and achievement persistence.
            content: Source of difficulty-tagged content.
            cache: Cache for recommendations and insights.
            config: Progression constants. Defaults to built-in values.
            rng: Random source for motivational messages.
            clock: Source of the current UTC time.
            locks: Per-user lock registry, shared when several services
                write the same profiles.
        """
        self._profiles = profiles
        self._content = content
        self._cache = cache
        self._config = config or ProgressionConfig()
        self._clock = clock
        self._locks = locks or UserLockRegistry()
        self._engine = SkillProgressionEngine(self._config)
        self._recommender = RecommendationEvaluator(self._config)
        self._achievements = AchievementEvaluator()
        self._insights = ProgressInsightsBuilder(
            self._engine, rng or random.Random()  # noqa: S311
        )
        self._recommendation_keys = KeyIndex(
            cache, RECOMMENDATIONS_NAMESPACE, self._config.recommendation_ttl_seconds
        )
        self._metrics = LearningMetricsRecorder.get_instance()
        self._log = logger.bind(component="learning", subcomponent="service")

    @property
    def engine(self) -> SkillProgressionEngine:
        """Skill progression engine in use."""
        return self._engine

    def _load_profile(self, user_id: str) -> LearningProfile:
        """Stored profile, or a fresh default one (not persisted)."""
        profile = self._profiles.load_profile(user_id)
        if profile is None:
            profile = LearningProfile(user_id=user_id)
        return profile

    def track_activity(
        self,
        user_id: str,
        activity_type: ActivityType | str,
        metadata: ActivityMetadata | Mapping[str, object] | None = None,
    ) -> ActivityResult:
        """Apply an activity to a user's profile.

        Steps under the user's lock: load or create the profile, update
        metrics, credit the skill, update the streak, evaluate achievements
        against the updated profile, and persist profile and awards together.

        Args:
            user_id: Acting user.
            activity_type: Kind of activity.
            metadata: Activity details.

        Returns:
            Level-ups and awards produced by the activity.

        Raises:
            ValidationFailedError: On an unknown activity type or malformed
                metadata.
        """
        activity, details = self._validate_activity(activity_type, metadata)

        with self._locks.hold(user_id):
            now = self._clock()
            profile = self._load_profile(user_id)
            skill_area = details.skill_area
            before = profile.skills.get(skill_area) if skill_area else None
            before_level = before.level.number if before is not None else None

            self._engine.apply_activity(profile, activity, details, now)

            level_ups = 0
            if skill_area and before_level is not None:
                level_ups = profile.skills[skill_area].level.number - before_level

            awards = self._achievements.evaluate(
                profile,
                self._profiles.achievement_catalog(),
                self._profiles.earned_achievement_ids(user_id),
                activity.value,
                self._award_metrics(details),
                now,
            )
            inserted = self._profiles.commit_activity(profile, awards)

        self.invalidate_user(user_id)
        self._metrics.record_activity(activity.value, level_ups, len(inserted))
        self._log.info(
            "activity_tracked",
            user_id=user_id,
            activity_type=activity.value,
            skill_area=skill_area,
            level_ups=level_ups,
            awards=len(inserted),
        )
        return ActivityResult(
            user_id=user_id,
            activity_type=activity,
            level_ups=level_ups,
            awards=inserted,
        )

    @staticmethod
    def _validate_activity(
        activity_type: ActivityType | str,
        metadata: ActivityMetadata | Mapping[str, object] | None,
    ) -> tuple[ActivityType, ActivityMetadata]:
        try:
            activity = ActivityType(activity_type)
        except ValueError as exc:
            msg = f"Unknown activity type: {activity_type}"
            raise ValidationFailedError(msg, field="activity_type") from exc
        if isinstance(metadata, ActivityMetadata):
            return activity, metadata
        try:
            return activity, ActivityMetadata.model_validate(dict(metadata or {}))
        except ValidationError as exc:
            raise ValidationFailedError.from_pydantic(exc) from exc

    @staticmethod
    def _award_metrics(details: ActivityMetadata) -> dict[str, JsonValue]:
        return details.model_dump(mode="json", exclude_none=True)

    def invalidate_user(self, user_id: str) -> int:
        """Drop a user's cached recommendations and insights.

        Returns:
            Number of recommendation keys deleted.
        """
        deleted = self._recommendation_keys.invalidate(user_id)
        self._cache.delete(insights_key(user_id))
        return deleted

    def get_recommendations(
        self,
        user_id: str,
        skill_area: str | None = None,
        limit: int = 10,
    ) -> list[Recommendation]:
        """Personalized content recommendations.

        Args:
            user_id: Requesting user.
            skill_area: Restrict to one skill, else all of the user's skills.
            limit: Maximum recommendations.

        Returns:
            Recommendations, best first; empty for a user with no skills.

        Raises:
            ValidationFailedError: If ``limit`` is not positive.
        """
        if limit < 1:
            raise ValidationFailedError("limit must be >= 1", field="limit")

        key = recommendations_key(user_id, skill_area, limit)
        cached = self._cache.get(key)
        if isinstance(cached, list):
            try:
                result = [Recommendation.model_validate(r) for r in cached]
            except ValidationError:
                self._log.warning("recommendation_cache_entry_invalid", key=key)
            else:
                self._metrics.record_recommendation_cache_hit()
                return result

        profile = self._load_profile(user_id)
        candidates: list[ContentDifficultyAssessment] = []
        for query in self._recommender.candidate_queries(profile, skill_area, limit):
            candidates.extend(
                self._content.difficulty_assessments(
                    query.skill_area, query.difficulty, query.limit
                )
            )
        result = self._recommender.recommend(profile, candidates, limit, self._clock())

        self._cache.set(
            key,
            [r.model_dump(mode="json") for r in result],
            self._config.recommendation_ttl_seconds,
        )
        self._recommendation_keys.track(user_id, key)
        self._log.info(
            "recommendations_built",
            user_id=user_id,
            skill_area=skill_area,
            candidates=len(candidates),
            returned=len(result),
        )
        return result

    def get_progress_insights(self, user_id: str) -> ProgressInsights:
        """Progress summary for a user.

        Args:
            user_id: Requesting user.

        Returns:
            Progress insights.
        """
        key = insights_key(user_id)
        cached = self._cache.get(key)
        if cached is not None:
            try:
                insights = ProgressInsights.model_validate(cached)
            except ValidationError:
                self._log.warning("insights_cache_entry_invalid", key=key)
            else:
                self._metrics.record_insight_cache_hit()
                return insights

        insights = self._insights.build(self._load_profile(user_id))
        self._cache.set(
            key, insights.model_dump(mode="json"), self._config.insights_ttl_seconds
        )
        return insights

    def seed_achievements(self, catalog: Sequence[Achievement] | None = None) -> int:
        """Install an achievement catalog.

        Args:
            catalog: Entries to install; the built-in catalog when None.

        Returns:
            Number of entries written.
        """
        written = self._profiles.upsert_achievements(
            list(catalog) if catalog is not None else DEFAULT_ACHIEVEMENTS
        )
        self._log.info("achievements_seeded", count=written)
        return written
