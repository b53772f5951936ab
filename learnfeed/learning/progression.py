"""Skill progression engine.

Converts activity events into metric, experience, level, and streak updates
on a ``LearningProfile``. All functions mutate or return plain data and never
touch storage, so replaying the same events yields the same profile.
"""

import math
from datetime import date, datetime, timedelta

import structlog

from learnfeed.config.schemas import ProgressionConfig
from learnfeed.learning.models import (
    ActivityMetadata,
    ActivityType,
    AssessmentRecord,
    DifficultyLevel,
    LearningMetrics,
    LearningProfile,
    LearningStreak,
    SkillAssessment,
    SkillLevel,
)
from learnfeed.learning.state_machine import SkillLevelStateMachine


logger = structlog.get_logger()

MASTERED = "Mastered"


def running_average(current: float, value: float, count: int) -> float:
    """Fold ``value`` into an average over ``count`` samples.

    Args:
        current: Average over the previous ``count - 1`` samples.
        value: New sample.
        count: Sample count including the new one; values below 1 count as 1.

    Returns:
        Updated average.
    """
    n = max(count, 1)
    return (current * (n - 1) + value) / n


def update_streak(streak: LearningStreak | None, today: date) -> LearningStreak:
    """Apply one activity on ``today`` to a streak.

    Same-day repeats leave the streak unchanged, the next calendar day
    extends it, and any larger gap restarts it at 1. A first activity starts
    a streak of 1. A date earlier than the last activity is ignored.

    Args:
        streak: Existing streak, or None for the first activity.
        today: Calendar date of the activity.

    Returns:
        Updated streak.
    """
    if streak is None or streak.last_activity_date is None:
        longest = max(streak.longest if streak else 0, 1)
        return LearningStreak(current=1, longest=longest, last_activity_date=today)

    last = streak.last_activity_date
    if today <= last:
        return streak
    if today - last == timedelta(days=1):
        current = streak.current + 1
    else:
        current = 1
    return LearningStreak(
        current=current,
        longest=max(streak.longest, current),
        last_activity_date=today,
    )


class SkillProgressionEngine:
    """Applies learning activity to profiles."""

    def __init__(self, config: ProgressionConfig | None = None) -> None:
        """Initialize the engine.

        Args:
            config: Progression constants. Defaults to built-in values.
        """
        self._config = config or ProgressionConfig()
        self._log = logger.bind(component="learning", subcomponent="progression")

    @property
    def config(self) -> ProgressionConfig:
        """Progression constants in use."""
        return self._config

    def experience_gain(self, difficulty: DifficultyLevel | None) -> int:
        """Experience awarded for an activity of the given difficulty."""
        if difficulty is None:
            return self._config.default_experience_gain
        return self._config.experience_gain.get(
            difficulty.value, self._config.default_experience_gain
        )

    def update_metrics(
        self,
        metrics: LearningMetrics,
        activity_type: ActivityType,
        metadata: ActivityMetadata,
    ) -> None:
        """Update behavioral metrics in place.

        Args:
            metrics: Metrics to update.
            activity_type: Kind of activity.
            metadata: Activity details.
        """
        if activity_type is ActivityType.CONTENT_CONSUMED:
            metrics.total_content_consumed += 1
            count = metrics.total_content_consumed
            if metadata.time_spent_minutes:
                metrics.average_session_duration = running_average(
                    metrics.average_session_duration, metadata.time_spent_minutes, count
                )
            if metadata.completion_rate is not None:
                metrics.completion_rate = running_average(
                    metrics.completion_rate, metadata.completion_rate, count
                )
        elif activity_type is ActivityType.INSIGHT_APPLIED:
            metrics.application_rate = min(
                1.0,
                running_average(
                    metrics.application_rate, 1.0, metrics.total_content_consumed
                ),
            )

    def apply_experience(
        self,
        skill_area: str,
        skill: SkillAssessment,
        difficulty: DifficultyLevel | None,
        now: datetime,
    ) -> bool:
        """Add experience to a skill, advancing at most one level.

        Experience beyond the threshold carries into the next level.

        Args:
            skill_area: Name of the skill.
            skill: Assessment to update in place.
            difficulty: Difficulty of the activity.
            now: Time of the activity.

        Returns:
            True if the skill advanced a level.
        """
        skill.experience += self.experience_gain(difficulty)
        threshold = self._config.experience_per_level
        leveled = False
        if skill.experience >= threshold and skill.level is not SkillLevel.MASTER:
            machine = SkillLevelStateMachine(skill_area, skill.level)
            skill.level = machine.advance()
            skill.experience -= threshold
            leveled = True

        skill.last_assessed_at = now
        history = [
            *skill.assessment_history,
            AssessmentRecord(
                date=now, level=skill.level, experience=skill.experience, source="algorithm"
            ),
        ]
        skill.assessment_history = history[-self._config.history_limit :]
        return leveled

    def update_skill(
        self,
        profile: LearningProfile,
        skill_area: str,
        difficulty: DifficultyLevel | None,
        now: datetime,
    ) -> SkillAssessment:
        """Credit an activity to a skill, creating the skill on first use.

        Args:
            profile: Profile to update.
            skill_area: Skill to credit.
            difficulty: Difficulty of the activity.
            now: Time of the activity.

        Returns:
            The updated assessment.
        """
        skill = profile.skills.get(skill_area)
        if skill is None:
            skill = SkillAssessment(
                confidence=self._config.initial_confidence, last_assessed_at=now
            )
            profile.skills[skill_area] = skill
        if self.apply_experience(skill_area, skill, difficulty, now):
            self._log.info(
                "skill_level_up",
                user_id=profile.user_id,
                skill_area=skill_area,
                level=skill.level.value,
                experience=skill.experience,
            )
        return skill

    def apply_activity(
        self,
        profile: LearningProfile,
        activity_type: ActivityType,
        metadata: ActivityMetadata,
        now: datetime,
    ) -> None:
        """Apply one activity: metrics, then skill, then streak.

        Args:
            profile: Profile to update in place.
            activity_type: Kind of activity.
            metadata: Activity details.
            now: Time of the activity.
        """
        self.update_metrics(profile.metrics, activity_type, metadata)
        if metadata.skill_area:
            self.update_skill(profile, metadata.skill_area, metadata.difficulty_level, now)
        key = activity_type.value
        profile.streaks[key] = update_streak(profile.streaks.get(key), now.date())
        profile.last_learning_activity = now

    @staticmethod
    def optimal_difficulty(
        skill: SkillAssessment | None, difficulty_preference: float
    ) -> DifficultyLevel:
        """Difficulty that best fits a user's skill and appetite.

        Args:
            skill: User's assessment in the skill, if any.
            difficulty_preference: Comfort (0) to challenge (100).

        Returns:
            Target difficulty, beginner for an unknown skill.
        """
        if skill is None:
            return DifficultyLevel.BEGINNER
        confidence_adjustment = (skill.confidence - 70) / 30
        preference_adjustment = (difficulty_preference - 50) / 50
        level = skill.level.number + 0.3 * (confidence_adjustment + preference_adjustment)
        return DifficultyLevel.from_number(level)

    def estimate_time_to_next_level(self, skill: SkillAssessment) -> str:
        """Human-readable estimate of the time to the next level.

        Args:
            skill: Assessment to estimate for.

        Returns:
            ``"N days"``, ``"N weeks"``, ``"N months"``, or ``"Mastered"``.
        """
        if skill.level is SkillLevel.MASTER:
            return MASTERED
        needed = max(self._config.experience_per_level - skill.experience, 0)
        days = math.ceil(needed / self._config.daily_experience_estimate)
        if days <= 30:
            return f"{days} days"
        if days <= 90:
            return f"{math.ceil(days / 7)} weeks"
        return f"{math.ceil(days / 30)} months"
