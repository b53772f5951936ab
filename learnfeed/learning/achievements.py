"""Achievement criteria evaluation."""

from collections.abc import Callable, Iterable, Mapping
from datetime import datetime

import structlog
from pydantic import JsonValue

from learnfeed.learning.models import (
    Achievement,
    AchievementCriteria,
    EarnedData,
    LearningProfile,
    SkillLevel,
    UserAchievement,
)


logger = structlog.get_logger()

DEFAULT_SKILL_LEVEL = SkillLevel.EXPERT


def _streak_reached(criteria: AchievementCriteria, profile: LearningProfile) -> bool:
    return any(s.current >= criteria.threshold for s in profile.streaks.values())


def _content_reached(criteria: AchievementCriteria, profile: LearningProfile) -> bool:
    return profile.metrics.total_content_consumed >= criteria.threshold


def _skill_reached(criteria: AchievementCriteria, profile: LearningProfile) -> bool:
    required = (criteria.level or DEFAULT_SKILL_LEVEL).number
    if criteria.skill_area:
        skill = profile.skills.get(criteria.skill_area)
        return skill is not None and skill.level.number >= required
    return any(s.level.number >= required for s in profile.skills.values())


# Criterion type -> predicate; unknown types are never satisfied
CRITERIA_RULES: dict[str, Callable[[AchievementCriteria, LearningProfile], bool]] = {
    "learning_streak": _streak_reached,
    "content_consumed": _content_reached,
    "skill_level": _skill_reached,
}


def is_satisfied(criteria: AchievementCriteria, profile: LearningProfile) -> bool:
    """Evaluate one criterion against a profile.

    Args:
        criteria: Achievement criterion.
        profile: Profile after the current activity was applied.

    Returns:
        True if the criterion holds.
    """
    rule = CRITERIA_RULES.get(criteria.type)
    return rule is not None and rule(criteria, profile)


class AchievementEvaluator:
    """Determines which achievements a tracked activity earns."""

    def __init__(self) -> None:
        self._log = logger.bind(component="learning", subcomponent="achievements")

    def evaluate(
        self,
        profile: LearningProfile,
        catalog: Iterable[Achievement],
        earned_ids: set[str],
        trigger: str,
        metadata: Mapping[str, JsonValue],
        now: datetime,
    ) -> list[UserAchievement]:
        """Compute new awards.

        Already-earned and inactive achievements are excluded before any
        criterion is evaluated, so each (user, achievement) pair is awarded
        at most once.

        Args:
            profile: Profile after the current activity was applied.
            catalog: All achievements.
            earned_ids: Ids the user already holds.
            trigger: Activity type that triggered evaluation.
            metadata: Activity details stored with the award.
            now: Award time.

        Returns:
            One award per newly satisfied achievement, in catalog order.
        """
        awards: list[UserAchievement] = []
        for achievement in catalog:
            if not achievement.is_active or achievement.id in earned_ids:
                continue
            if not is_satisfied(achievement.criteria, profile):
                continue
            awards.append(
                UserAchievement(
                    user_id=profile.user_id,
                    achievement_id=achievement.id,
                    earned_at=now,
                    earned_data=EarnedData(trigger=trigger, metrics=dict(metadata)),
                )
            )
            self._log.info(
                "achievement_earned",
                user_id=profile.user_id,
                achievement_id=achievement.id,
                trigger=trigger,
            )
        return awards


DEFAULT_ACHIEVEMENTS: list[Achievement] = [
    Achievement(
        id="first-steps",
        name="First Steps",
        description="Complete your first learning activity",
        category="content_consumption",
        tier="bronze",
        criteria=AchievementCriteria(type="content_consumed", threshold=1),
        status_points=50,
    ),
    Achievement(
        id="ai-novice",
        name="AI Novice",
        description="Reach beginner level in artificial intelligence",
        category="skill_mastery",
        tier="bronze",
        criteria=AchievementCriteria(
            type="skill_level",
            skill_area="artificial_intelligence",
            level=SkillLevel.BEGINNER,
        ),
        status_points=100,
    ),
    Achievement(
        id="learning-streak-3",
        name="Consistent Start",
        description="Maintain a 3-day learning streak",
        category="learning_streak",
        tier="bronze",
        criteria=AchievementCriteria(type="learning_streak", threshold=3),
        status_points=75,
    ),
    Achievement(
        id="learning-streak-7",
        name="Week Warrior",
        description="Maintain a 7-day learning streak",
        category="learning_streak",
        tier="silver",
        criteria=AchievementCriteria(type="learning_streak", threshold=7),
        status_points=200,
    ),
]
