"""Unit tests for achievement evaluation."""

from datetime import date

import pytest

from learnfeed.learning.achievements import (
    DEFAULT_ACHIEVEMENTS,
    AchievementEvaluator,
    is_satisfied,
)
from learnfeed.learning.models import (
    Achievement,
    AchievementCriteria,
    LearningMetrics,
    LearningProfile,
    LearningStreak,
    SkillAssessment,
    SkillLevel,
)
from tests.helpers.time import FIXED_NOW


def _profile(
    consumed: int = 0,
    streak: int = 0,
    skills: dict[str, SkillLevel] | None = None,
) -> LearningProfile:
    """Create a test LearningProfile."""
    return LearningProfile(
        user_id="u1",
        metrics=LearningMetrics(total_content_consumed=consumed),
        streaks=(
            {
                "content_consumed": LearningStreak(
                    current=streak, longest=streak, last_activity_date=date(2024, 3, 12)
                )
            }
            if streak
            else {}
        ),
        skills={
            name: SkillAssessment(level=level, last_assessed_at=FIXED_NOW)
            for name, level in (skills or {}).items()
        },
    )


def _achievement(
    achievement_id: str, criteria: AchievementCriteria, *, active: bool = True
) -> Achievement:
    """Create a test Achievement."""
    return Achievement(
        id=achievement_id,
        name=achievement_id,
        category="innovation",
        tier="gold",
        criteria=criteria,
        is_active=active,
    )


class TestCriteria:
    """Tests for individual criterion rules."""

    def test_content_threshold(self) -> None:
        """Content criteria compare total consumption to the threshold."""
        criteria = AchievementCriteria(type="content_consumed", threshold=3)

        assert not is_satisfied(criteria, _profile(consumed=2))
        assert is_satisfied(criteria, _profile(consumed=3))

    def test_streak_threshold(self) -> None:
        """Streak criteria use the current streak of any activity type."""
        criteria = AchievementCriteria(type="learning_streak", threshold=3)

        assert not is_satisfied(criteria, _profile(streak=2))
        assert is_satisfied(criteria, _profile(streak=3))

    @pytest.mark.parametrize(
        ("level", "expected"),
        [(SkillLevel.ADVANCED, False), (SkillLevel.EXPERT, True), (SkillLevel.MASTER, True)],
    )
    def test_skill_level_defaults_to_expert(
        self, level: SkillLevel, expected: bool
    ) -> None:
        """Without an explicit level, expert or above is required."""
        criteria = AchievementCriteria(type="skill_level")

        assert is_satisfied(criteria, _profile(skills={"ai": level})) is expected

    def test_skill_level_scoped(self) -> None:
        """A scoped criterion only looks at its own skill."""
        criteria = AchievementCriteria(
            type="skill_level", skill_area="ml", level=SkillLevel.INTERMEDIATE
        )

        assert not is_satisfied(criteria, _profile(skills={"ai": SkillLevel.MASTER}))
        assert is_satisfied(criteria, _profile(skills={"ml": SkillLevel.INTERMEDIATE}))

    def test_unknown_type_never_satisfied(self) -> None:
        """Unrecognized criterion kinds never award."""
        criteria = AchievementCriteria(type="peer_helped_count", threshold=0)

        assert not is_satisfied(criteria, _profile(consumed=100, streak=30))


class TestAchievementEvaluator:
    """Tests for award computation."""

    def test_default_catalog_first_activity(self) -> None:
        """A first activity in AI earns the first two defaults."""
        profile = _profile(
            consumed=1, streak=1, skills={"artificial_intelligence": SkillLevel.BEGINNER}
        )

        awards = AchievementEvaluator().evaluate(
            profile,
            DEFAULT_ACHIEVEMENTS,
            set(),
            "content_consumed",
            {"skill_area": "artificial_intelligence"},
            FIXED_NOW,
        )

        assert [a.achievement_id for a in awards] == ["first-steps", "ai-novice"]
        assert awards[0].earned_at == FIXED_NOW
        assert awards[0].earned_data.trigger == "content_consumed"
        assert awards[0].earned_data.metrics == {"skill_area": "artificial_intelligence"}

    def test_already_earned_excluded(self) -> None:
        """Held achievements are never awarded again."""
        profile = _profile(consumed=5, streak=7)

        awards = AchievementEvaluator().evaluate(
            profile,
            DEFAULT_ACHIEVEMENTS,
            {"first-steps", "learning-streak-3"},
            "content_consumed",
            {},
            FIXED_NOW,
        )

        assert [a.achievement_id for a in awards] == ["learning-streak-7"]

    def test_inactive_excluded(self) -> None:
        """Inactive catalog entries are skipped."""
        criteria = AchievementCriteria(type="content_consumed", threshold=1)
        catalog = [
            _achievement("on", criteria),
            _achievement("off", criteria, active=False),
        ]

        awards = AchievementEvaluator().evaluate(
            _profile(consumed=1), catalog, set(), "content_consumed", {}, FIXED_NOW
        )

        assert [a.achievement_id for a in awards] == ["on"]

    def test_nothing_satisfied(self) -> None:
        """An empty profile earns nothing."""
        awards = AchievementEvaluator().evaluate(
            _profile(), DEFAULT_ACHIEVEMENTS, set(), "peer_helped", {}, FIXED_NOW
        )

        assert awards == []
