"""Unit tests for the skill progression engine."""

from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from learnfeed.config.schemas import ProgressionConfig
from learnfeed.learning.models import (
    ActivityMetadata,
    ActivityType,
    DifficultyLevel,
    LearningProfile,
    LearningStreak,
    SkillAssessment,
    SkillLevel,
)
from learnfeed.learning.progression import (
    MASTERED,
    SkillProgressionEngine,
    running_average,
    update_streak,
)
from tests.helpers.time import FIXED_NOW


def _skill(
    level: SkillLevel = SkillLevel.BEGINNER,
    experience: int = 0,
    confidence: float = 70.0,
) -> SkillAssessment:
    """Create a test SkillAssessment."""
    return SkillAssessment(
        level=level,
        experience=experience,
        confidence=confidence,
        last_assessed_at=FIXED_NOW - timedelta(days=30),
    )


@pytest.fixture
def engine() -> SkillProgressionEngine:
    """Create an engine with default constants."""
    return SkillProgressionEngine()


class TestExperience:
    """Tests for experience gain and level advancement."""

    def test_level_up_carries_remainder(self, engine: SkillProgressionEngine) -> None:
        """975 + 30 at intermediate advances to advanced with 5 left over."""
        profile = LearningProfile(
            user_id="u1", skills={"ai": _skill(SkillLevel.INTERMEDIATE, 975)}
        )

        engine.apply_activity(
            profile,
            ActivityType.CONTENT_CONSUMED,
            ActivityMetadata(skill_area="ai", difficulty_level=DifficultyLevel.EXPERT),
            FIXED_NOW,
        )

        skill = profile.skills["ai"]
        assert skill.level is SkillLevel.ADVANCED
        assert skill.experience == 5

    @pytest.mark.parametrize(
        ("difficulty", "gain"),
        [
            (DifficultyLevel.BEGINNER, 5),
            (DifficultyLevel.INTERMEDIATE, 10),
            (DifficultyLevel.ADVANCED, 20),
            (DifficultyLevel.EXPERT, 30),
            (None, 10),
        ],
    )
    def test_gain_by_difficulty(
        self,
        engine: SkillProgressionEngine,
        difficulty: DifficultyLevel | None,
        gain: int,
    ) -> None:
        """Gain is keyed to difficulty, defaulting to 10."""
        assert engine.experience_gain(difficulty) == gain

    def test_large_gain_advances_one_level(self) -> None:
        """A gain beyond the threshold still advances only once."""
        engine = SkillProgressionEngine(
            ProgressionConfig(experience_gain={"expert": 2500})
        )
        skill = _skill(SkillLevel.BEGINNER, 975)

        leveled = engine.apply_experience("ai", skill, DifficultyLevel.EXPERT, FIXED_NOW)

        assert leveled
        assert skill.level is SkillLevel.INTERMEDIATE
        assert skill.experience == 2475

    def test_master_keeps_accumulating(self, engine: SkillProgressionEngine) -> None:
        """Master never advances; experience is not clamped."""
        skill = _skill(SkillLevel.MASTER, 995)

        leveled = engine.apply_experience("ai", skill, DifficultyLevel.ADVANCED, FIXED_NOW)

        assert not leveled
        assert skill.level is SkillLevel.MASTER
        assert skill.experience == 1015

    def test_history_trimmed(self, engine: SkillProgressionEngine) -> None:
        """Only the last ten assessments are kept."""
        skill = _skill()
        for i in range(15):
            engine.apply_experience("ai", skill, None, FIXED_NOW + timedelta(minutes=i))

        assert len(skill.assessment_history) == 10
        assert skill.assessment_history[-1].experience == 150
        assert skill.assessment_history[0].experience == 60
        assert skill.last_assessed_at == FIXED_NOW + timedelta(minutes=14)

    def test_new_skill_created(self, engine: SkillProgressionEngine) -> None:
        """First use of a skill creates it at beginner."""
        profile = LearningProfile(user_id="u1")

        skill = engine.update_skill(profile, "rust", DifficultyLevel.BEGINNER, FIXED_NOW)

        assert profile.skills["rust"] is skill
        assert skill.level is SkillLevel.BEGINNER
        assert skill.experience == 5
        assert skill.confidence == 50.0

    def test_no_skill_area_updates_no_skill(self, engine: SkillProgressionEngine) -> None:
        """Activities without a skill area touch metrics and streaks only."""
        profile = LearningProfile(user_id="u1")

        engine.apply_activity(
            profile, ActivityType.CONTENT_CONSUMED, ActivityMetadata(), FIXED_NOW
        )

        assert profile.skills == {}
        assert profile.metrics.total_content_consumed == 1
        assert profile.streaks["content_consumed"].current == 1
        assert profile.last_learning_activity == FIXED_NOW


class TestMetrics:
    """Tests for behavioral metric updates."""

    def test_running_average(self) -> None:
        """Averages fold in one sample at a time."""
        assert running_average(0.0, 30.0, 1) == 30.0
        assert running_average(30.0, 60.0, 2) == 45.0
        assert running_average(0.0, 1.0, 0) == 1.0

    def test_content_consumed_updates_averages(self, engine: SkillProgressionEngine) -> None:
        """Session duration and completion rate are running averages."""
        profile = LearningProfile(user_id="u1")
        for minutes, completion in [(30.0, 1.0), (60.0, 0.5)]:
            engine.update_metrics(
                profile.metrics,
                ActivityType.CONTENT_CONSUMED,
                ActivityMetadata(time_spent_minutes=minutes, completion_rate=completion),
            )

        assert profile.metrics.total_content_consumed == 2
        assert profile.metrics.average_session_duration == pytest.approx(45.0)
        assert profile.metrics.completion_rate == pytest.approx(0.75)

    def test_insight_applied_rate_bounded(self, engine: SkillProgressionEngine) -> None:
        """Application rate never exceeds one."""
        profile = LearningProfile(user_id="u1")
        for _ in range(3):
            engine.update_metrics(
                profile.metrics, ActivityType.INSIGHT_APPLIED, ActivityMetadata()
            )

        assert profile.metrics.application_rate == 1.0
        assert profile.metrics.total_content_consumed == 0


class TestStreak:
    """Tests for daily streak updates."""

    def test_first_activity(self) -> None:
        """A first activity starts a streak of one."""
        streak = update_streak(None, date(2024, 3, 12))

        assert (streak.current, streak.longest) == (1, 1)

    def test_streak_lifecycle(self) -> None:
        """Next day extends, same day is a no-op, a gap resets."""
        today = date(2024, 3, 12)
        streak = LearningStreak(
            current=5, longest=10, last_activity_date=today - timedelta(days=1)
        )

        streak = update_streak(streak, today)
        assert (streak.current, streak.longest) == (6, 10)

        same_day = update_streak(streak, today)
        assert same_day == streak

        later = update_streak(streak, today + timedelta(days=4))
        assert (later.current, later.longest) == (1, 10)

    def test_longest_raised(self) -> None:
        """Extending past the record raises longest."""
        today = date(2024, 3, 12)
        streak = LearningStreak(
            current=3, longest=3, last_activity_date=today - timedelta(days=1)
        )

        assert update_streak(streak, today).longest == 4

    def test_earlier_date_ignored(self) -> None:
        """Out-of-order activity leaves the streak unchanged."""
        today = date(2024, 3, 12)
        streak = LearningStreak(current=2, longest=2, last_activity_date=today)

        assert update_streak(streak, today - timedelta(days=3)) == streak

    def test_longest_below_current_rejected(self) -> None:
        """A streak can never record longest below current."""
        with pytest.raises(ValidationError):
            LearningStreak(current=4, longest=3)

    def test_invariant_over_random_walk(self) -> None:
        """longest >= current after every update."""
        streak: LearningStreak | None = None
        day = date(2024, 1, 1)
        for gap in [0, 1, 1, 2, 0, 1, 1, 1, 5, 1, 0, 3, 1, 1]:
            day = day + timedelta(days=gap)
            streak = update_streak(streak, day)
            assert streak.longest >= streak.current


class TestOptimalDifficulty:
    """Tests for difficulty targeting."""

    @pytest.mark.parametrize(
        ("level", "confidence", "preference", "expected"),
        [
            (SkillLevel.INTERMEDIATE, 70.0, 50.0, DifficultyLevel.INTERMEDIATE),
            (SkillLevel.INTERMEDIATE, 100.0, 100.0, DifficultyLevel.ADVANCED),
            (SkillLevel.BEGINNER, 40.0, 0.0, DifficultyLevel.BEGINNER),
            (SkillLevel.ADVANCED, 85.0, 50.0, DifficultyLevel.ADVANCED),
            (SkillLevel.MASTER, 70.0, 50.0, DifficultyLevel.EXPERT),
        ],
    )
    def test_targeting(
        self,
        level: SkillLevel,
        confidence: float,
        preference: float,
        expected: DifficultyLevel,
    ) -> None:
        """Level is nudged by confidence and appetite, then clamped to 1-4."""
        skill = _skill(level, confidence=confidence)

        assert SkillProgressionEngine.optimal_difficulty(skill, preference) is expected

    def test_unknown_skill_is_beginner(self) -> None:
        """No assessment targets beginner content."""
        assert SkillProgressionEngine.optimal_difficulty(None, 90.0) is DifficultyLevel.BEGINNER


class TestTimeToNextLevel:
    """Tests for milestone estimates."""

    @pytest.mark.parametrize(
        ("experience", "expected"),
        [(700, "20 days"), (0, "10 weeks"), (550, "30 days"), (999, "1 days")],
    )
    def test_estimates(
        self, engine: SkillProgressionEngine, experience: int, expected: str
    ) -> None:
        """Days up to 30, weeks up to 90 days, then months."""
        assert engine.estimate_time_to_next_level(_skill(experience=experience)) == expected

    def test_months(self) -> None:
        """Slow daily gain yields a month estimate."""
        engine = SkillProgressionEngine(ProgressionConfig(daily_experience_estimate=5))

        assert engine.estimate_time_to_next_level(_skill()) == "7 months"

    def test_master(self, engine: SkillProgressionEngine) -> None:
        """Master has no next level."""
        assert engine.estimate_time_to_next_level(_skill(SkillLevel.MASTER)) == MASTERED


class TestReplayDeterminism:
    """Replaying the same events yields the same state."""

    def test_replay(self, engine: SkillProgressionEngine) -> None:
        """Two fresh profiles fed the same events end identical."""
        events = [
            (ActivityType.CONTENT_CONSUMED, "ai", DifficultyLevel.EXPERT),
            (ActivityType.CHALLENGE_COMPLETED, "ai", DifficultyLevel.ADVANCED),
            (ActivityType.INSIGHT_APPLIED, "ml", None),
            (ActivityType.CONTENT_CONSUMED, "ml", DifficultyLevel.BEGINNER),
        ] * 20

        profiles = [LearningProfile(user_id="u1"), LearningProfile(user_id="u1")]
        for profile in profiles:
            for i, (activity, area, difficulty) in enumerate(events):
                engine.apply_activity(
                    profile,
                    activity,
                    ActivityMetadata(skill_area=area, difficulty_level=difficulty),
                    FIXED_NOW + timedelta(hours=6 * i),
                )

        first, second = profiles
        assert first.model_dump() == second.model_dump()
        assert first.skills["ai"].level is SkillLevel.INTERMEDIATE
