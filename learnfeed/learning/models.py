"""Data models for learning profiles, recommendations, and achievements."""

import math
from datetime import date
from enum import Enum
from typing import Annotated, Literal

from pydantic import Field, JsonValue, model_validator

from learnfeed.data_model import MutableModel, StrictBaseModel, UtcDatetime


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up."""
    return math.floor(value + 0.5)


class SkillLevel(str, Enum):
    """Totally ordered skill levels."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"
    MASTER = "master"

    @property
    def number(self) -> int:
        """Position in the order, starting at 1."""
        return _SKILL_ORDER.index(self) + 1

    @classmethod
    def from_number(cls, value: float) -> "SkillLevel":
        """Map a number to a level, rounding and clamping to [1, 5]."""
        index = max(1, min(len(_SKILL_ORDER), round_half_up(value)))
        return _SKILL_ORDER[index - 1]


_SKILL_ORDER: list[SkillLevel] = list(SkillLevel)


class DifficultyLevel(str, Enum):
    """Content difficulty, one step short of the skill scale."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @property
    def number(self) -> int:
        """Position in the order, starting at 1."""
        return _DIFFICULTY_ORDER.index(self) + 1

    @classmethod
    def from_number(cls, value: float) -> "DifficultyLevel":
        """Map a number to a difficulty, rounding and clamping to [1, 4]."""
        index = max(1, min(len(_DIFFICULTY_ORDER), round_half_up(value)))
        return _DIFFICULTY_ORDER[index - 1]


_DIFFICULTY_ORDER: list[DifficultyLevel] = list(DifficultyLevel)


class ActivityType(str, Enum):
    """Kinds of tracked learning activity."""

    CONTENT_CONSUMED = "content_consumed"
    CHALLENGE_COMPLETED = "challenge_completed"
    INSIGHT_APPLIED = "insight_applied"
    PEER_HELPED = "peer_helped"


AssessmentSource = Literal["self", "peer", "challenge", "algorithm"]
Priority = Literal["high", "medium", "low"]


class AssessmentRecord(StrictBaseModel):
    """One entry of a skill's assessment history."""

    date: UtcDatetime
    level: SkillLevel
    experience: Annotated[int, Field(ge=0)]
    source: AssessmentSource = "algorithm"


class SkillAssessment(MutableModel):
    """Per-user, per-skill progression state.

    Attributes:
        level: Current level.
        experience: Experience within the current level; may exceed the
            per-level threshold once master is reached.
        confidence: Confidence in [0, 100].
        validated: Whether the skill was externally validated.
        last_assessed_at: Time of the last update.
        assessment_history: Most recent updates, oldest first.
    """

    level: SkillLevel = SkillLevel.BEGINNER
    experience: Annotated[int, Field(ge=0)] = 0
    confidence: Annotated[float, Field(ge=0.0, le=100.0)] = 50.0
    validated: bool = False
    last_assessed_at: UtcDatetime
    assessment_history: list[AssessmentRecord] = Field(default_factory=list)


class LearningStreak(StrictBaseModel):
    """Consecutive-day activity counter for one activity type.

    Immutable; updates produce a new instance so ``longest >= current`` is
    checked on every change.
    """

    current: Annotated[int, Field(ge=0)] = 0
    longest: Annotated[int, Field(ge=0)] = 0
    last_activity_date: date | None = None

    @model_validator(mode="after")
    def validate_longest(self) -> "LearningStreak":
        """Ensure the longest streak is never below the current one."""
        if self.longest < self.current:
            msg = f"longest ({self.longest}) must be >= current ({self.current})"
            raise ValueError(msg)
        return self


class LearningMetrics(MutableModel):
    """Behavioral metrics kept as running averages.

    Rates are fractions in [0, 1]; durations are minutes.
    """

    total_content_consumed: Annotated[int, Field(ge=0)] = 0
    average_session_duration: Annotated[float, Field(ge=0.0)] = 0.0
    completion_rate: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    application_rate: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    average_engagement_rate: Annotated[float, Field(ge=0.0, le=1.0)] = 0.0
    retention_score: Annotated[float, Field(ge=0.0, le=100.0)] = 0.0


class LearningGoal(StrictBaseModel):
    """A skill target."""

    skill: Annotated[str, Field(min_length=1)]
    target_level: SkillLevel
    priority: Priority = "medium"
    deadline: UtcDatetime | None = None
    progress: Annotated[float, Field(ge=0.0, le=100.0)] = 0.0


class LearningGoals(MutableModel):
    """Short and long term goals plus free-form interests."""

    short_term: list[LearningGoal] = Field(default_factory=list)
    long_term: list[LearningGoal] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)

    def covers(self, skill: str) -> bool:
        """Whether any goal targets the skill."""
        return any(g.skill == skill for g in [*self.short_term, *self.long_term])


class LearningProfile(MutableModel):
    """Aggregate root of a user's learning state.

    Attributes:
        user_id: Owner.
        skills: Assessment per skill area.
        streaks: Streak per activity type.
        metrics: Behavioral metrics.
        goals: Learning goals.
        difficulty_preference: Comfort (0) to challenge (100).
        adaptive_learning_rate: How quickly difficulty adapts, in (0, 1).
        last_learning_activity: Time of the last tracked activity.
    """

    user_id: Annotated[str, Field(min_length=1)]
    skills: dict[str, SkillAssessment] = Field(default_factory=dict)
    streaks: dict[str, LearningStreak] = Field(default_factory=dict)
    metrics: LearningMetrics = Field(default_factory=LearningMetrics)
    goals: LearningGoals = Field(default_factory=LearningGoals)
    difficulty_preference: Annotated[float, Field(ge=0.0, le=100.0)] = 50.0
    adaptive_learning_rate: Annotated[float, Field(gt=0.0, lt=1.0)] = 0.7
    last_learning_activity: UtcDatetime | None = None

    def max_current_streak(self) -> int:
        """Largest current streak across activity types, 0 when none."""
        return max((s.current for s in self.streaks.values()), default=0)


class ActivityMetadata(StrictBaseModel):
    """Details accompanying a tracked activity.

    Attributes:
        content_id: Content the activity refers to.
        skill_area: Skill area to credit.
        time_spent_minutes: Session length.
        completion_rate: Fraction of the content finished.
        difficulty_level: Difficulty of the content.
    """

    content_id: str | None = None
    skill_area: Annotated[str, Field(min_length=1)] | None = None
    time_spent_minutes: Annotated[float, Field(ge=0.0)] | None = None
    completion_rate: Annotated[float, Field(ge=0.0, le=1.0)] | None = None
    difficulty_level: DifficultyLevel | None = None


ContentKind = Literal["paper", "link", "note", "challenge"]


class ContentDifficultyAssessment(StrictBaseModel):
    """Difficulty tagging of a content item, input to recommendations."""

    content_id: Annotated[str, Field(min_length=1)]
    content_type: ContentKind
    title: str = ""
    primary_skill_area: Annotated[str, Field(min_length=1)]
    secondary_skill_areas: tuple[str, ...] = ()
    overall_difficulty: DifficultyLevel
    learning_value: Annotated[float, Field(ge=1.0, le=10.0)]
    time_to_understand_minutes: Annotated[int, Field(ge=0)] = 0


class Recommendation(StrictBaseModel):
    """A personalized learning recommendation."""

    content_id: str
    content_type: ContentKind
    title: str
    difficulty: DifficultyLevel
    relevance_score: Annotated[float, Field(ge=0.0, le=1.0)]
    learning_value: float
    estimated_time_minutes: int
    skills_addressed: list[str]
    why_recommended: str
    priority_level: Priority

    @property
    def ranking_score(self) -> float:
        """Blend of relevance and learning value used for ordering."""
        return self.relevance_score * 0.6 + self.learning_value / 10 * 0.4


AchievementCategory = Literal[
    "learning_streak",
    "skill_mastery",
    "content_consumption",
    "knowledge_sharing",
    "peer_recognition",
    "challenge_completion",
    "mentorship",
    "innovation",
]
AchievementTier = Literal["bronze", "silver", "gold", "platinum", "diamond"]


class AchievementCriteria(StrictBaseModel):
    """Declarative rule an achievement is earned by.

    Attributes:
        type: Criterion kind; unknown kinds are never satisfied.
        threshold: Numeric threshold for counting criteria.
        skill_area: Skill area scope for skill criteria.
        level: Minimum level for skill criteria, default expert.
        timeframe: Informational window such as ``30d``; not evaluated.
    """

    type: Annotated[str, Field(min_length=1)]
    threshold: Annotated[int, Field(ge=0)] = 0
    skill_area: str | None = None
    level: SkillLevel | None = None
    timeframe: str | None = None


class Achievement(StrictBaseModel):
    """Catalog entry for an achievement."""

    id: Annotated[str, Field(min_length=1)]
    name: str
    description: str = ""
    category: AchievementCategory
    tier: AchievementTier
    criteria: AchievementCriteria
    status_points: Annotated[int, Field(ge=0)] = 0
    is_active: bool = True


class EarnedData(StrictBaseModel):
    """Context captured when an achievement was earned."""

    trigger: str
    metrics: dict[str, JsonValue] = Field(default_factory=dict)


class UserAchievement(StrictBaseModel):
    """Award of one achievement to one user."""

    user_id: str
    achievement_id: str
    earned_at: UtcDatetime
    earned_data: EarnedData


class Milestone(StrictBaseModel):
    """Estimated time until a skill's next level."""

    skill: str
    timeframe: str


class ProgressInsights(StrictBaseModel):
    """Summary of a user's learning progress."""

    user_id: str
    overall_progress_score: Annotated[int, Field(ge=0, le=100)]
    current_level: SkillLevel
    skill_gaps: list[str]
    strengths: list[str]
    recommended_actions: list[str]
    next_milestones: list[Milestone]
    motivational_message: str
