"""Adaptive skill progression, recommendations, and achievements."""

from learnfeed.learning.achievements import (
    DEFAULT_ACHIEVEMENTS,
    AchievementEvaluator,
    is_satisfied,
)
from learnfeed.learning.insights import ProgressInsightsBuilder
from learnfeed.learning.locks import UserLockRegistry
from learnfeed.learning.metrics import LearningMetricsRecorder
from learnfeed.learning.models import (
    Achievement,
    AchievementCriteria,
    ActivityMetadata,
    ActivityType,
    ContentDifficultyAssessment,
    DifficultyLevel,
    LearningProfile,
    LearningStreak,
    ProgressInsights,
    Recommendation,
    SkillAssessment,
    SkillLevel,
    UserAchievement,
)
from learnfeed.learning.progression import SkillProgressionEngine, update_streak
from learnfeed.learning.recommendations import RecommendationEvaluator
from learnfeed.learning.state_machine import (
    SkillLevelStateMachine,
    SkillLevelTransitionError,
)


__all__ = [
    "DEFAULT_ACHIEVEMENTS",
    "Achievement",
    "AchievementCriteria",
    "AchievementEvaluator",
    "ActivityMetadata",
    "ActivityType",
    "ContentDifficultyAssessment",
    "DifficultyLevel",
    "LearningMetricsRecorder",
    "LearningProfile",
    "LearningStreak",
    "ProgressInsights",
    "ProgressInsightsBuilder",
    "Recommendation",
    "RecommendationEvaluator",
    "SkillAssessment",
    "SkillLevel",
    "SkillLevelStateMachine",
    "SkillLevelTransitionError",
    "SkillProgressionEngine",
    "UserAchievement",
    "UserLockRegistry",
    "is_satisfied",
    "update_streak",
]
