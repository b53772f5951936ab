"""Progress insights and motivational messaging."""

import random

from learnfeed.learning.models import (
    LearningProfile,
    Milestone,
    ProgressInsights,
    SkillLevel,
    round_half_up,
)
from learnfeed.learning.progression import MASTERED, SkillProgressionEngine


GAP_EXPERIENCE = 500
GAP_CONFIDENCE = 60
STRONG_STREAK_DAYS = 7
MAX_ACTIONS = 3
MAX_MILESTONES = 3
_STRENGTH_LEVELS = frozenset({SkillLevel.ADVANCED, SkillLevel.EXPERT})


def recommended_actions(profile: LearningProfile) -> list[str]:
    """Suggest up to three habits to work on, from metrics, goals, and streaks."""
    actions: list[str] = []
    if profile.metrics.completion_rate < 0.6:
        actions.append("Focus on completing started content to improve retention")
    if profile.metrics.application_rate < 0.3:
        actions.append("Try applying more insights to real situations")
    if not profile.goals.short_term:
        actions.append("Set specific short-term learning goals to stay motivated")
    if profile.max_current_streak() < STRONG_STREAK_DAYS:
        actions.append("Build a consistent daily learning habit")
    return actions[:MAX_ACTIONS]


def motivational_message(
    profile: LearningProfile, progress_score: int, rng: random.Random
) -> str:
    """Pick an encouraging message.

    The candidate list depends only on the profile; the pick comes from the
    injected random source, so a seeded source reproduces the message.

    Args:
        profile: User's learning profile.
        progress_score: Overall progress score.
        rng: Random source.

    Returns:
        One message.
    """
    messages = [
        f"You're making excellent progress! Your learning score of {progress_score} "
        "shows real growth.",
        "Keep up the momentum! You've consumed "
        f"{profile.metrics.total_content_consumed} pieces of content.",
        "Your dedication is paying off. You're building valuable expertise every day.",
        "Great job staying curious and committed to learning. You're on the right path!",
    ]
    streak = profile.max_current_streak()
    if streak >= STRONG_STREAK_DAYS:
        messages.append(
            f"Incredible {streak}-day learning streak! You're building an amazing habit."
        )
    return rng.choice(messages)


class ProgressInsightsBuilder:
    """Builds ``ProgressInsights`` from a profile."""

    def __init__(self, engine: SkillProgressionEngine, rng: random.Random) -> None:
        """Initialize the builder.

        Args:
            engine: Progression engine for time-to-level estimates.
            rng: Random source for message selection.
        """
        self._engine = engine
        self._rng = rng

    def build(self, profile: LearningProfile) -> ProgressInsights:
        """Summarize a profile.

        Args:
            profile: User's learning profile.

        Returns:
            Insights with score, level, gaps, strengths, actions, milestones,
            and a motivational message.
        """
        skills = profile.skills
        levels = [s.level.number for s in skills.values()]
        score = round_half_up(sum(levels) / len(levels) * 20) if levels else 0

        gaps = [
            name
            for name, s in skills.items()
            if s.experience < GAP_EXPERIENCE or s.confidence < GAP_CONFIDENCE
        ]
        strengths = [
            name
            for name, s in skills.items()
            if s.level in _STRENGTH_LEVELS
        ]

        milestones: list[Milestone] = []
        for name, skill in skills.items():
            timeframe = self._engine.estimate_time_to_next_level(skill)
            if timeframe != MASTERED:
                milestones.append(Milestone(skill=name, timeframe=timeframe))

        return ProgressInsights(
            user_id=profile.user_id,
            overall_progress_score=score,
            current_level=SkillLevel.from_number(score / 20),
            skill_gaps=gaps,
            strengths=strengths,
            recommended_actions=recommended_actions(profile),
            next_milestones=milestones[:MAX_MILESTONES],
            motivational_message=motivational_message(profile, score, self._rng),
        )
