"""Recommendation scoring against a user's skill profile."""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from learnfeed.config.schemas import ProgressionConfig
from learnfeed.learning.models import (
    ContentDifficultyAssessment,
    DifficultyLevel,
    LearningProfile,
    Priority,
    Recommendation,
    SkillAssessment,
)
from learnfeed.learning.progression import SkillProgressionEngine


BASE_RELEVANCE = 0.5
MAX_LEVEL_MATCH_BONUS = 0.3
LEVEL_DISTANCE_PENALTY = 0.1
GOAL_BONUS = 0.2
RECENT_ACTIVITY_BONUS = 0.1
HIGH_LEARNING_VALUE = 8


@dataclass(frozen=True)
class CandidateQuery:
    """Content lookup for one target skill.

    Attributes:
        skill_area: Skill to find content for.
        difficulty: Difficulty to request.
        limit: Maximum candidates to fetch.
    """

    skill_area: str
    difficulty: DifficultyLevel
    limit: int


class RecommendationEvaluator:
    """Scores and orders difficulty-tagged content for a user."""

    def __init__(self, config: ProgressionConfig | None = None) -> None:
        """Initialize the evaluator.

        Args:
            config: Progression constants. Defaults to built-in values.
        """
        self._config = config or ProgressionConfig()

    def candidate_queries(
        self, profile: LearningProfile, skill_area: str | None, limit: int
    ) -> list[CandidateQuery]:
        """Plan which content to fetch.

        One query per target skill at that skill's optimal difficulty; the
        limit is split evenly across skills, rounding up.

        Args:
            profile: User's learning profile.
            skill_area: Restrict to one skill, else every known skill.
            limit: Total recommendations wanted.

        Returns:
            Queries in skill order; empty when the user has no skills and
            no skill area was requested.
        """
        skills = [skill_area] if skill_area else list(profile.skills)
        if not skills:
            return []
        per_skill = math.ceil(limit / len(skills))
        return [
            CandidateQuery(
                skill_area=skill,
                difficulty=SkillProgressionEngine.optimal_difficulty(
                    profile.skills.get(skill), profile.difficulty_preference
                ),
                limit=per_skill,
            )
            for skill in skills
        ]

    def relevance(
        self,
        content: ContentDifficultyAssessment,
        skill: SkillAssessment | None,
        profile: LearningProfile,
        now: datetime,
    ) -> float:
        """Relevance of a content item to a user, clamped to [0, 1].

        Args:
            content: Candidate content.
            skill: User's assessment in the content's primary skill.
            profile: User's learning profile.
            now: Reference time for the recent-activity bonus.

        Returns:
            Relevance score.
        """
        score = BASE_RELEVANCE
        if skill is not None:
            distance = abs(skill.level.number - content.overall_difficulty.number)
            score += max(0.0, MAX_LEVEL_MATCH_BONUS - LEVEL_DISTANCE_PENALTY * distance)
        if profile.goals.covers(content.primary_skill_area):
            score += GOAL_BONUS
        recent = timedelta(days=self._config.recent_assessment_days)
        if skill is not None and skill.last_assessed_at > now - recent:
            score += RECENT_ACTIVITY_BONUS
        return min(1.0, max(0.0, score))

    @staticmethod
    def reason(
        content: ContentDifficultyAssessment,
        skill: SkillAssessment | None,
        profile: LearningProfile,
    ) -> str:
        """Explain why a content item is recommended."""
        area = content.primary_skill_area
        reasons: list[str] = []
        if skill is None:
            reasons.append(f"Great introduction to {area}")
        elif (
            SkillProgressionEngine.optimal_difficulty(skill, profile.difficulty_preference)
            is content.overall_difficulty
        ):
            reasons.append(f"Perfect difficulty match for your {area} level")
        if content.learning_value >= HIGH_LEARNING_VALUE:
            reasons.append("High learning value content")
        if any(g.skill == area for g in profile.goals.short_term):
            reasons.append("Aligned with your current learning goals")
        return ". ".join(reasons) or f"Recommended for {area} development"

    @staticmethod
    def priority(relevance: float, learning_value: float) -> Priority:
        """Bucket a recommendation into a priority level."""
        combined = relevance * 0.7 + learning_value / 10 * 0.3
        if combined >= 0.8:
            return "high"
        if combined >= 0.6:
            return "medium"
        return "low"

    def recommend(
        self,
        profile: LearningProfile,
        candidates: Sequence[ContentDifficultyAssessment],
        limit: int,
        now: datetime,
    ) -> list[Recommendation]:
        """Score, order, and truncate candidates.

        Args:
            profile: User's learning profile.
            candidates: Difficulty-tagged content.
            limit: Maximum recommendations to return.
            now: Reference time.

        Returns:
            Recommendations by blended score descending, content id ascending
            on ties.
        """
        recommendations: list[Recommendation] = []
        for content in candidates:
            skill = profile.skills.get(content.primary_skill_area)
            relevance = self.relevance(content, skill, profile, now)
            recommendations.append(
                Recommendation(
                    content_id=content.content_id,
                    content_type=content.content_type,
                    title=content.title
                    or f"Learning content for {content.primary_skill_area}",
                    difficulty=content.overall_difficulty,
                    relevance_score=relevance,
                    learning_value=content.learning_value,
                    estimated_time_minutes=content.time_to_understand_minutes,
                    skills_addressed=[
                        content.primary_skill_area,
                        *content.secondary_skill_areas,
                    ],
                    why_recommended=self.reason(content, skill, profile),
                    priority_level=self.priority(relevance, content.learning_value),
                )
            )
        recommendations.sort(key=lambda r: (-r.ranking_score, r.content_id))
        return recommendations[:limit]
