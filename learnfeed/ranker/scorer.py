"""Relevance scoring for unified items."""

import math
from collections.abc import Iterable
from datetime import datetime

import structlog

from learnfeed.config.schemas import ScoringConfig
from learnfeed.content.models import ItemType, UnifiedItem
from learnfeed.ranker.models import ScoreComponents, ScoredItem
from learnfeed.ranker.preferences import UserPreferenceProfile


logger = structlog.get_logger()

SECONDS_PER_HOUR = 3600.0


def tag_overlap_ratio(tags: Iterable[str], interests: Iterable[str]) -> float:
    """Fraction of tags matching any interest.

    A tag matches an interest when either string contains the other,
    case-insensitively.

    Args:
        tags: Item tags.
        interests: User interest keys.

    Returns:
        ``matching / max(len(tags), len(interests))``, or 0 when either is
        empty.
    """
    tag_list = [t.lower() for t in tags]
    interest_list = [i.lower() for i in interests]
    if not tag_list or not interest_list:
        return 0.0
    matching = sum(
        1
        for tag in tag_list
        if any(tag in interest or interest in tag for interest in interest_list)
    )
    return matching / max(len(tag_list), len(interest_list))


class RelevanceScorer:
    """Computes additive relevance scores.

    Scoring formula:
        score = recency + popularity + content_type + category + tag

    Where:
        - recency: exp(-age_hours / decay) * boost * recency_weight / 100
        - popularity: capped link popularity, neutral value for other types
        - content_type: type weight / 100 * personalized boost
        - category: category weight / 100 * factor (papers only)
        - tag: tag overlap with interests * tag weight
    """

    def __init__(self, config: ScoringConfig | None = None) -> None:
        """Initialize the scorer.

        Args:
            config: Scoring constants. Defaults to built-in values.
        """
        self._config = config or ScoringConfig()
        self._log = logger.bind(component="ranker", subcomponent="scorer")

    def user_interests(self, preferences: UserPreferenceProfile) -> list[str]:
        """Category keys whose weight exceeds the interest threshold."""
        threshold = self._config.interest_threshold
        return [
            name
            for name, weight in preferences.category_weights.items()
            if weight > threshold
        ]

    def _recency(
        self, item: UnifiedItem, preferences: UserPreferenceProfile, now: datetime
    ) -> float:
        # Future timestamps count as brand new
        age_hours = max(0.0, (now - item.published_at).total_seconds() / SECONDS_PER_HOUR)
        weight = preferences.feed_behavior.recency_weight
        boost = weight / 100 or self._config.default_recency_boost
        return math.exp(-age_hours / self._config.recency_decay_hours) * boost * weight / 100

    def _popularity(self, item: UnifiedItem, preferences: UserPreferenceProfile) -> float:
        if item.type is ItemType.LINK:
            signal = min(item.popularity / self._config.popularity_cap, 1.0)
        else:
            signal = self._config.neutral_popularity
        weight = preferences.feed_behavior.popularity_weight
        boost = weight / 100 or self._config.default_popularity_boost
        return signal * boost * weight / 100

    def _category(self, item: UnifiedItem, preferences: UserPreferenceProfile) -> float:
        if item.type is not ItemType.PAPER:
            return 0.0
        weight = preferences.category_weights.weight_for(item.category)
        if weight is None:
            weight = self._config.default_category_weight
        return weight / 100 * self._config.category_weight_factor

    def components(
        self, item: UnifiedItem, preferences: UserPreferenceProfile, now: datetime
    ) -> ScoreComponents:
        """Compute every scoring term for an item.

        Args:
            item: Item to score.
            preferences: User preference profile.
            now: Reference time for recency.

        Returns:
            ScoreComponents with one value per term.
        """
        type_weight = preferences.content_type_weights.weight_for(item.type.value)
        interests = self.user_interests(preferences)
        return ScoreComponents(
            recency_score=self._recency(item, preferences, now),
            popularity_score=self._popularity(item, preferences),
            content_type_score=type_weight / 100 * self._config.personalized_boost,
            category_score=self._category(item, preferences),
            tag_score=tag_overlap_ratio(item.tags, interests)
            * self._config.tag_relevance_weight,
        )

    def score(
        self, item: UnifiedItem, preferences: UserPreferenceProfile, now: datetime
    ) -> float:
        """Compute the scalar relevance score of an item."""
        return self.components(item, preferences, now).total_score

    def score_item(
        self, item: UnifiedItem, preferences: UserPreferenceProfile, now: datetime
    ) -> ScoredItem:
        """Score an item and attach the result as score and relevance."""
        components = self.components(item, preferences, now)
        total = components.total_score
        return ScoredItem(item=item, score=total, relevance=total, components=components)
