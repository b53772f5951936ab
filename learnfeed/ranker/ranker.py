"""Feed ranker: score, order, and diversify unified items."""

import time
from collections.abc import Sequence
from datetime import datetime

import structlog

from learnfeed.config.schemas import DiversityConfig, ScoringConfig
from learnfeed.content.models import UnifiedItem
from learnfeed.ranker.diversity import DiversityFilter
from learnfeed.ranker.metrics import RankerMetrics
from learnfeed.ranker.models import ScoredItem
from learnfeed.ranker.preferences import UserPreferenceProfile
from learnfeed.ranker.scorer import RelevanceScorer


logger = structlog.get_logger()


def ranking_key(scored: ScoredItem) -> tuple[float, float, str]:
    """Sort key: score descending, then newest first, then id ascending."""
    return (-scored.score, -scored.item.published_at.timestamp(), scored.item.id)


def order_scored(items: Sequence[ScoredItem]) -> list[ScoredItem]:
    """Order scored items by the ranking key."""
    return sorted(items, key=ranking_key)


class FeedRanker:
    """Ranks unified items for one user.

    Pipeline:
    1. Score every item with the relevance scorer
    2. Sort by score with an explicit tie-break
    3. Reorder with the diversity filter
    """

    def __init__(
        self,
        scoring: ScoringConfig | None = None,
        diversity: DiversityConfig | None = None,
    ) -> None:
        """Initialize the ranker.

        Args:
            scoring: Scoring constants.
            diversity: Diversity window settings.
        """
        self._scorer = RelevanceScorer(scoring)
        self._diversity = DiversityFilter(diversity)
        self._metrics = RankerMetrics.get_instance()
        self._log = logger.bind(component="ranker", subcomponent="ranker")

    @property
    def scorer(self) -> RelevanceScorer:
        """Relevance scorer in use."""
        return self._scorer

    def rank(
        self,
        items: Sequence[UnifiedItem],
        preferences: UserPreferenceProfile,
        now: datetime,
    ) -> list[ScoredItem]:
        """Rank items for a user.

        Args:
            items: Candidate items.
            preferences: User preference profile.
            now: Reference time for recency.

        Returns:
            Diversified ranking containing every input item exactly once.
        """
        start = time.perf_counter()
        scored = [self._scorer.score_item(item, preferences, now) for item in items]
        ordered = order_scored(scored)
        scoring_ms = (time.perf_counter() - start) * 1000

        start = time.perf_counter()
        accepted, deferred = self._diversity.partition(ordered)
        diversified = accepted + deferred
        diversity_ms = (time.perf_counter() - start) * 1000

        for entry in scored:
            self._metrics.record_score(entry.score)
        self._metrics.record_ranking(
            len(items), len(diversified), len(deferred)
        )
        self._metrics.record_durations(scoring_ms, diversity_ms)

        self._log.info(
            "ranking_complete",
            items_in=len(items),
            items_out=len(diversified),
            deferred=len(deferred),
            scoring_duration_ms=round(scoring_ms, 2),
            diversity_duration_ms=round(diversity_ms, 2),
        )
        return diversified

    def diversify(self, items: Sequence[ScoredItem]) -> list[ScoredItem]:
        """Apply only the diversity filter to an already ordered list."""
        return self._diversity.apply(items)
