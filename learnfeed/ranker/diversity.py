"""Diversity filter bounding repetition of sources and categories."""

from collections import Counter, deque
from collections.abc import Sequence

import structlog

from learnfeed.config.schemas import DiversityConfig
from learnfeed.ranker.models import ScoredItem


logger = structlog.get_logger()


class DiversityFilter:
    """Reorders a ranked list so no source or category dominates a window.

    Walks the input once. An item is accepted when its source label and its
    category each appear fewer than ``max_consecutive`` times among the last
    ``window_size`` accepted items. Rejected items are appended after all
    accepted items in their original relative order, so the output is always
    a permutation of the input.
    """

    def __init__(self, config: DiversityConfig | None = None) -> None:
        """Initialize the filter.

        Args:
            config: Window settings. Defaults to built-in values.
        """
        self._config = config or DiversityConfig()
        self._log = logger.bind(component="ranker", subcomponent="diversity")

    def partition(
        self, items: Sequence[ScoredItem]
    ) -> tuple[list[ScoredItem], list[ScoredItem]]:
        """Split items into the accepted phase and the deferred tail.

        Args:
            items: Score-sorted items.

        Returns:
            Accepted and deferred items, each in input order.
        """
        window: deque[ScoredItem] = deque(maxlen=self._config.window_size)
        accepted: list[ScoredItem] = []
        deferred: list[ScoredItem] = []
        limit = self._config.max_consecutive

        for scored in items:
            sources = Counter(s.item.source_label for s in window)
            categories = Counter(s.item.category for s in window)
            if (
                sources[scored.item.source_label] < limit
                and categories[scored.item.category] < limit
            ):
                accepted.append(scored)
                window.append(scored)
            else:
                deferred.append(scored)

        if deferred:
            self._log.debug(
                "diversity_deferred",
                accepted=len(accepted),
                deferred=len(deferred),
            )
        return accepted, deferred

    def apply(self, items: Sequence[ScoredItem]) -> list[ScoredItem]:
        """Apply the diversity rule.

        Returns:
            Reordered items, same length and membership as the input.
        """
        accepted, deferred = self.partition(items)
        return accepted + deferred
