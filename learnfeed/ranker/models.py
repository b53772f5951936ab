"""Data models for the feed ranker."""

from learnfeed.content.models import UnifiedItem
from learnfeed.data_model import StrictBaseModel


class ScoreComponents(StrictBaseModel):
    """Breakdown of an item's relevance score into additive terms.

    Attributes:
        recency_score: Exponential recency decay term.
        popularity_score: Popularity term.
        content_type_score: Content-type preference term.
        category_score: Category preference term (papers only).
        tag_score: Tag overlap with user interests.
    """

    recency_score: float = 0.0
    popularity_score: float = 0.0
    content_type_score: float = 0.0
    category_score: float = 0.0
    tag_score: float = 0.0

    @property
    def total_score(self) -> float:
        """Sum of all components."""
        return (
            self.recency_score
            + self.popularity_score
            + self.content_type_score
            + self.category_score
            + self.tag_score
        )


class ScoredItem(StrictBaseModel):
    """A unified item with its computed score.

    ``relevance`` mirrors ``score`` and is the value exposed to callers.
    """

    item: UnifiedItem
    score: float
    relevance: float
    components: ScoreComponents | None = None

    @classmethod
    def unscored(cls, item: UnifiedItem) -> "ScoredItem":
        """Wrap an item that was ordered without relevance scoring."""
        return cls(item=item, score=0.0, relevance=0.0)
