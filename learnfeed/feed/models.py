"""Data models for feed pages."""

from typing import Annotated

from pydantic import Field

from learnfeed.data_model import StrictBaseModel
from learnfeed.ranker.models import ScoredItem


class Pagination(StrictBaseModel):
    """Position of a page within the full ranking."""

    limit: Annotated[int, Field(ge=1)]
    offset: Annotated[int, Field(ge=0)]
    total: Annotated[int, Field(ge=0)]
    has_more: bool

    @classmethod
    def for_slice(cls, limit: int, offset: int, total: int) -> "Pagination":
        """Pagination of ``[offset, offset + limit)`` over ``total`` items."""
        return cls(limit=limit, offset=offset, total=total, has_more=offset + limit < total)


class FeedPage(StrictBaseModel):
    """One page of a user's feed.

    Attributes:
        items: Ranked items of this page.
        pagination: Page position.
        personalized: False when the user has no preferences and the
            default recency/popularity feed was served.
    """

    items: list[ScoredItem]
    pagination: Pagination
    personalized: bool = True
