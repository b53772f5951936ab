"""Data models for daily packs and pack feedback."""

from datetime import date
from enum import Enum
from typing import Annotated

from pydantic import Field, JsonValue

from learnfeed.data_model import StrictBaseModel, UtcDatetime


class PackSource(str, Enum):
    """Source family of a pack slot.

    - RESEARCH: Academic paper
    - LINK: Link-aggregation story
    - NOTE: User note or synthetic apply prompt
    """

    RESEARCH = "research"
    LINK = "link"
    NOTE = "note"


class FeedbackAction(str, Enum):
    """Reaction a user can record against a pack item."""

    SAVE = "save"
    MORE = "more"
    LESS = "less"
    SKIP = "skip"


class PackItem(StrictBaseModel):
    """One tile of a daily pack.

    Attributes:
        id: Source item id, or a synthetic ``apply-`` id.
        source: Source family.
        title: Display title.
        tldr: Short summary, None when the source has no text.
        why_it_matters: One-line relevance statement.
        reading_minutes: Estimated reading time.
        url: Target URL, if any.
        domain: Display domain of ``url``.
        source_label: Attribution line.
        published_at: Publication timestamp, if known.
        meta: Source-specific extras (scores, tags, paradigms).
    """

    id: Annotated[str, Field(min_length=1)]
    source: PackSource
    title: str
    tldr: str | None = None
    why_it_matters: str
    reading_minutes: Annotated[int, Field(ge=1)]
    url: str | None = None
    domain: str | None = None
    source_label: str | None = None
    published_at: UtcDatetime | None = None
    meta: dict[str, JsonValue] = Field(default_factory=dict)


class DailyPack(StrictBaseModel):
    """A user's pack for one calendar day."""

    date: date
    topic: Annotated[str, Field(min_length=1)]
    items: list[PackItem]


class FeedbackEntry(StrictBaseModel):
    """A recorded reaction to a pack item."""

    item_id: Annotated[str, Field(min_length=1)]
    source: PackSource
    action: FeedbackAction
    ts: UtcDatetime
