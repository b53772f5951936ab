"""Data models for source records and the unified item abstraction."""

from enum import Enum
from typing import Annotated

from pydantic import Field

from learnfeed.data_model import StrictBaseModel, UtcDatetime


class ItemType(str, Enum):
    """Kind of content behind a unified item.

    - NOTE: User-authored short post
    - LINK: Story from the link-aggregation feed
    - PAPER: Academic paper
    """

    NOTE = "note"
    LINK = "link"
    PAPER = "paper"


class NoteRecord(StrictBaseModel):
    """A user-authored note as stored.

    Attributes:
        id: Note identifier.
        content: Note body.
        tags: Author-supplied tags.
        author_id: Identifier of the authoring user.
        author_handle: Public handle of the author, if known.
        created_at: Creation timestamp.
    """

    id: Annotated[str, Field(min_length=1)]
    content: str
    tags: tuple[str, ...] = ()
    author_id: str = ""
    author_handle: str | None = None
    created_at: UtcDatetime


class LinkStoryRecord(StrictBaseModel):
    """A story from the link-aggregation feed.

    Attributes:
        id: Upstream story identifier.
        title: Story title.
        url: Target URL, absent for text posts.
        text: Text body for self posts.
        author: Submitting user name.
        score: Upstream vote score.
        comment_count: Number of comments.
        published_at: Submission timestamp.
    """

    id: Annotated[str, Field(min_length=1)]
    title: str
    url: str | None = None
    text: str | None = None
    author: str = ""
    score: Annotated[int, Field(ge=0)] = 0
    comment_count: Annotated[int, Field(ge=0)] = 0
    published_at: UtcDatetime


class PaperClassification(StrictBaseModel):
    """Topical classification flags of a paper."""

    psychology: bool = False
    behavioral_science: bool = False
    health_science: bool = False
    neuroscience: bool = False
    cognitive_science: bool = False
    ai_ml: bool = False
    computer_science: bool = False


class PaperRecord(StrictBaseModel):
    """An academic paper as stored.

    Attributes:
        id: Paper identifier (e.g. arXiv id).
        title: Paper title.
        abstract: Paper abstract.
        authors: Author names in byline order.
        categories: Upstream subject categories.
        tags: Derived tags.
        published_at: Publication timestamp.
        abstract_url: Abstract page URL.
        pdf_url: PDF URL, if known.
        classification: Topical flags used for category assignment.
    """

    id: Annotated[str, Field(min_length=1)]
    title: str
    abstract: str = ""
    authors: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    published_at: UtcDatetime
    abstract_url: str = ""
    pdf_url: str | None = None
    classification: PaperClassification = Field(default_factory=PaperClassification)


class UnifiedItem(StrictBaseModel):
    """Source-agnostic item consumed by the ranker and pack composer.

    Derived fresh per request and never persisted.

    Attributes:
        id: Identifier, unique within its type.
        type: Kind of content.
        title: Display title.
        body: Full text used for reading-time estimates.
        url: Target URL, if any.
        popularity: Native popularity signal (link score), else 0.
        comment_count: Comment count, links only.
        published_at: Publication timestamp.
        category: Category label.
        tags: Tag set.
        source_label: Human-readable source attribution.
    """

    id: Annotated[str, Field(min_length=1)]
    type: ItemType
    title: str
    body: str = ""
    url: str | None = None
    popularity: Annotated[float, Field(ge=0.0)] = 0.0
    comment_count: Annotated[int, Field(ge=0)] = 0
    published_at: UtcDatetime
    category: Annotated[str, Field(min_length=1)]
    tags: frozenset[str] = frozenset()
    source_label: str
