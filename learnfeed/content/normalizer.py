"""Maps source records to unified items.

All mappings are pure and deterministic. Keyword tables and thresholds come
from ``NormalizerConfig`` rather than branches so they can be tuned without
code changes.
"""

from learnfeed.config.schemas import NormalizerConfig
from learnfeed.content.models import (
    ItemType,
    LinkStoryRecord,
    NoteRecord,
    PaperRecord,
    UnifiedItem,
)


NOTE_CATEGORY = "notes"
LINK_CATEGORY = "tech"
LINK_SOURCE_LABEL = "Hacker News"
DEFAULT_HANDLE = "user"


class ContentNormalizer:
    """Converts notes, link stories, and papers into ``UnifiedItem``."""

    def __init__(self, config: NormalizerConfig | None = None) -> None:
        """Initialize the normalizer.

        Args:
            config: Rule tables. Defaults to built-in values.
        """
        self._config = config or NormalizerConfig()

    @property
    def config(self) -> NormalizerConfig:
        """Rule tables in use."""
        return self._config

    def note_title(self, content: str) -> str:
        """Derive a note title from its body.

        Args:
            content: Note body.

        Returns:
            Body unchanged when short enough, else truncated plus "...".
        """
        limit = self._config.note_title_max_chars
        if len(content) > limit:
            return content[:limit] + "..."
        return content

    def from_note(self, note: NoteRecord) -> UnifiedItem:
        """Normalize a user note."""
        return UnifiedItem(
            id=note.id,
            type=ItemType.NOTE,
            title=self.note_title(note.content),
            body=note.content,
            published_at=note.created_at,
            category=NOTE_CATEGORY,
            tags=frozenset(note.tags),
            source_label=f"@{note.author_handle or DEFAULT_HANDLE}",
        )

    def link_tags(self, story: LinkStoryRecord) -> frozenset[str]:
        """Extract tags from a link story using the configured rule table.

        Args:
            story: Link story record.

        Returns:
            Set of derived tags.
        """
        text = f"{story.title} {story.text or ''}".lower()
        tags = {kw for kw in self._config.link_keywords if kw in text}
        tags.update(rule.tag for rule in self._config.link_phrase_tags if rule.phrase in text)
        if story.score > self._config.popular_score_threshold:
            tags.add("popular")
        if story.comment_count > self._config.discussion_comment_threshold:
            tags.add("discussion")
        return frozenset(tags)

    def from_link(self, story: LinkStoryRecord) -> UnifiedItem:
        """Normalize a link-aggregation story."""
        return UnifiedItem(
            id=story.id,
            type=ItemType.LINK,
            title=story.title,
            body=story.text or "",
            url=story.url,
            popularity=float(story.score),
            comment_count=story.comment_count,
            published_at=story.published_at,
            category=LINK_CATEGORY,
            tags=self.link_tags(story),
            source_label=LINK_SOURCE_LABEL,
        )

    def paper_category(self, paper: PaperRecord) -> str:
        """Pick a paper's category, first true flag wins.

        Args:
            paper: Paper record.

        Returns:
            Category label from the rule table, or the fallback.
        """
        flags = paper.classification
        for rule in self._config.paper_category_rules:
            if getattr(flags, rule.flag, False):
                return rule.category
        return self._config.paper_fallback_category

    @staticmethod
    def paper_source_label(authors: tuple[str, ...]) -> str:
        """Format the attribution for a paper.

        Args:
            authors: Author names in byline order.

        Returns:
            Label such as ``arXiv (A, B et al.)``.
        """
        if not authors:
            return "arXiv"
        shown = ", ".join(authors[:2])
        suffix = " et al." if len(authors) > 2 else ""
        return f"arXiv ({shown}{suffix})"

    def from_paper(self, paper: PaperRecord) -> UnifiedItem:
        """Normalize an academic paper."""
        return UnifiedItem(
            id=paper.id,
            type=ItemType.PAPER,
            title=paper.title,
            body=paper.abstract,
            url=paper.abstract_url or paper.pdf_url,
            popularity=0.0,
            published_at=paper.published_at,
            category=self.paper_category(paper),
            tags=frozenset(paper.tags),
            source_label=self.paper_source_label(paper.authors),
        )
