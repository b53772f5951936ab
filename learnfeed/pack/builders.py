"""Conversion of unified items into pack tiles."""

import math
from datetime import datetime

from pydantic import JsonValue

from learnfeed.config.schemas import PackConfig
from learnfeed.content.models import NoteRecord, UnifiedItem
from learnfeed.content.url import display_domain
from learnfeed.llm.models import PaperSummary
from learnfeed.pack.models import PackItem, PackSource


ELLIPSIS = "…"
SYSTEM_AUTHOR = "system"


def truncate(text: str, max_chars: int) -> str:
    """Cut ``text`` to ``max_chars`` characters, ending in an ellipsis if cut."""
    if len(text) > max_chars:
        return text[: max_chars - 1] + ELLIPSIS
    return text


def word_count(text: str) -> int:
    """Number of whitespace-separated words."""
    return len(text.split())


class PackItemBuilder:
    """Builds pack tiles with reading time and why-it-matters lines."""

    def __init__(self, config: PackConfig) -> None:
        self._config = config

    def reading_minutes(self, text: str, ceiling: int) -> int:
        """Minutes to read ``text``, rounded up and clamped.

        Args:
            text: Text to estimate.
            ceiling: Upper bound for this source.

        Returns:
            Minutes within ``[min_reading_minutes, ceiling]``.
        """
        minutes = math.ceil(word_count(text) / self._config.words_per_minute)
        return max(self._config.min_reading_minutes, min(ceiling, minutes))

    @staticmethod
    def why_it_matters(topic: str, source: PackSource) -> str:
        """Templated relevance line for a source family."""
        spaced = topic.replace("-", " ")
        if source is PackSource.RESEARCH:
            return f"Fresh study aligned with your {spaced} focus."
        if source is PackSource.LINK:
            return f"Popular discussion relevant to {spaced}."
        return f"Actionable idea to apply in your {spaced} journey."

    def from_paper(
        self,
        item: UnifiedItem,
        topic: str,
        summary: PaperSummary | None = None,
    ) -> PackItem:
        """Build a research tile, refined by a summary when one is available.

        A summary replaces the abstract-derived tldr, adds paradigm scores to
        ``meta``, and when its dominant paradigm reaches the threshold the
        why-it-matters line names that paradigm.
        """
        text = item.body.strip()
        meta: dict[str, JsonValue] = {
            "category": item.category,
            "tags": sorted(item.tags),
        }
        tldr = truncate(text, self._config.tldr_max_chars) if text else None
        why = self.why_it_matters(topic, PackSource.RESEARCH)

        if summary is not None:
            if summary.tldr:
                tldr = summary.tldr
            meta["paradigms"] = dict(summary.paradigms)
            meta["merit_score"] = summary.merit_score
            top = summary.dominant_paradigm()
            if top is not None and top[1] >= self._config.paradigm_threshold:
                name = top[0].replace("_", " ", 1)
                why = f"Strongly relevant to {name} in your {topic} focus."

        return PackItem(
            id=item.id,
            source=PackSource.RESEARCH,
            title=item.title,
            tldr=tldr,
            why_it_matters=why,
            reading_minutes=self.reading_minutes(text, self._config.max_reading_minutes),
            url=item.url,
            domain=display_domain(item.url),
            source_label=item.source_label,
            published_at=item.published_at,
            meta=meta,
        )

    def from_link(self, item: UnifiedItem, topic: str) -> PackItem:
        """Build a link tile."""
        text = item.body.strip()
        return PackItem(
            id=item.id,
            source=PackSource.LINK,
            title=item.title,
            tldr=truncate(text, self._config.tldr_max_chars) if text else None,
            why_it_matters=self.why_it_matters(topic, PackSource.LINK),
            reading_minutes=self.reading_minutes(text, self._config.max_reading_minutes),
            url=item.url,
            domain=display_domain(item.url),
            source_label=item.source_label,
            published_at=item.published_at,
            meta={"score": int(item.popularity), "comments": item.comment_count},
        )

    def from_note(self, item: UnifiedItem, topic: str) -> PackItem:
        """Build a note tile; title and tldr are both cut from the body."""
        text = item.body.strip()
        return PackItem(
            id=item.id,
            source=PackSource.NOTE,
            title=truncate(text, self._config.note_title_max_chars),
            tldr=truncate(text, self._config.note_tldr_max_chars),
            why_it_matters=self.why_it_matters(topic, PackSource.NOTE),
            reading_minutes=self.reading_minutes(
                text, self._config.max_note_reading_minutes
            ),
            source_label=item.source_label,
            published_at=item.published_at,
            meta={"tags": sorted(item.tags)},
        )

    @staticmethod
    def filler_note(topic: str, index: int, now: datetime) -> NoteRecord:
        """Synthetic apply prompt used when notes are sparse."""
        return NoteRecord(
            id=f"apply-{topic}-{index}",
            content=(
                f"Apply: Spend 2 minutes practicing one concept from today's {topic} pack."
            ),
            tags=(topic, "apply"),
            author_id=SYSTEM_AUTHOR,
            author_handle=SYSTEM_AUTHOR,
            created_at=now,
        )

    def padding(self, topic: str, index: int) -> PackItem:
        """Synthetic tile that tops a sparse pack up to full size."""
        return PackItem(
            id=f"apply-{topic}-pad-{index}",
            source=PackSource.NOTE,
            title=f"Apply: Do a 2-minute action for {topic}",
            tldr=f"Pick one small step related to {topic} and do it now.",
            why_it_matters=self.why_it_matters(topic, PackSource.NOTE),
            reading_minutes=self._config.min_reading_minutes,
            meta={"synthetic": True},
        )
