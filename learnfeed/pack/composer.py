"""Daily pack composition.

A pack is a fixed-size slate of research, link, and note tiles for one user,
topic, and calendar day. Sources are oversampled, placed by an interleave
pattern with backfill from whichever pool still has items, topped up from
overflow research then links, and finally padded with synthetic apply
prompts.
"""

from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import structlog
from pydantic import ValidationError

from learnfeed.cache.keys import feedback_key, pack_key
from learnfeed.cache.protocols import KeyValueCache
from learnfeed.config.schemas import PackConfig
from learnfeed.content.normalizer import ContentNormalizer
from learnfeed.errors import ValidationFailedError
from learnfeed.llm.protocols import PaperSummarizer
from learnfeed.pack.builders import PackItemBuilder
from learnfeed.pack.enrichment import PaperEnricher
from learnfeed.pack.metrics import PackMetrics
from learnfeed.pack.models import (
    DailyPack,
    FeedbackEntry,
    PackItem,
    PackSource,
)
from learnfeed.pack.topics import TopicClassifier
from learnfeed.store.protocols import ContentRepository


logger = structlog.get_logger()

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class DailyPackComposer:
    """Builds, caches, and collects feedback on daily packs."""

    def __init__(
        self,
        content: ContentRepository,
        cache: KeyValueCache,
        config: PackConfig | None = None,
        summarizer: PaperSummarizer | None = None,
        normalizer: ContentNormalizer | None = None,
        clock: Clock = _utc_now,
    ) -> None:
        """Initialize the composer.

        Args:
            content: Source record repository.
            cache: Cache for packs, summaries, and feedback.
            config: Pack configuration. Defaults to built-in values.
            summarizer: Optional paper summarizer for enrichment.
            normalizer: Record normalizer. Defaults to built-in rules.
            clock: Source of the current UTC time.
        """
        self._content = content
        self._cache = cache
        self._config = config or PackConfig()
        self._normalizer = normalizer or ContentNormalizer()
        self._clock = clock
        self._topics = TopicClassifier(self._config.topic_rules, self._config.default_topic)
        self._builder = PackItemBuilder(self._config)
        self._enricher = PaperEnricher(cache, self._config, summarizer)
        self._metrics = PackMetrics.get_instance()
        self._log = logger.bind(component="pack", subcomponent="composer")

    @property
    def config(self) -> PackConfig:
        """Pack configuration in use."""
        return self._config

    def get_daily_pack(self, user_id: str, topic: str | None = None) -> DailyPack:
        """Return today's pack for a user.

        A cached pack is reused when no topic is requested or its topic
        matches; otherwise a fresh pack replaces it.

        Args:
            user_id: Requesting user.
            topic: Requested topic, case-insensitive.

        Returns:
            The daily pack.
        """
        now = self._clock()
        today = now.date()
        effective_topic = self._topics.normalize(topic)
        key = pack_key(user_id, today)

        cached = self._load_cached(key)
        if cached is not None and (not topic or cached.topic == effective_topic):
            self._metrics.cache_hits += 1
            self._log.debug("pack_cache_hit", user_id=user_id, topic=cached.topic)
            return cached

        pack = DailyPack(date=today, topic=effective_topic, items=self.build(effective_topic, now))
        self._cache.set(key, pack.model_dump(mode="json"), self._config.cache_ttl_seconds)
        self._metrics.packs_built += 1
        self._log.info(
            "pack_built",
            user_id=user_id,
            topic=effective_topic,
            item_count=len(pack.items),
            replaced_topic=cached.topic if cached else None,
        )
        return pack

    def _load_cached(self, key: str) -> DailyPack | None:
        raw = self._cache.get(key)
        if raw is None:
            return None
        try:
            return DailyPack.model_validate(raw)
        except ValidationError:
            self._log.warning("pack_cache_entry_invalid", key=key)
            return None

    def build(self, topic: str, now: datetime) -> list[PackItem]:
        """Compose the tiles for a topic.

        Args:
            topic: Normalized topic.
            now: Reference time for freshness windows.

        Returns:
            Exactly ``size`` tiles.
        """
        cfg = self._config
        keywords = self._topics.keywords_for(topic)

        papers = self._content.recent_papers(
            cfg.research_target * cfg.research_oversample,
            since=now - timedelta(days=cfg.research_max_age_days),
            keywords=keywords,
        )
        links = self._content.top_links(
            cfg.link_target * cfg.link_oversample,
            since=now - timedelta(hours=cfg.link_max_age_hours),
            keywords=keywords,
        )
        notes = self._content.recent_notes(cfg.note_target * cfg.note_oversample, keywords=keywords)
        if len(notes) < cfg.note_target:
            notes = notes + [
                self._builder.filler_note(topic, idx, now)
                for idx in range(cfg.note_target - len(notes))
            ]

        picked_papers = papers[: cfg.research_target]
        summaries = self._enricher.enrich(picked_papers)
        pools: dict[PackSource, deque[PackItem]] = {
            PackSource.RESEARCH: deque(
                self._builder.from_paper(
                    self._normalizer.from_paper(p), topic, summaries.get(p.id)
                )
                for p in picked_papers
            ),
            PackSource.LINK: deque(
                self._builder.from_link(self._normalizer.from_link(s), topic)
                for s in links[: cfg.link_target]
            ),
            PackSource.NOTE: deque(
                self._builder.from_note(self._normalizer.from_note(n), topic)
                for n in notes[: cfg.note_target]
            ),
        }

        items: list[PackItem] = []
        for slot in cfg.interleave_pattern:
            pool = pools[PackSource(slot)]
            if not pool:
                pool = next((p for p in pools.values() if p), pool)
            if pool:
                items.append(pool.popleft())

        overflow: deque[PackItem] = deque(
            self._builder.from_paper(self._normalizer.from_paper(p), topic)
            for p in papers[cfg.research_target :]
        )
        overflow.extend(
            self._builder.from_link(self._normalizer.from_link(s), topic)
            for s in links[cfg.link_target :]
        )
        padded = 0
        while len(items) < cfg.size:
            if overflow:
                items.append(overflow.popleft())
            else:
                items.append(self._builder.padding(topic, len(items)))
                padded += 1

        self._metrics.padding_items += padded
        self._log.debug(
            "pack_composed",
            topic=topic,
            keywords=len(keywords),
            papers=len(papers),
            links=len(links),
            notes=len(notes),
            enriched=len(summaries),
            padded=padded,
        )
        return items[: cfg.size]

    def record_feedback(
        self,
        user_id: str,
        item_id: str,
        source: str,
        action: str,
    ) -> FeedbackEntry:
        """Append a reaction to the user's feedback list for today.

        Args:
            user_id: Reacting user.
            item_id: Pack item id.
            source: Pack source family of the item.
            action: One of save, more, less, skip.

        Returns:
            The recorded entry.

        Raises:
            ValidationFailedError: If source or action is unknown.
        """
        now = self._clock()
        try:
            entry = FeedbackEntry.model_validate(
                {"item_id": item_id, "source": source, "action": action, "ts": now}
            )
        except ValidationError as exc:
            raise ValidationFailedError.from_pydantic(exc) from exc

        key = feedback_key(user_id, now.date())
        existing = self._cache.get(key)
        entries = list(existing) if isinstance(existing, list) else []
        entries.append(entry.model_dump(mode="json"))
        self._cache.set(key, entries, self._config.feedback_ttl_seconds)
        self._metrics.feedback_recorded += 1
        self._log.info(
            "pack_feedback_recorded",
            user_id=user_id,
            item_id=item_id,
            action=entry.action.value,
        )
        return entry
