"""Personalized feed assembly.

Pipeline:
1. Resolve the user's preferences (absent -> default feed)
2. Fetch each source in proportion to its content-type weight
3. Normalize, score, order, and diversify
4. Paginate and cache the page
"""

import math
from collections.abc import Callable
from datetime import UTC, datetime

import structlog
from pydantic import ValidationError

from learnfeed.cache.keys import KeyIndex, feed_key
from learnfeed.cache.protocols import KeyValueCache
from learnfeed.config.schemas import EngineConfig
from learnfeed.content.models import UnifiedItem
from learnfeed.content.normalizer import ContentNormalizer
from learnfeed.errors import ValidationFailedError
from learnfeed.feed.models import FeedPage, Pagination
from learnfeed.ranker.metrics import RankerMetrics
from learnfeed.ranker.models import ScoredItem
from learnfeed.ranker.preferences import UserPreferenceProfile
from learnfeed.ranker.ranker import FeedRanker
from learnfeed.store.protocols import ContentRepository, UserRepository


logger = structlog.get_logger()

FEED_NAMESPACE = "feed"


def _utc_now() -> datetime:
    return datetime.now(UTC)


class FeedService:
    """Serves cached, paginated personalized feeds."""

    def __init__(
        self,
        content: ContentRepository,
        users: UserRepository,
        cache: KeyValueCache,
        config: EngineConfig | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the feed service.

        Args:
            content: Source record repository.
            users: Preference lookup.
            cache: Page cache.
            config: Engine configuration. Defaults to built-in values.
            clock: Source of the current UTC time.
        """
        self._content = content
        self._users = users
        self._cache = cache
        self._config = config or EngineConfig()
        self._clock = clock
        self._normalizer = ContentNormalizer(self._config.normalizer)
        self._ranker = FeedRanker(self._config.scoring, self._config.diversity)
        self._keys = KeyIndex(cache, FEED_NAMESPACE, self._config.feed.cache_ttl_seconds)
        self._metrics = RankerMetrics.get_instance()
        self._log = logger.bind(component="feed", subcomponent="service")

    @property
    def normalizer(self) -> ContentNormalizer:
        """Record normalizer in use."""
        return self._normalizer

    @property
    def key_index(self) -> KeyIndex:
        """Per-user record of written feed keys."""
        return self._keys

    def _validate_page(self, limit: int, offset: int) -> None:
        if limit < 1 or limit > self._config.feed.max_limit:
            msg = f"limit must be between 1 and {self._config.feed.max_limit}"
            raise ValidationFailedError(msg, field="limit")
        if offset < 0:
            raise ValidationFailedError("offset must be >= 0", field="offset")

    def get_personalized_feed(
        self,
        user_id: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> FeedPage:
        """Return one page of the user's feed.

        Args:
            user_id: Requesting user.
            limit: Page size; the configured default when None.
            offset: Items to skip.

        Returns:
            Feed page with pagination.

        Raises:
            ValidationFailedError: On an out-of-range limit or offset, or
                malformed stored preferences.
        """
        limit = self._config.feed.default_limit if limit is None else limit
        self._validate_page(limit, offset)

        key = feed_key(user_id, limit, offset)
        cached = self._load_cached(key)
        if cached is not None:
            self._metrics.record_cache(hit=True)
            self._log.debug("feed_cache_hit", user_id=user_id, limit=limit, offset=offset)
            return cached
        self._metrics.record_cache(hit=False)

        preferences = self._users.get_preferences(user_id)
        if preferences is None:
            ranked = self._default_ranking(limit)
        else:
            ranked = self._ranker.rank(
                self._fetch_personalized(preferences, limit), preferences, self._clock()
            )

        page = FeedPage(
            items=ranked[offset : offset + limit],
            pagination=Pagination.for_slice(limit, offset, len(ranked)),
            personalized=preferences is not None,
        )
        self._cache.set(key, page.model_dump(mode="json"), self._config.feed.cache_ttl_seconds)
        self._keys.track(user_id, key)
        self._log.info(
            "feed_page_built",
            user_id=user_id,
            personalized=page.personalized,
            total=page.pagination.total,
            returned=len(page.items),
        )
        return page

    def _load_cached(self, key: str) -> FeedPage | None:
        raw = self._cache.get(key)
        if raw is None:
            return None
        try:
            return FeedPage.model_validate(raw)
        except ValidationError:
            self._log.warning("feed_cache_entry_invalid", key=key)
            return None

    def _type_quota(self, weight: float, limit: int) -> int:
        """Source fetch size: the weight's share of the page, oversampled."""
        share = math.ceil(limit * weight / 100)
        return share * self._config.feed.oversample_factor

    def _paper_flags(self, preferences: UserPreferenceProfile) -> list[str]:
        """Classification flags whose category weight passes the threshold."""
        threshold = self._config.feed.paper_category_min_weight
        flags: list[str] = []
        for rule in self._config.normalizer.paper_category_rules:
            weight = preferences.category_weights.weight_for(rule.flag)
            if weight is not None and weight > threshold:
                flags.append(rule.flag)
        return flags

    def _fetch_personalized(
        self, preferences: UserPreferenceProfile, limit: int
    ) -> list[UnifiedItem]:
        weights = preferences.content_type_weights
        items: list[UnifiedItem] = []

        note_quota = self._type_quota(weights.note, limit)
        if note_quota > 0:
            items.extend(
                self._normalizer.from_note(n) for n in self._content.recent_notes(note_quota)
            )

        link_quota = self._type_quota(weights.link, limit)
        if link_quota > 0:
            items.extend(
                self._normalizer.from_link(s) for s in self._content.top_links(link_quota)
            )

        paper_quota = self._type_quota(weights.paper, limit)
        if paper_quota > 0:
            papers = self._content.recent_papers(
                paper_quota, classification_flags=self._paper_flags(preferences)
            )
            items.extend(self._normalizer.from_paper(p) for p in papers)

        self._log.debug(
            "feed_sources_fetched",
            note_quota=note_quota,
            link_quota=link_quota,
            paper_quota=paper_quota,
            fetched=len(items),
        )
        return items

    def _default_ranking(self, limit: int) -> list[ScoredItem]:
        """Newest notes then highest-scored links, unscored and undiversified."""
        half = math.ceil(limit / 2)
        notes = [self._normalizer.from_note(n) for n in self._content.recent_notes(half)]
        links = [self._normalizer.from_link(s) for s in self._content.top_links(half)]
        self._log.info("feed_default_served", notes=len(notes), links=len(links))
        return [ScoredItem.unscored(item) for item in notes + links]

    def invalidate_user(self, user_id: str) -> int:
        """Drop every cached feed page of one user.

        Returns:
            Number of cache keys deleted.
        """
        return self._keys.invalidate(user_id)
