"""Composition root wiring stores, caches, and services together."""

from dataclasses import dataclass

import structlog

from learnfeed.cache.memory import InMemoryCache
from learnfeed.cache.protocols import KeyValueCache
from learnfeed.cache.redis_cache import RedisCache
from learnfeed.config.loader import ConfigLoader
from learnfeed.config.schemas import EngineConfig
from learnfeed.feed.service import FeedService
from learnfeed.interactions.service import InteractionService
from learnfeed.learning.metrics import LearningMetricsRecorder
from learnfeed.learning.service import LearningService
from learnfeed.llm.factory import create_summarizer
from learnfeed.pack.composer import DailyPackComposer
from learnfeed.pack.metrics import PackMetrics
from learnfeed.ranker.metrics import RankerMetrics
from learnfeed.settings import AppSettings
from learnfeed.store.metrics import StoreMetrics
from learnfeed.store.store import StateStore


logger = structlog.get_logger()


@dataclass
class Services:
    """Every exposed operation, grouped by service."""

    store: StateStore
    cache: KeyValueCache
    config: EngineConfig
    feed: FeedService
    pack: DailyPackComposer
    learning: LearningService
    interactions: InteractionService

    def close(self) -> None:
        """Log a metrics snapshot and release the database connection."""
        logger.bind(component="app").debug(
            "service_metrics",
            store=StoreMetrics.get_instance().to_dict(),
            ranker=RankerMetrics.get_instance().to_dict(),
            pack=PackMetrics.get_instance().to_dict(),
            learning=LearningMetricsRecorder.get_instance().to_dict(),
        )
        self.store.close()


def create_cache(settings: AppSettings) -> KeyValueCache:
    """Redis when ``REDIS_URL`` is set, else an in-process cache."""
    if settings.redis_url:
        return RedisCache.from_url(settings.redis_url)
    return InMemoryCache()


def build_services(
    settings: AppSettings,
    config: EngineConfig | None = None,
    cache: KeyValueCache | None = None,
) -> Services:
    """Connect the store and construct every service.

    Args:
        settings: Environment settings.
        config: Engine configuration; loaded from ``engine_config_path``
            when None.
        cache: Cache override; chosen from settings when None.

    Returns:
        Connected services.

    Raises:
        ConfigValidationError: If the engine configuration file is invalid.
    """
    if config is None:
        config = ConfigLoader().load(settings.engine_config_path)
    cache = cache or create_cache(settings)

    store = StateStore(settings.db_path)
    store.connect()

    pack_config = config.pack
    if settings.enrichment_timeout_seconds is not None:
        pack_config = pack_config.model_copy(
            update={"enrichment_timeout_seconds": settings.enrichment_timeout_seconds}
        )

    feed = FeedService(store, store, cache, config)
    services = Services(
        store=store,
        cache=cache,
        config=config,
        feed=feed,
        pack=DailyPackComposer(
            store,
            cache,
            pack_config,
            summarizer=create_summarizer(settings, pack_config.enrichment_timeout_seconds),
            normalizer=feed.normalizer,
        ),
        learning=LearningService(store, store, cache, config.progression),
        interactions=InteractionService(store, feed.key_index),
    )
    logger.bind(component="app").info(
        "services_ready",
        db_path=str(settings.db_path),
        cache=type(cache).__name__,
    )
    return services
