"""Best-effort paper enrichment with cached summaries."""

import time
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor

import structlog
from pydantic import ValidationError

from learnfeed.cache.keys import summary_key
from learnfeed.cache.protocols import KeyValueCache
from learnfeed.config.schemas import PackConfig
from learnfeed.content.models import PaperRecord
from learnfeed.errors import ExternalProviderError
from learnfeed.llm.deadline import deadline_after
from learnfeed.llm.models import PaperSummary
from learnfeed.llm.protocols import PaperSummarizer
from learnfeed.pack.metrics import PackMetrics


logger = structlog.get_logger()


class PaperEnricher:
    """Attaches LLM summaries to papers without ever blocking a pack.

    Cached summaries are used first. Misses are summarized concurrently;
    each result is awaited for at most ``enrichment_timeout_seconds``, and
    a timeout or provider failure leaves that paper unenriched. The same
    timeout is handed to the summarizer as a deadline so abandoned calls
    stop retrying and falling back instead of running on in the pool.
    """

    def __init__(
        self,
        cache: KeyValueCache,
        config: PackConfig,
        summarizer: PaperSummarizer | None = None,
    ) -> None:
        """Initialize the enricher.

        Args:
            cache: Cache for per-paper summaries.
            config: Pack configuration (timeouts, workers, TTLs).
            summarizer: Summarization provider; None disables enrichment
                beyond cached summaries.
        """
        self._cache = cache
        self._config = config
        self._summarizer = summarizer
        self._metrics = PackMetrics.get_instance()
        self._log = logger.bind(component="pack", subcomponent="enrichment")

    def cached_summary(self, paper_id: str) -> PaperSummary | None:
        """Summary cached for a paper, or None."""
        raw = self._cache.get(summary_key(paper_id))
        if not isinstance(raw, dict):
            return None
        try:
            return PaperSummary.model_validate(raw)
        except ValidationError:
            self._log.warning("summary_cache_entry_invalid", paper_id=paper_id)
            self._cache.delete(summary_key(paper_id))
            return None

    def enrich(self, papers: Sequence[PaperRecord]) -> dict[str, PaperSummary]:
        """Summaries for as many papers as possible.

        Args:
            papers: Papers selected for the pack.

        Returns:
            Mapping of paper id to summary; papers without one are absent.
        """
        summaries: dict[str, PaperSummary] = {}
        misses: list[PaperRecord] = []
        for paper in papers:
            cached = self.cached_summary(paper.id)
            if cached is not None:
                summaries[paper.id] = cached
                self._metrics.summary_cache_hits += 1
            else:
                misses.append(paper)

        summarizer = self._summarizer
        if not misses or summarizer is None:
            return summaries

        start = time.perf_counter()
        executor = ThreadPoolExecutor(
            max_workers=min(self._config.enrichment_workers, len(misses)),
            thread_name_prefix="pack-enrich",
        )
        try:
            futures: list[tuple[PaperRecord, Future[PaperSummary | None]]] = [
                (paper, executor.submit(self._summarize, summarizer, paper))
                for paper in misses
            ]
            for paper, future in futures:
                summary = self._await(paper, future)
                if summary is None:
                    continue
                summaries[paper.id] = summary
                self._cache.set(
                    summary_key(paper.id),
                    summary.model_dump(mode="json"),
                    self._config.summary_ttl_seconds,
                )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        self._log.info(
            "pack_enrichment_complete",
            requested=len(misses),
            enriched=len(summaries),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return summaries

    def _summarize(
        self, summarizer: PaperSummarizer, paper: PaperRecord
    ) -> PaperSummary | None:
        """Summarize one paper under a deadline starting when the call starts."""
        return summarizer.summarize(
            paper.title,
            paper.abstract or None,
            paper.abstract_url or None,
            deadline=deadline_after(self._config.enrichment_timeout_seconds),
        )

    def _await(
        self, paper: PaperRecord, future: "Future[PaperSummary | None]"
    ) -> PaperSummary | None:
        """Wait for one summary, mapping every failure to None."""
        self._metrics.summary_calls += 1
        try:
            return future.result(timeout=self._config.enrichment_timeout_seconds)
        except TimeoutError:
            future.cancel()
            self._metrics.summary_timeouts += 1
            self._log.warning(
                "pack_enrichment_timeout",
                paper_id=paper.id,
                timeout_s=self._config.enrichment_timeout_seconds,
            )
        except ExternalProviderError as exc:
            self._metrics.summary_failures += 1
            self._log.warning(
                "pack_enrichment_failed", paper_id=paper.id, error=exc.to_dict()
            )
        except Exception as exc:  # noqa: BLE001
            self._metrics.summary_failures += 1
            self._log.error(
                "pack_enrichment_error",
                paper_id=paper.id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
        return None
