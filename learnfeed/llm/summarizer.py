"""Paper summarization with weighted provider selection and fallback."""

import random
from collections.abc import Mapping
from typing import Literal

import structlog

from learnfeed.errors import ExternalProviderError
from learnfeed.llm.deadline import expired
from learnfeed.llm.errors import LlmApiError, LlmProcessingError
from learnfeed.llm.json_utils import json_candidates, strip_markdown_fences, try_parse_json_object
from learnfeed.llm.models import PaperSummary
from learnfeed.llm.prompts import SYSTEM_INSTRUCTION, build_summary_prompt
from learnfeed.llm.protocols import LlmClient


logger = structlog.get_logger()

GEMINI = "gemini"
OPENAI = "openai"

ProviderMode = Literal["auto", "gemini", "openai"]


class ProviderSelector:
    """Chooses the provider order for one summarization call.

    In ``auto`` mode with both providers available, OpenAI goes first with
    probability ``openai_split``. A forced mode falls back to the other
    provider when its own is unavailable. The random source is injected so
    selection replays deterministically under a fixed seed.
    """

    def __init__(
        self,
        mode: ProviderMode = "auto",
        openai_split: float = 0.0,
        rng: random.Random | None = None,
    ) -> None:
        self._mode = mode
        self._split = max(0.0, min(1.0, openai_split))
        self._rng = rng or random.Random()  # noqa: S311

    def primary(self, available: set[str]) -> str:
        """Pick the first provider to try."""
        has_gemini = GEMINI in available
        has_openai = OPENAI in available
        if self._mode == GEMINI:
            return GEMINI if has_gemini else OPENAI
        if self._mode == OPENAI:
            return OPENAI if has_openai else GEMINI
        if has_gemini and has_openai:
            return OPENAI if self._rng.random() < self._split else GEMINI
        return GEMINI if has_gemini else OPENAI

    def order(self, available: set[str]) -> list[str]:
        """Primary provider followed by the other one."""
        first = self.primary(available)
        second = OPENAI if first == GEMINI else GEMINI
        return [first, second]


def parse_summary(raw_response: str) -> PaperSummary:
    """Parse a provider response into a normalized summary.

    Args:
        raw_response: Raw text returned by the model.

    Returns:
        Normalized summary.

    Raises:
        LlmProcessingError: If no JSON object can be extracted.
    """
    text = strip_markdown_fences(raw_response)
    for candidate in json_candidates(text):
        parsed = try_parse_json_object(candidate)
        if parsed is not None:
            return PaperSummary.from_raw(parsed)

    msg = f"Failed to parse LLM response as JSON after all fallbacks: {text[:200]}"
    raise LlmProcessingError(msg)


class LlmPaperSummarizer:
    """Summarizes papers via the configured providers.

    Providers are tried in the order chosen by ``ProviderSelector``. An API
    failure or unparseable response moves on to the next provider, unless
    the caller's deadline has passed.
    """

    def __init__(
        self,
        clients: Mapping[str, LlmClient],
        selector: ProviderSelector | None = None,
    ) -> None:
        """Initialize the summarizer.

        Args:
            clients: Provider name to client; absent providers are skipped.
            selector: Provider ordering strategy.
        """
        self._clients = dict(clients)
        self._selector = selector or ProviderSelector()
        self._log = logger.bind(component="llm", subcomponent="summarizer")

    @property
    def providers(self) -> set[str]:
        """Names of configured providers."""
        return set(self._clients)

    def summarize(
        self,
        title: str,
        abstract: str | None = None,
        url: str | None = None,
        deadline: float | None = None,
    ) -> PaperSummary | None:
        """Summarize a paper with provider fallback.

        Args:
            title: Paper title.
            abstract: Paper abstract, if known.
            url: Abstract page URL, if known.
            deadline: Optional ``time.monotonic()`` deadline shared by every
                provider attempt.

        Returns:
            Normalized summary, or None if no provider is configured or
            every response was unparseable.

        Raises:
            ExternalProviderError: If every attempted provider call failed.
        """
        if not self._clients:
            return None

        prompt = build_summary_prompt(title, abstract, url)
        attempted = 0
        api_failures = 0
        for provider in self._selector.order(set(self._clients)):
            client = self._clients.get(provider)
            if client is None:
                continue
            if expired(deadline):
                self._log.warning("llm_summary_deadline_exceeded", skipped=provider)
                break
            attempted += 1
            try:
                raw = client.generate_content(
                    prompt, system_instruction=SYSTEM_INSTRUCTION, deadline=deadline
                )
                summary = parse_summary(raw)
            except LlmApiError as exc:
                api_failures += 1
                self._log.warning(
                    "llm_summary_api_error",
                    provider=provider,
                    status=exc.status_code,
                    error=str(exc),
                )
                continue
            except LlmProcessingError as exc:
                self._log.warning("llm_summary_parse_error", provider=provider, error=str(exc))
                continue

            self._log.debug("llm_summary_complete", provider=provider)
            return summary

        if attempted and api_failures == attempted:
            raise ExternalProviderError("llm", f"all {attempted} provider calls failed")
        return None
