"""Factory for creating the paper summarizer from settings."""

import random

import structlog

from learnfeed.llm.prompts import SUMMARY_RESPONSE_SCHEMA
from learnfeed.llm.protocols import LlmClient
from learnfeed.llm.summarizer import GEMINI, OPENAI, LlmPaperSummarizer, ProviderSelector
from learnfeed.settings import AppSettings


logger = structlog.get_logger()


def create_summarizer(
    settings: AppSettings, timeout: float = 8.0
) -> LlmPaperSummarizer | None:
    """Create a summarizer using the configured API keys.

    Clients request JSON output shaped like a paper summary.

    Args:
        settings: Application settings.
        timeout: Per-request timeout, normally the pack's per-paper
            enrichment timeout.

    Returns:
        Summarizer over every provider with a key, or None when no key is
        configured.
    """
    log = logger.bind(component="llm", subcomponent="factory")
    clients: dict[str, LlmClient] = {}
    keys = settings.llm_api_keys()

    if GEMINI in keys:
        from learnfeed.llm.gemini_client import GeminiApiKeyClient

        clients[GEMINI] = GeminiApiKeyClient(
            api_key=keys[GEMINI],
            model=settings.gemini_model,
            timeout=timeout,
            response_schema=SUMMARY_RESPONSE_SCHEMA,
        )

    if OPENAI in keys:
        from learnfeed.llm.openai_client import OpenAiChatClient

        clients[OPENAI] = OpenAiChatClient(
            api_key=keys[OPENAI],
            model=settings.openai_model,
            timeout=timeout,
            json_output=True,
        )

    if not clients:
        log.info("llm_summarizer_disabled", reason="no_api_keys")
        return None

    selector = ProviderSelector(
        mode=settings.llm_provider,
        openai_split=settings.llm_openai_split,
        rng=random.Random(settings.llm_selection_seed),  # noqa: S311
    )
    log.info("llm_summarizer_created", providers=sorted(clients), mode=settings.llm_provider)
    return LlmPaperSummarizer(clients, selector)
