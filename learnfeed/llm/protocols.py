"""Protocol interfaces for LLM clients and paper summarizers."""

from typing import Protocol, runtime_checkable

from learnfeed.llm.models import PaperSummary


@runtime_checkable
class LlmClient(Protocol):
    """Protocol for LLM content generation clients.

    Any client that implements ``generate_content`` with the matching
    signature can be used interchangeably by the summarizer, regardless
    of the provider behind it.
    """

    def generate_content(
        self,
        prompt: str,
        system_instruction: str | None = None,
        deadline: float | None = None,
    ) -> str:
        """Generate text from a prompt.

        Args:
            prompt: User prompt text.
            system_instruction: Optional system-level instruction.
            deadline: Optional ``time.monotonic()`` deadline for the call.

        Returns:
            Generated text from the model.

        Raises:
            LlmApiError: If the API call fails.
        """
        ...


@runtime_checkable
class PaperSummarizer(Protocol):
    """Best-effort paper summarization."""

    def summarize(
        self,
        title: str,
        abstract: str | None = None,
        url: str | None = None,
        deadline: float | None = None,
    ) -> PaperSummary | None:
        """Summarize a paper.

        Args:
            title: Paper title.
            abstract: Paper abstract, if known.
            url: Abstract page URL, if known.
            deadline: Optional ``time.monotonic()`` deadline; no provider
                call starts after it.

        Returns:
            Normalized summary, or None when no provider produced one.

        Raises:
            ExternalProviderError: If every configured provider failed.
        """
        ...
