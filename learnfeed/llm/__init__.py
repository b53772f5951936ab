"""Paper summarization providers."""

from learnfeed.llm.errors import LlmApiError, LlmDeadlineExceededError, LlmProcessingError
from learnfeed.llm.factory import create_summarizer
from learnfeed.llm.models import PARADIGM_KEYS, PaperSummary
from learnfeed.llm.protocols import LlmClient, PaperSummarizer
from learnfeed.llm.summarizer import LlmPaperSummarizer, ProviderSelector, parse_summary


__all__ = [
    "PARADIGM_KEYS",
    "LlmApiError",
    "LlmClient",
    "LlmDeadlineExceededError",
    "LlmPaperSummarizer",
    "LlmProcessingError",
    "PaperSummarizer",
    "PaperSummary",
    "ProviderSelector",
    "create_summarizer",
    "parse_summary",
]
