"""Unit tests for the Gemini API key client."""

import time
from unittest.mock import MagicMock, patch

import httpx
import pytest

from learnfeed.llm.errors import LlmApiError, LlmDeadlineExceededError
from learnfeed.llm.gemini_client import GeminiApiKeyClient, extract_text
from learnfeed.llm.prompts import SUMMARY_RESPONSE_SCHEMA


def _response(status_code: int = 200, text: str = "ok") -> MagicMock:
    """Create a mock HTTP response."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    return response


def _make_client(http: MagicMock, api_key: str = "test-api-key") -> GeminiApiKeyClient:  # noqa: S107
    """Create a test client over a mock HTTP client."""
    return GeminiApiKeyClient(api_key=api_key, model="gemini-2.5-flash", http_client=http)


class TestGeminiApiKeyClientGenerateContent:
    """Tests for GeminiApiKeyClient.generate_content."""

    def test_success_returns_text(self) -> None:
        """Should return text from model response."""
        http = MagicMock()
        http.post.return_value = _response(text="Hello world")

        assert _make_client(http).generate_content("Say hello") == "Hello world"

    def test_request_shape(self) -> None:
        """Should send the key header, model endpoint, and system instruction."""
        http = MagicMock()
        http.post.return_value = _response()

        _make_client(http, api_key="my-key-123").generate_content(
            "Test", system_instruction="Be strict"
        )

        url = http.post.call_args[0][0]
        kwargs = http.post.call_args[1]
        assert "generativelanguage.googleapis.com" in url
        assert url.endswith("gemini-2.5-flash:generateContent")
        assert kwargs["headers"]["x-goog-api-key"] == "my-key-123"
        assert kwargs["json"]["systemInstruction"] == {"parts": [{"text": "Be strict"}]}
        assert kwargs["json"]["contents"][0]["parts"][0]["text"] == "Test"
        assert kwargs["json"]["generationConfig"] == {"temperature": 0.2}
        assert kwargs["timeout"] == 30.0

    def test_no_system_instruction(self) -> None:
        """Should omit systemInstruction when not provided."""
        http = MagicMock()
        http.post.return_value = _response()

        _make_client(http).generate_content("Test")

        assert "systemInstruction" not in http.post.call_args[1]["json"]

    @patch("learnfeed.llm.gemini_client.time.sleep")
    def test_retries_on_rate_limit(self, mock_sleep: MagicMock) -> None:
        """Should retry a 429 and return the later success."""
        http = MagicMock()
        http.post.side_effect = [_response(429), _response(text="after retry")]

        assert _make_client(http).generate_content("Test") == "after retry"
        assert mock_sleep.call_count == 1

    @patch("learnfeed.llm.gemini_client.time.sleep")
    def test_retries_exhausted(self, mock_sleep: MagicMock) -> None:
        """Should raise the last retryable status after all retries."""
        http = MagicMock()
        http.post.return_value = _response(503)

        with pytest.raises(LlmApiError) as exc_info:
            _make_client(http).generate_content("Test")

        assert exc_info.value.status_code == 503
        assert http.post.call_count == 3
        assert mock_sleep.call_count == 2

    @patch("learnfeed.llm.gemini_client.time.sleep")
    def test_client_error_not_retried(self, mock_sleep: MagicMock) -> None:
        """Should fail immediately on a non-retryable status."""
        http = MagicMock()
        http.post.return_value = _response(400)

        with pytest.raises(LlmApiError, match="400"):
            _make_client(http).generate_content("Test")

        assert http.post.call_count == 1
        mock_sleep.assert_not_called()

    def test_transport_error(self) -> None:
        """Should wrap httpx transport failures."""
        http = MagicMock()
        http.post.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(LlmApiError, match="request failed"):
            _make_client(http).generate_content("Test")

    @pytest.mark.parametrize(
        "payload",
        [
            {"candidates": []},
            {"candidates": [{"content": {"parts": []}}]},
            {"candidates": [{"content": {"parts": [{"text": ""}]}}]},
        ],
    )
    def test_empty_responses(self, payload: dict[str, object]) -> None:
        """Should raise when the response carries no text."""
        response = _response()
        response.json.return_value = payload
        http = MagicMock()
        http.post.return_value = response

        with pytest.raises(LlmApiError):
            _make_client(http).generate_content("Test")


class TestGeminiStructuredOutput:
    """Tests for JSON output requests and response text extraction."""

    def test_response_schema_requests_json(self) -> None:
        """Should ask for JSON shaped by the summary schema."""
        http = MagicMock()
        http.post.return_value = _response(text="{}")
        client = GeminiApiKeyClient(
            api_key="k",  # noqa: S106
            http_client=http,
            response_schema=SUMMARY_RESPONSE_SCHEMA,
        )

        client.generate_content("Test")

        config = http.post.call_args[1]["json"]["generationConfig"]
        assert config["responseMimeType"] == "application/json"
        assert config["responseSchema"]["required"] == ["tldr", "paradigms", "meritScore"]
        assert set(config["responseSchema"]["properties"]["paradigms"]["properties"]) == {
            "training",
            "agent_creation",
            "safeguards",
            "token_counting",
            "prompting",
        }

    def test_joins_text_parts(self) -> None:
        """Should concatenate every text part of the first candidate."""
        payload = {
            "candidates": [{"content": {"parts": [{"text": '{"tldr": '}, {"text": '"x"}'}]}}]
        }

        assert extract_text(payload) == '{"tldr": "x"}'

    def test_blocked_prompt_reports_reason(self) -> None:
        """Should name the block reason when no candidate is returned."""
        with pytest.raises(LlmApiError, match="SAFETY"):
            extract_text({"promptFeedback": {"blockReason": "SAFETY"}})

    def test_empty_text_reports_finish_reason(self) -> None:
        """Should name the finish reason when the candidate has no text."""
        payload = {
            "candidates": [{"finishReason": "MAX_TOKENS", "content": {"parts": [{}]}}]
        }

        with pytest.raises(LlmApiError, match="MAX_TOKENS"):
            extract_text(payload)


class TestGeminiDeadline:
    """Tests for deadline-bounded calls."""

    def test_past_deadline_sends_nothing(self) -> None:
        """Should fail before posting once the deadline has passed."""
        http = MagicMock()

        with pytest.raises(LlmDeadlineExceededError):
            _make_client(http).generate_content("Test", deadline=time.monotonic() - 1.0)

        http.post.assert_not_called()

    def test_request_timeout_capped_by_deadline(self) -> None:
        """Should shorten the request timeout to the time left."""
        http = MagicMock()
        http.post.return_value = _response()

        _make_client(http).generate_content("Test", deadline=time.monotonic() + 2.0)

        timeout = http.post.call_args[1]["timeout"]
        assert 0.0 < timeout <= 2.0

    @patch("learnfeed.llm.gemini_client.time.sleep")
    def test_retry_abandoned_past_deadline(self, mock_sleep: MagicMock) -> None:
        """Should not back off past the deadline."""
        http = MagicMock()
        http.post.return_value = _response(503)

        with pytest.raises(LlmApiError) as exc_info:
            _make_client(http).generate_content("Test", deadline=time.monotonic() + 0.5)

        assert exc_info.value.status_code == 503
        assert http.post.call_count == 1
        mock_sleep.assert_not_called()
