"""Gemini client for structured paper summaries over the REST API."""

import random
import time
from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

import httpx
import structlog

from learnfeed.llm.deadline import remaining_seconds
from learnfeed.llm.errors import LlmApiError


logger = structlog.get_logger()

_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

_MAX_RETRIES = 2
_RETRY_BASE_DELAY = 1.0
_RETRYABLE_STATUS_CODES = {HTTPStatus.TOO_MANY_REQUESTS, HTTPStatus.SERVICE_UNAVAILABLE}


def build_request_body(
    prompt: str,
    system_instruction: str | None,
    generation_config: Mapping[str, object],
) -> dict[str, object]:
    """Assemble a ``generateContent`` request body."""
    body: dict[str, object] = {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": dict(generation_config),
    }
    if system_instruction:
        body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
    return body


def extract_text(data: Mapping[str, Any]) -> str:
    """Concatenated text parts of the first candidate.

    Args:
        data: Decoded ``generateContent`` response.

    Returns:
        Candidate text.

    Raises:
        LlmApiError: If the prompt was blocked or the candidate has no text.
    """
    candidates = data.get("candidates") or []
    if not candidates:
        reason = (data.get("promptFeedback") or {}).get("blockReason")
        msg = "No candidates in Gemini API response"
        raise LlmApiError(f"{msg} (blocked: {reason})" if reason else msg)

    candidate = candidates[0]
    parts = (candidate.get("content") or {}).get("parts") or []
    if not parts:
        msg = "No parts in first candidate"
        raise LlmApiError(msg)

    text = "".join(part.get("text", "") for part in parts)
    if not text:
        finish = candidate.get("finishReason")
        msg = "Empty text in response"
        raise LlmApiError(f"{msg} (finish reason: {finish})" if finish else msg)
    return text


class GeminiApiKeyClient:
    """Client for the Gemini API using an ``x-goog-api-key`` header.

    When a response schema is given, every request asks for JSON output
    conforming to it. Calls accept a monotonic deadline: each request's
    timeout is cut to the time left, and a retry is abandoned when its
    backoff would run past the deadline.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
        response_schema: Mapping[str, object] | None = None,
        temperature: float = 0.2,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Gemini API key.
            model: Gemini model identifier.
            timeout: Per-request timeout in seconds.
            http_client: Optional shared httpx client.
            response_schema: Structured-output schema for JSON responses.
            temperature: Sampling temperature.
        """
        self._api_key = api_key
        self.model = model
        self._timeout = timeout
        self._http = http_client or httpx.Client(timeout=timeout)
        self._generation_config: dict[str, object] = {"temperature": temperature}
        if response_schema is not None:
            self._generation_config["responseMimeType"] = "application/json"
            self._generation_config["responseSchema"] = dict(response_schema)
        self._log = logger.bind(component="llm", subcomponent="gemini")

    def generate_content(
        self,
        prompt: str,
        system_instruction: str | None = None,
        deadline: float | None = None,
    ) -> str:
        """Send a generate content request to the Gemini API.

        Args:
            prompt: User prompt text.
            system_instruction: Optional system instruction.
            deadline: Optional ``time.monotonic()`` deadline for the call,
                retries included.

        Returns:
            Generated text from the model response.

        Raises:
            LlmApiError: If the API call fails after all retries.
            LlmDeadlineExceededError: If the deadline passed before a request.
        """
        url = f"{_BASE_URL}/{self.model}:generateContent"
        body = build_request_body(prompt, system_instruction, self._generation_config)
        response = self._post(url, body, deadline)
        text = extract_text(response.json())
        self._log.debug("gemini_content_received", model=self.model, chars=len(text))
        return text

    def _post(
        self, url: str, body: dict[str, object], deadline: float | None
    ) -> httpx.Response:
        """POST with exponential backoff on 429/503, bounded by the deadline."""
        for attempt in range(_MAX_RETRIES + 1):
            try:
                response = self._http.post(
                    url,
                    headers={
                        "x-goog-api-key": self._api_key,
                        "Content-Type": "application/json",
                    },
                    json=body,
                    timeout=remaining_seconds(deadline, self._timeout),
                )
            except httpx.HTTPError as exc:
                msg = f"Gemini API request failed: {exc}"
                raise LlmApiError(msg) from exc

            if response.status_code == HTTPStatus.OK:
                return response

            error = LlmApiError(
                f"Gemini API returned {response.status_code}",
                status_code=response.status_code,
            )
            if response.status_code not in _RETRYABLE_STATUS_CODES or attempt == _MAX_RETRIES:
                raise error

            delay = _RETRY_BASE_DELAY * (2**attempt) + random.uniform(0, 1)  # noqa: S311
            if deadline is not None and time.monotonic() + delay >= deadline:
                self._log.warning(
                    "gemini_retry_abandoned",
                    status=response.status_code,
                    attempt=attempt + 1,
                    retry_delay=round(delay, 1),
                )
                raise error

            self._log.warning(
                "gemini_retryable_error",
                status=response.status_code,
                attempt=attempt + 1,
                retry_delay=round(delay, 1),
            )
            time.sleep(delay)

        msg = "All retries exhausted"
        raise LlmApiError(msg)
