"""OpenAI chat completions client."""

import openai
import structlog

from learnfeed.llm.deadline import remaining_seconds
from learnfeed.llm.errors import LlmApiError


logger = structlog.get_logger()


class OpenAiChatClient:
    """Client for OpenAI chat completions.

    Sends the system instruction and prompt as a two-message chat at low
    temperature and returns the first choice's text. With ``json_output``
    the completion is constrained to a JSON object.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        client: openai.OpenAI | None = None,
        json_output: bool = False,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: OpenAI API key.
            model: Chat model identifier.
            timeout: Per-request timeout in seconds.
            client: Optional preconfigured SDK client.
            json_output: Request a JSON object response.
        """
        self.model = model
        self._timeout = timeout
        self._json_output = json_output
        self._client = client or openai.OpenAI(api_key=api_key, timeout=timeout)
        self._log = logger.bind(component="llm", subcomponent="openai")

    def generate_content(
        self,
        prompt: str,
        system_instruction: str | None = None,
        deadline: float | None = None,
    ) -> str:
        """Request a chat completion.

        Args:
            prompt: User prompt text.
            system_instruction: Optional system message.
            deadline: Optional ``time.monotonic()`` deadline for the call.

        Returns:
            Generated text of the first choice.

        Raises:
            LlmApiError: If the API call fails or returns no text.
        """
        messages: list[dict[str, str]] = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})
        extra: dict[str, object] = {}
        if self._json_output:
            extra["response_format"] = {"type": "json_object"}

        timeout = remaining_seconds(deadline, self._timeout)
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=messages,  # type: ignore[arg-type]
                temperature=0.2,
                timeout=timeout,
                **extra,  # type: ignore[arg-type]
            )
        except openai.APIStatusError as exc:
            msg = f"OpenAI API returned {exc.status_code}"
            raise LlmApiError(msg, status_code=exc.status_code) from exc
        except openai.OpenAIError as exc:
            msg = f"OpenAI API request failed: {exc}"
            raise LlmApiError(msg) from exc

        if not response.choices:
            msg = "No choices in OpenAI response"
            raise LlmApiError(msg)

        text = response.choices[0].message.content or ""
        if not text:
            msg = "Empty text in response"
            raise LlmApiError(msg)

        self._log.debug("openai_completion_received", model=self.model, chars=len(text))
        return text
