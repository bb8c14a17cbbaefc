"""OpenAI provider implementation.

Calls chat completions (``{model, messages, temperature, max_tokens}``,
bearer auth) through the official SDK and reads the generated text from
``choices[0].message.content``. A custom base URL points it at any
OpenAI-compatible API.
"""

from typing import Any, Sequence

from openai import AsyncOpenAI
from openai import (
    APIConnectionError as OpenAIConnectionError,
    APIError as OpenAIAPIError,
    AuthenticationError as OpenAIAuthError,
    BadRequestError as OpenAIBadRequestError,
    PermissionDeniedError as OpenAIPermissionError,
    RateLimitError as OpenAIRateLimitError,
)

from vai.llm.base import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE
from vai.llm.exceptions import (
    AuthenticationError,
    ContentPolicyError,
    ContextLengthError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
)
from vai.llm.message_types import Message
from vai.llm.response_types import LLMResponse, UsageStats
from vai.llm.retry import retry_after_seconds


class OpenAIProvider:
    """OpenAI GPT implementation of LLMProvider."""

    def __init__(
        self,
        api_key: str | None = None,
        default_model: str = "gpt-4o-mini",
        base_url: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key. If not provided, will use
                     OPENAI_API_KEY environment variable.
            default_model: Default model to use for completions.
            base_url: Custom base URL for OpenAI-compatible APIs.
            client: Optional pre-configured client (for testing).
        """
        self._api_key = api_key
        self._default_model = default_model
        self._base_url = base_url
        self._client_instance: AsyncOpenAI | None = client

    @property
    def provider_name(self) -> str:
        """Return provider identifier."""
        return "openai"

    @property
    def default_model(self) -> str:
        """Return default model for this provider."""
        return self._default_model

    def _get_client(self) -> AsyncOpenAI:
        """Get or create the async client."""
        if self._client_instance is None:
            kwargs: dict[str, Any] = {}
            if self._api_key:
                kwargs["api_key"] = self._api_key
            if self._base_url:
                kwargs["base_url"] = self._base_url
            self._client_instance = AsyncOpenAI(**kwargs)
        return self._client_instance

    def _convert_messages(
        self, messages: Sequence[Message], system_prompt: str | None = None
    ) -> list[dict[str, Any]]:
        """Convert our Message types to OpenAI format."""
        api_messages: list[dict[str, Any]] = []
        if system_prompt:
            api_messages.append({"role": "system", "content": system_prompt})
        for msg in messages:
            api_messages.append({"role": msg.role.value, "content": msg.content})
        return api_messages

    def _parse_response(self, response: Any) -> LLMResponse:
        """Parse a chat completion into LLMResponse."""
        choice = response.choices[0]

        usage = None
        if response.usage:
            usage = UsageStats(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        return LLMResponse(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason or "stop",
            model=response.model,
            usage=usage,
            raw_response=response,
        )

    def _translate_error(self, error: Exception) -> Exception:
        """Convert OpenAI SDK exceptions to our exception types."""
        if isinstance(error, (OpenAIAuthError, OpenAIPermissionError)):
            return AuthenticationError(str(error), status_code=error.status_code)
        if isinstance(error, OpenAIRateLimitError):
            return RateLimitError(str(error), retry_after=retry_after_seconds(error))
        if isinstance(error, OpenAIBadRequestError):
            error_str = str(error).lower()
            if "context" in error_str or "token" in error_str or "length" in error_str:
                return ContextLengthError(str(error))
            if "content" in error_str or "policy" in error_str:
                return ContentPolicyError(str(error))
            return ProviderError(str(error), is_retryable=False, status_code=400)
        if isinstance(error, OpenAIConnectionError):
            # Includes APITimeoutError
            return ProviderTimeoutError(str(error))
        if isinstance(error, OpenAIAPIError):
            status_code = getattr(error, "status_code", None)
            is_retryable = status_code is not None and status_code >= 500
            return ProviderError(str(error), is_retryable=is_retryable, status_code=status_code)
        return error

    async def complete(
        self,
        messages: Sequence[Message],
        model: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
        system_prompt: str | None = None,
    ) -> LLMResponse:
        """Generate a completion from messages."""
        api_messages = self._convert_messages(messages, system_prompt)

        try:
            response = await self._get_client().chat.completions.create(
                model=model or self._default_model,
                messages=api_messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except Exception as e:
            translated = self._translate_error(e)
            if translated is e:
                raise
            raise translated from e
        return self._parse_response(response)
