"""Anthropic Claude provider implementation.

Calls the Messages API (``{model, messages, max_tokens, temperature}``,
``x-api-key`` auth) through the official SDK and reads the generated
text from ``content[0].text``.
"""

from typing import Any, Sequence

from anthropic import AsyncAnthropic
from anthropic import (
    APIConnectionError as AnthropicConnectionError,
    APIError as AnthropicAPIError,
    AuthenticationError as AnthropicAuthError,
    BadRequestError as AnthropicBadRequestError,
    PermissionDeniedError as AnthropicPermissionError,
    RateLimitError as AnthropicRateLimitError,
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
from vai.llm.message_types import Message, MessageRole
from vai.llm.response_types import LLMResponse, UsageStats
from vai.llm.retry import retry_after_seconds


class AnthropicProvider:
    """Anthropic Claude implementation of LLMProvider."""

    def __init__(
        self,
        api_key: str | None = None,
        default_model: str = "claude-3-5-haiku-latest",
        client: AsyncAnthropic | None = None,
    ) -> None:
        """Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key. If not provided, will use
                     ANTHROPIC_API_KEY environment variable.
            default_model: Default model to use for completions.
            client: Optional pre-configured client (for testing).
        """
        self._api_key = api_key
        self._default_model = default_model
        self._client_instance: AsyncAnthropic | None = client

    @property
    def provider_name(self) -> str:
        """Return provider identifier."""
        return "anthropic"

    @property
    def default_model(self) -> str:
        """Return default model for this provider."""
        return self._default_model

    def _get_client(self) -> AsyncAnthropic:
        """Get or create the async client."""
        if self._client_instance is None:
            self._client_instance = AsyncAnthropic(api_key=self._api_key)
        return self._client_instance

    def _convert_messages(
        self, messages: Sequence[Message]
    ) -> tuple[str | None, list[dict[str, Any]]]:
        """Split out the system message and convert the rest.

        Returns:
            Tuple of (system_prompt, messages_list)
        """
        system_prompt: str | None = None
        api_messages: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                system_prompt = msg.content
                continue
            api_messages.append({"role": msg.role.value, "content": msg.content})

        return system_prompt, api_messages

    def _parse_response(self, response: Any) -> LLMResponse:
        """Parse a Messages API response into LLMResponse."""
        content = ""
        for block in response.content:
            if block.type == "text":
                content = block.text
                break

        usage = None
        if response.usage:
            usage = UsageStats(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            )

        return LLMResponse(
            content=content,
            finish_reason=response.stop_reason or "stop",
            model=response.model,
            usage=usage,
            raw_response=response,
        )

    def _translate_error(self, error: Exception) -> Exception:
        """Convert Anthropic SDK exceptions to our exception types."""
        if isinstance(error, (AnthropicAuthError, AnthropicPermissionError)):
            return AuthenticationError(str(error), status_code=error.status_code)
        if isinstance(error, AnthropicRateLimitError):
            return RateLimitError(str(error), retry_after=retry_after_seconds(error))
        if isinstance(error, AnthropicBadRequestError):
            error_str = str(error).lower()
            if "context" in error_str or "token" in error_str:
                return ContextLengthError(str(error))
            if "content" in error_str or "policy" in error_str:
                return ContentPolicyError(str(error))
            return ProviderError(str(error), is_retryable=False, status_code=400)
        if isinstance(error, AnthropicConnectionError):
            # Includes APITimeoutError
            return ProviderTimeoutError(str(error))
        if isinstance(error, AnthropicAPIError):
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
        extracted_system, api_messages = self._convert_messages(messages)
        final_system = system_prompt or extracted_system

        kwargs: dict[str, Any] = {
            "model": model or self._default_model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": api_messages,
        }
        if final_system:
            kwargs["system"] = final_system

        try:
            response = await self._get_client().messages.create(**kwargs)
        except Exception as e:
            translated = self._translate_error(e)
            if translated is e:
                raise
            raise translated from e
        return self._parse_response(response)
