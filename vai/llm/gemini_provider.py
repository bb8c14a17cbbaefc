"""Google Gemini provider implementation.

Gemini is called over plain HTTP with httpx:
``POST {base_url}/models/{model}:generateContent?key=...`` with a body of
``{contents, generationConfig{temperature, maxOutputTokens}}``. The
generated text is read from ``candidates[0].content.parts[0].text``.
"""

from typing import Any, Sequence

import httpx

from vai.llm.base import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE
from vai.llm.exceptions import (
    AuthenticationError,
    ContextLengthError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
)
from vai.llm.message_types import Message, MessageRole
from vai.llm.response_types import LLMResponse, UsageStats
from vai.llm.retry import retry_after_seconds

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiProvider:
    """Google Gemini implementation of LLMProvider."""

    def __init__(
        self,
        api_key: str | None = None,
        default_model: str = "gemini-1.5-flash",
        base_url: str = GEMINI_BASE_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Initialize Gemini provider.

        Args:
            api_key: Gemini API key, sent as the ``key`` query parameter.
            default_model: Default model to use for completions.
            base_url: API root, without a trailing slash.
            client: Optional pre-configured client (for testing).
            timeout: Request timeout in seconds for the default client.
        """
        self._api_key = api_key
        self._default_model = default_model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client_instance: httpx.AsyncClient | None = client

    @property
    def provider_name(self) -> str:
        """Return provider identifier."""
        return "gemini"

    @property
    def default_model(self) -> str:
        """Return default model for this provider."""
        return self._default_model

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async client."""
        if self._client_instance is None:
            self._client_instance = httpx.AsyncClient(timeout=self._timeout)
        return self._client_instance

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client_instance is not None:
            await self._client_instance.aclose()
            self._client_instance = None

    def _build_body(
        self,
        messages: Sequence[Message],
        max_tokens: int,
        temperature: float,
        system_prompt: str | None,
    ) -> dict[str, Any]:
        """Build the generateContent request body."""
        system_parts = [system_prompt] if system_prompt else []
        contents: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                system_parts.append(msg.content)
                continue
            role = "model" if msg.role == MessageRole.ASSISTANT else "user"
            contents.append({"role": role, "parts": [{"text": msg.content}]})

        body: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
        }
        if system_parts:
            body["systemInstruction"] = {"parts": [{"text": "\n\n".join(system_parts)}]}
        return body

    def _parse_response(self, data: dict[str, Any], model: str) -> LLMResponse:
        """Parse a generateContent response into LLMResponse."""
        candidates = data.get("candidates") or []
        content = ""
        finish_reason = "stop"
        if candidates:
            candidate = candidates[0]
            parts = (candidate.get("content") or {}).get("parts") or []
            if parts:
                content = parts[0].get("text") or ""
            finish_reason = (candidate.get("finishReason") or "stop").lower()

        usage = None
        if meta := data.get("usageMetadata"):
            usage = UsageStats(
                prompt_tokens=meta.get("promptTokenCount", 0),
                completion_tokens=meta.get("candidatesTokenCount", 0),
                total_tokens=meta.get("totalTokenCount", 0),
            )

        return LLMResponse(
            content=content,
            finish_reason=finish_reason,
            model=data.get("modelVersion") or model,
            usage=usage,
            raw_response=data,
        )

    def _translate_status_error(self, error: httpx.HTTPStatusError) -> ProviderError:
        """Map a non-success HTTP status to our exception types."""
        status_code = error.response.status_code
        message = f"Gemini API error {status_code}: {error.response.text}"

        if status_code in (401, 403):
            return AuthenticationError(message, status_code=status_code)
        if status_code == 429:
            return RateLimitError(message, retry_after=retry_after_seconds(error))
        if status_code == 400 and "token" in error.response.text.lower():
            return ContextLengthError(message)
        return ProviderError(message, is_retryable=status_code >= 500, status_code=status_code)

    async def complete(
        self,
        messages: Sequence[Message],
        model: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
        system_prompt: str | None = None,
    ) -> LLMResponse:
        """Generate a completion from messages."""
        model_name = model or self._default_model
        url = f"{self._base_url}/models/{model_name}:generateContent"
        body = self._build_body(messages, max_tokens, temperature, system_prompt)

        try:
            response = await self._get_client().post(
                url,
                params={"key": self._api_key or ""},
                json=body,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise self._translate_status_error(e) from e
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"Gemini request timed out: {e}") from e
        except httpx.TransportError as e:
            raise ProviderTimeoutError(f"Gemini request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(f"Gemini returned a malformed body: {e}") from e

        return self._parse_response(data, model_name)
