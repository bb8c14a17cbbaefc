"""Logging wrapper for LLM providers.

Wraps any LLM provider to log each call and report it to an
observability hook.
"""

import logging
import time
from typing import Sequence

from vai.llm.base import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, LLMProvider
from vai.llm.message_types import Message
from vai.llm.response_types import LLMResponse
from vai.observability.events import LLMCallEndEvent, LLMCallStartEvent
from vai.observability.hooks import NullHook, ObservabilityHook

logger = logging.getLogger(__name__)


class LoggingProvider:
    """Wrapper that logs every call made through any LLM provider.

    Delegates to the wrapped provider. Logs model, duration and outcome,
    and emits LLMCallStartEvent/LLMCallEndEvent to the hook.

    Args:
        provider: The LLM provider to wrap.
        hook: Observability hook to notify (defaults to NullHook).
    """

    def __init__(
        self,
        provider: LLMProvider,
        hook: ObservabilityHook | None = None,
    ) -> None:
        """Initialize the logging provider.

        Args:
            provider: The LLM provider to wrap.
            hook: Observability hook to notify.
        """
        self._provider = provider
        self.hook: ObservabilityHook = hook or NullHook()

    @property
    def provider_name(self) -> str:
        """Return provider identifier."""
        return self._provider.provider_name

    @property
    def default_model(self) -> str:
        """Return default model for this provider."""
        return self._provider.default_model

    @property
    def wrapped(self) -> LLMProvider:
        """The underlying provider."""
        return self._provider

    async def complete(
        self,
        messages: Sequence[Message],
        model: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
        system_prompt: str | None = None,
    ) -> LLMResponse:
        """Generate a completion from messages with logging."""
        model_name = model or self._provider.default_model
        prompt_chars = sum(len(m.content) for m in messages) + len(system_prompt or "")

        self.hook.on_llm_call_start(LLMCallStartEvent(
            provider=self.provider_name,
            model=model_name,
            prompt_chars=prompt_chars,
        ))
        logger.info(f"LLM call -> {self.provider_name}:{model_name} ({prompt_chars} chars)")

        start_time = time.perf_counter()
        try:
            response = await self._provider.complete(
                messages=messages,
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                system_prompt=system_prompt,
            )
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                f"LLM call failed <- {self.provider_name}:{model_name} "
                f"after {duration_ms:.0f}ms: {e}"
            )
            self.hook.on_llm_call_end(LLMCallEndEvent(
                provider=self.provider_name,
                model=model_name,
                duration_ms=duration_ms,
                success=False,
                error=str(e),
            ))
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"LLM call <- {self.provider_name}:{model_name} "
            f"{duration_ms:.0f}ms, {len(response.content)} chars"
        )
        self.hook.on_llm_call_end(LLMCallEndEvent(
            provider=self.provider_name,
            model=model_name,
            duration_ms=duration_ms,
            response_tokens=response.usage.completion_tokens if response.usage else 0,
            text_preview=response.content[:80],
        ))
        return response
