"""LLM provider protocol definition.

Every disambiguation provider (OpenAI, Anthropic, Gemini) implements
this interface, so adding a provider never touches pipeline logic.
"""

from typing import Protocol, Sequence, runtime_checkable

from vai.llm.message_types import Message
from vai.llm.response_types import LLMResponse

# Request defaults for disambiguation prompts.
DEFAULT_MAX_TOKENS = 500
DEFAULT_TEMPERATURE = 0.3


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for LLM providers."""

    @property
    def provider_name(self) -> str:
        """Return provider identifier (e.g., 'anthropic', 'openai', 'gemini')."""
        ...

    @property
    def default_model(self) -> str:
        """Return default model for this provider."""
        ...

    async def complete(
        self,
        messages: Sequence[Message],
        model: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
        system_prompt: str | None = None,
    ) -> LLMResponse:
        """Generate a completion from messages.

        Args:
            messages: The request messages.
            model: Model to use (defaults to provider's default).
            max_tokens: Maximum tokens to generate.
            temperature: Sampling temperature (0.0-1.0).
            system_prompt: System-level instructions.

        Returns:
            LLMResponse with the generated text.

        Raises:
            ProviderError: On transport or API failure.
        """
        ...
