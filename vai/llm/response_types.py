"""Response types returned by provider adapters."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class UsageStats:
    """Token usage reported by the provider.

    Attributes:
        prompt_tokens: Tokens in the input.
        completion_tokens: Tokens in the output.
        total_tokens: Combined total.
    """

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass(frozen=True)
class LLMResponse:
    """Generated text extracted from a provider's response envelope.

    Attributes:
        content: The generated text.
        finish_reason: Why generation stopped, as reported by the provider.
        model: Model that generated the response.
        usage: Token usage, when the provider reports it.
        raw_response: Provider's raw response (for debugging).
    """

    content: str
    finish_reason: str = "stop"
    model: str = ""
    usage: UsageStats | None = None
    raw_response: Any = None

    @property
    def is_empty(self) -> bool:
        """Whether the provider returned no usable text."""
        return not self.content.strip()
