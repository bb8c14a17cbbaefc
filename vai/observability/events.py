"""Event dataclasses for observability hooks.

These events are emitted by the intent pipeline at key points to
provide visibility into matching, resolution, and fallback calls.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class PhaseStartEvent:
    """Emitted when a pipeline phase starts."""

    phase: str
    timestamp: datetime = field(default_factory=datetime.now)
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class PhaseEndEvent:
    """Emitted when a pipeline phase completes."""

    phase: str
    duration_ms: float
    success: bool = True
    timestamp: datetime = field(default_factory=datetime.now)
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMCallStartEvent:
    """Emitted when a provider call begins."""

    provider: str
    model: str
    prompt_chars: int
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class LLMCallEndEvent:
    """Emitted when a provider call completes or fails."""

    provider: str
    model: str
    duration_ms: float
    success: bool = True
    response_tokens: int = 0
    text_preview: str = ""
    error: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class FallbackEvent:
    """Emitted when the disambiguation fallback could not help.

    Attributes:
        condition: FallbackCondition value (unavailable, parse or
            transport failure).
        text: The command text being resolved.
        detail: Human-readable reason.
    """

    condition: str
    text: str
    detail: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
