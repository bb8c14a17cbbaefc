"""Observability hook protocol and implementations.

The ObservabilityHook protocol defines the interface for receiving events
from the intent pipeline. Implementations can render to console, write to
files, or aggregate metrics.
"""

from typing import Protocol, runtime_checkable

from vai.observability.events import (
    FallbackEvent,
    LLMCallEndEvent,
    LLMCallStartEvent,
    PhaseEndEvent,
    PhaseStartEvent,
)


@runtime_checkable
class ObservabilityHook(Protocol):
    """Protocol for observability hooks."""

    def on_phase_start(self, event: PhaseStartEvent) -> None:
        """Called when a pipeline phase starts."""
        ...

    def on_phase_end(self, event: PhaseEndEvent) -> None:
        """Called when a pipeline phase completes."""
        ...

    def on_llm_call_start(self, event: LLMCallStartEvent) -> None:
        """Called when a provider call begins."""
        ...

    def on_llm_call_end(self, event: LLMCallEndEvent) -> None:
        """Called when a provider call completes."""
        ...

    def on_fallback(self, event: FallbackEvent) -> None:
        """Called when the disambiguation fallback fails soft."""
        ...


class NullHook:
    """No-op hook for when observability is disabled.

    This is the default hook; using it avoids null checks throughout the
    code.
    """

    def on_phase_start(self, event: PhaseStartEvent) -> None:
        pass

    def on_phase_end(self, event: PhaseEndEvent) -> None:
        pass

    def on_llm_call_start(self, event: LLMCallStartEvent) -> None:
        pass

    def on_llm_call_end(self, event: LLMCallEndEvent) -> None:
        pass

    def on_fallback(self, event: FallbackEvent) -> None:
        pass


class CompositeHook:
    """Combines multiple hooks into one.

    Events are dispatched to all hooks in order.
    """

    def __init__(self, hooks: list[ObservabilityHook]) -> None:
        """Initialize with a list of hooks.

        Args:
            hooks: List of hooks to dispatch events to.
        """
        self.hooks = hooks

    def on_phase_start(self, event: PhaseStartEvent) -> None:
        for hook in self.hooks:
            hook.on_phase_start(event)

    def on_phase_end(self, event: PhaseEndEvent) -> None:
        for hook in self.hooks:
            hook.on_phase_end(event)

    def on_llm_call_start(self, event: LLMCallStartEvent) -> None:
        for hook in self.hooks:
            hook.on_llm_call_start(event)

    def on_llm_call_end(self, event: LLMCallEndEvent) -> None:
        for hook in self.hooks:
            hook.on_llm_call_end(event)

    def on_fallback(self, event: FallbackEvent) -> None:
        for hook in self.hooks:
            hook.on_fallback(event)


class RecordingHook:
    """Hook that keeps every event it receives, in order.

    Useful in tests and for post-hoc inspection of a resolution.
    """

    def __init__(self) -> None:
        self.events: list[object] = []

    def on_phase_start(self, event: PhaseStartEvent) -> None:
        self.events.append(event)

    def on_phase_end(self, event: PhaseEndEvent) -> None:
        self.events.append(event)

    def on_llm_call_start(self, event: LLMCallStartEvent) -> None:
        self.events.append(event)

    def on_llm_call_end(self, event: LLMCallEndEvent) -> None:
        self.events.append(event)

    def on_fallback(self, event: FallbackEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[object]:
        """Return the recorded events of one type."""
        return [e for e in self.events if isinstance(e, event_type)]
