"""Observability module for intent pipeline monitoring.

Provides hooks and observers for real-time visibility into pipeline
phases, provider calls, and fallback conditions.
"""

from vai.observability.console_observer import RichConsoleObserver
from vai.observability.events import (
    FallbackEvent,
    LLMCallEndEvent,
    LLMCallStartEvent,
    PhaseEndEvent,
    PhaseStartEvent,
)
from vai.observability.hooks import (
    CompositeHook,
    NullHook,
    ObservabilityHook,
    RecordingHook,
)

__all__ = [
    # Events
    "PhaseStartEvent",
    "PhaseEndEvent",
    "LLMCallStartEvent",
    "LLMCallEndEvent",
    "FallbackEvent",
    # Hooks
    "ObservabilityHook",
    "NullHook",
    "CompositeHook",
    "RecordingHook",
    # Observers
    "RichConsoleObserver",
]
