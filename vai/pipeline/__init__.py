"""Session pipeline tying matching, resolution and fallback together."""

from vai.pipeline.session import IntentPipeline, ResolutionReport, ResolutionState
from vai.pipeline.state import InvalidStateError, SessionState

__all__ = [
    "IntentPipeline",
    "ResolutionReport",
    "ResolutionState",
    "SessionState",
    "InvalidStateError",
]
