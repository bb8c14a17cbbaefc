"""Persistable session state.

A SessionState holds everything needed to resume a session: the context
snapshot and history, and the learning records with their per-action
counters. Preference profiles are not stored; they are rebuilt from the
records on import.
"""

from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from vai.managers.context_manager import ContextEntry, ContextSnapshot, ContextStore
from vai.managers.learning_manager import ActionCounter, LearningRecord, LearningStore
from vai.parser.action_types import ActionType

STATE_VERSION = 1


class InvalidStateError(ValueError):
    """Raised when a saved state document cannot be imported."""


class SessionState(BaseModel):
    """JSON-serializable document of one session's stores."""

    version: int = STATE_VERSION
    context: ContextSnapshot = Field(default_factory=ContextSnapshot)
    context_history: list[ContextEntry] = Field(default_factory=list)
    learning_records: list[LearningRecord] = Field(default_factory=list)
    learning_counters: dict[str, ActionCounter] = Field(default_factory=dict)
    learning_enabled: bool = True

    @field_validator("version")
    @classmethod
    def _supported_version(cls, value: int) -> int:
        if value > STATE_VERSION:
            raise ValueError(f"State version {value} is newer than supported ({STATE_VERSION})")
        return value

    @field_validator("learning_counters")
    @classmethod
    def _known_actions(cls, value: dict[str, ActionCounter]) -> dict[str, ActionCounter]:
        valid = {a.value for a in ActionType}
        unknown = sorted(set(value) - valid)
        if unknown:
            raise ValueError(f"Unknown actions in counters: {', '.join(unknown)}")
        return value

    @classmethod
    def capture(cls, context: ContextStore, learning: LearningStore) -> "SessionState":
        """Take a state document from live stores."""
        return cls(
            context=context.snapshot,
            context_history=list(context.history),
            learning_records=list(learning.records),
            learning_counters={a.value: c for a, c in learning.counters.items()},
            learning_enabled=learning.enabled,
        )

    def apply(self, context: ContextStore, learning: LearningStore) -> None:
        """Replace the state of live stores with this document."""
        context.restore(self.context, self.context_history)
        learning.restore(
            self.learning_records,
            {ActionType(a): c for a, c in self.learning_counters.items()},
            enabled=self.learning_enabled,
        )


def dump_state(context: ContextStore, learning: LearningStore) -> dict[str, Any]:
    """Export stores as a plain JSON-compatible dict."""
    return SessionState.capture(context, learning).model_dump(mode="json")


def load_state(document: dict[str, Any] | str | bytes) -> SessionState:
    """Validate a state document given as a dict or JSON text.

    Raises:
        InvalidStateError: If the document is malformed.
    """
    try:
        if isinstance(document, (str, bytes)):
            return SessionState.model_validate_json(document)
        return SessionState.model_validate(document)
    except ValidationError as e:
        raise InvalidStateError(f"Invalid session state: {e}") from e
