"""Action types and dataclasses for the intent parser.

This module defines the actions the voice pipeline recognizes and the
Intent value object that flows from the pattern matcher through
confidence resolution to the action-execution collaborator.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any


# Confidence assigned to unrecognized input. Nothing may score lower.
UNKNOWN_CONFIDENCE = 0.1


class ActionType(str, Enum):
    """Actions a player can request by voice or text.

    Values are the wire identifiers exchanged with the action executor
    and the disambiguation model, so they keep their camelCase form.
    """

    # Combat
    ATTACK = "attack"
    TARGET = "target"
    FULL_ATTACK = "fullAttack"  # pf1 only
    CHARGE = "charge"  # pf1 only

    # Movement
    MOVE = "move"

    # Checks and magic
    SKILL_CHECK = "skillCheck"
    CAST_SPELL = "castSpell"

    # Information
    QUERY = "query"

    # Character management
    EQUIP_ITEM = "equipItem"
    ADD_SPELL = "addSpell"

    # Tactical actions
    SEEK = "seek"
    RAISE_SHIELD = "raiseShield"
    HIDE = "hide"
    DEMORALIZE = "demoralize"
    FEINT = "feint"
    TREAT_WOUNDS = "treatWounds"

    # Utility
    HELP = "help"
    STATUS = "status"

    # Unrecognized input
    UNKNOWN = "unknown"


class Param(str, Enum):
    """Named parameters an Intent may carry.

    Keys are action-dependent. A key that is absent means the value was
    not specified; it is never stored as an empty string.
    """

    TARGET = "target"
    WEAPON = "weapon"
    SPELL = "spell"
    SKILL = "skill"
    DIRECTION = "direction"
    DISTANCE = "distance"
    UNIT = "unit"
    DESTINATION = "destination"
    ITEM = "item"
    QUERY = "query"


def action_from_string(value: str | None) -> ActionType | None:
    """Look up an ActionType by wire value, ignoring case.

    Args:
        value: Action identifier such as "castSpell" or "castspell".

    Returns:
        The matching ActionType, or None if the value is not recognized.
    """
    if not value:
        return None
    lookup = value.strip().lower().replace("_", "").replace(" ", "")
    for action in ActionType:
        if action.value.lower() == lookup:
            return action
    return None


def json_safe(value: Any) -> Any:
    """Normalize a payload value to plain JSON types.

    Sets and tuples become lists and mapping keys become strings, so a
    payload survives a JSON export unchanged. Anything else that JSON
    cannot carry is stored as its string form.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, dict):
        return {str(k): json_safe(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted((json_safe(v) for v in value), key=repr)
    if isinstance(value, (list, tuple)):
        return [json_safe(v) for v in value]
    return str(value)


def clamp_confidence(value: float) -> float:
    """Clamp a confidence score to [0, 1]."""
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class Intent:
    """A structured command resolved from player input.

    Attributes:
        action: The requested action.
        parameters: Extracted parameter values keyed by Param value.
        confidence: Certainty in [0, 1]; clamped on construction.
        original_text: Normalized input that produced this intent.
        timestamp: When the intent was created.
    """

    action: ActionType
    parameters: dict[str, Any] = field(default_factory=dict)
    confidence: float = UNKNOWN_CONFIDENCE
    original_text: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        """Enforce the confidence range and drop unspecified parameters."""
        confidence = (
            UNKNOWN_CONFIDENCE if self.action == ActionType.UNKNOWN
            else clamp_confidence(self.confidence)
        )
        object.__setattr__(self, "confidence", confidence)
        cleaned = {
            str(getattr(key, "value", key)): value
            for key, value in self.parameters.items()
            if value is not None and value != ""
        }
        object.__setattr__(self, "parameters", cleaned)

    @classmethod
    def unknown(cls, text: str) -> "Intent":
        """Create the sentinel intent for unrecognized input."""
        return cls(
            action=ActionType.UNKNOWN,
            confidence=UNKNOWN_CONFIDENCE,
            original_text=text,
        )

    @property
    def is_unknown(self) -> bool:
        """Whether this intent represents unrecognized input."""
        return self.action == ActionType.UNKNOWN

    def get(self, name: Param | str) -> Any | None:
        """Get a parameter value, or None when it was not specified."""
        key = name.value if isinstance(name, Param) else name
        return self.parameters.get(key)

    def has(self, name: Param | str) -> bool:
        """Whether a parameter was specified."""
        return self.get(name) is not None

    def with_confidence(self, confidence: float) -> "Intent":
        """Return a copy with a new (clamped) confidence."""
        return replace(self, confidence=confidence)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict for logging and display."""
        return {
            "action": self.action.value,
            "parameters": dict(self.parameters),
            "confidence": self.confidence,
            "original_text": self.original_text,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        """Human-readable representation of the intent."""
        params = " ".join(f"{k}={v}" for k, v in self.parameters.items())
        result = self.action.value
        if params:
            result += f" ({params})"
        return f"{result} [{self.confidence:.2f}]"


@dataclass(frozen=True)
class ActionOutcome:
    """Result reported by the action-execution collaborator.

    Attributes:
        success: Whether the action executed successfully.
        message: Optional human-readable result message.
        data: Optional structured payload (e.g. new target, vitals).
    """

    success: bool
    message: str | None = None
    data: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.data is not None:
            object.__setattr__(self, "data", json_safe(self.data))


@dataclass(frozen=True)
class CommandInfo:
    """An available command with example phrasings for help display."""

    action: ActionType
    examples: tuple[str, ...] = ()


@dataclass
class IntentValidation:
    """Outcome of checking an intent for required parameters."""

    valid: bool
    errors: list[str] = field(default_factory=list)
