"""Session context tracking for context-aware intent resolution.

The ContextStore holds the short-lived situational state used to bias
confidence: who the player is targeting, what they last did, whether
combat is running, and their character's vitals. Each update builds a
new immutable ContextSnapshot and swaps it in, so a reader never sees a
half-applied update.
"""

import logging
import math
from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from vai.parser.action_types import ActionOutcome, ActionType, Intent, json_safe

logger = logging.getLogger(__name__)


DEFAULT_HISTORY_SIZE = 50

# Actions available in every game system.
BASE_ACTIONS: tuple[ActionType, ...] = (
    ActionType.ATTACK,
    ActionType.MOVE,
    ActionType.CAST_SPELL,
    ActionType.SKILL_CHECK,
    ActionType.TARGET,
    ActionType.HELP,
    ActionType.STATUS,
)

# Extra actions per game system.
SYSTEM_ACTIONS: dict[str, tuple[ActionType, ...]] = {
    "pf2e": (
        ActionType.SEEK,
        ActionType.RAISE_SHIELD,
        ActionType.HIDE,
        ActionType.DEMORALIZE,
        ActionType.FEINT,
        ActionType.TREAT_WOUNDS,
    ),
    "pf1": (ActionType.FULL_ATTACK, ActionType.CHARGE),
}

# Follow-up suggestions after each kind of action.
_FOLLOW_UPS: dict[ActionType, tuple[str, ...]] = {
    ActionType.ATTACK: ("raise shield", "move"),
    ActionType.MOVE: ("attack", "seek"),
    ActionType.CAST_SPELL: ("move", "target"),
}


class ContextEventKind(str, Enum):
    """Kinds of entries recorded in the context history."""

    COMMAND = "command"
    RESULT = "result"
    TARGET = "target"
    COMBAT = "combat"
    CHARACTER = "character"


@dataclass(frozen=True)
class TargetRef:
    """Reference to the creature or object the player is targeting."""

    name: str
    id: str | None = None
    kind: str | None = None
    distance: float | None = None


@dataclass(frozen=True)
class CombatState:
    """Whether combat is running and where in the turn order it is."""

    active: bool = False
    round: int | None = None
    turn: int | None = None


@dataclass(frozen=True)
class CharacterVitals:
    """Summary of the player character's current condition.

    Attributes:
        name: Character name.
        hp_current: Current hit points.
        hp_max: Maximum hit points.
        extra: Any other reported character fields.
    """

    name: str | None = None
    hp_current: int | None = None
    hp_max: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def wounded(self) -> bool:
        """Whether current HP is known to be below maximum."""
        if self.hp_current is None or self.hp_max is None:
            return False
        return self.hp_current < self.hp_max

    @property
    def badly_wounded(self) -> bool:
        """Whether current HP is below half of maximum."""
        if self.hp_current is None or self.hp_max is None:
            return False
        return self.hp_current < self.hp_max * 0.5


@dataclass(frozen=True)
class ContextSnapshot:
    """Situational state at one moment in a session.

    Attributes:
        current_target: Who the player is targeting, if anyone.
        last_intent: The most recent intent reported back as executed.
        combat: Combat state.
        vitals: Character vitals, if reported.
    """

    current_target: TargetRef | None = None
    last_intent: Intent | None = None
    combat: CombatState = field(default_factory=CombatState)
    vitals: CharacterVitals | None = None

    @property
    def combat_active(self) -> bool:
        return self.combat.active

    @property
    def last_action(self) -> ActionType | None:
        return self.last_intent.action if self.last_intent else None


@dataclass(frozen=True)
class ContextEntry:
    """One entry in the bounded context history."""

    kind: ContextEventKind
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)


def _as_number(value: Any, field_name: str, cast: type = float) -> Any:
    """Coerce a reported number, or return None when it is not one.

    Game payloads are untrusted; a bad field is dropped with a warning
    so the rest of the update still applies.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        logger.warning(f"Ignoring non-numeric {field_name} {value!r}")
        return None
    try:
        number = float(value)
        if not math.isfinite(number):
            raise ValueError(f"{field_name} is not finite")
        return cast(number)
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Ignoring non-numeric {field_name} {value!r}")
        return None


def _parse_target(payload: dict[str, Any]) -> TargetRef | None:
    name = payload.get("name")
    if not name:
        return None
    kind = payload.get("kind") or payload.get("type")
    return TargetRef(
        name=str(name),
        id=str(payload["id"]) if payload.get("id") is not None else None,
        kind=str(kind) if kind else None,
        distance=_as_number(payload.get("distance"), "target distance"),
    )


def _merge_vitals(current: CharacterVitals | None, payload: dict[str, Any]) -> CharacterVitals:
    """Merge reported character fields over the existing vitals.

    Accepts HP either flat (``hp_current``/``hp_max``) or nested
    (``{"hp": {"current": .., "max": ..}}``). Unrecognized keys are kept
    in ``extra``.
    """
    base = current or CharacterVitals()
    data = dict(payload)

    hp = data.pop("hp", None)
    hp_current = data.pop("hp_current", None)
    hp_max = data.pop("hp_max", None)
    if isinstance(hp, dict):
        hp_current = hp.get("current", hp_current)
        hp_max = hp.get("max", hp_max)

    name = data.pop("name", None)
    extra = {**base.extra, **json_safe(data)}

    hp_current = _as_number(hp_current, "hp_current", int)
    hp_max = _as_number(hp_max, "hp_max", int)

    return CharacterVitals(
        name=str(name) if name is not None else base.name,
        hp_current=hp_current if hp_current is not None else base.hp_current,
        hp_max=hp_max if hp_max is not None else base.hp_max,
        extra=extra,
    )


class ContextStore:
    """Rolling, bounded record of recent interaction state.

    The snapshot is replaced wholesale on every update. History is a
    fixed-capacity ring buffer; the oldest entry is evicted first.
    """

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE) -> None:
        """Initialize an empty context.

        Args:
            history_size: Maximum number of history entries kept.
        """
        self.history_size = history_size
        self._snapshot = ContextSnapshot()
        self._history: deque[ContextEntry] = deque(maxlen=history_size)

    @property
    def snapshot(self) -> ContextSnapshot:
        """Current context snapshot."""
        return self._snapshot

    @property
    def history(self) -> tuple[ContextEntry, ...]:
        return tuple(self._history)

    def _record(self, kind: ContextEventKind, data: dict[str, Any]) -> None:
        self._history.append(ContextEntry(kind=kind, data=json_safe(data)))
        logger.debug(f"Context updated: {kind.value} {data}")

    # =========================================================================
    # Updates
    # =========================================================================

    def record_command(self, text: str) -> None:
        """Record that a command was heard.

        Only the history changes; the snapshot (and so the confidence of
        any later resolution) is untouched.
        """
        self._record(ContextEventKind.COMMAND, {"text": text})

    def record_result(self, intent: Intent, outcome: ActionOutcome) -> None:
        """Record an executed intent and its outcome.

        The intent becomes the last intent. A successful outcome may also
        carry a new target or character fields in its data.
        """
        snapshot = replace(self._snapshot, last_intent=intent)

        if outcome.success and outcome.data:
            target = outcome.data.get("target")
            if isinstance(target, dict) and (ref := _parse_target(target)):
                snapshot = replace(snapshot, current_target=ref)
            elif isinstance(target, str) and target:
                snapshot = replace(snapshot, current_target=TargetRef(name=target))

            character = outcome.data.get("character")
            if isinstance(character, dict):
                snapshot = replace(
                    snapshot, vitals=_merge_vitals(snapshot.vitals, character)
                )

        self._snapshot = snapshot
        self._record(
            ContextEventKind.RESULT,
            {"action": intent.action.value, "success": outcome.success},
        )

    def update_target(self, payload: dict[str, Any]) -> None:
        """Set the current target; a payload without a name clears it."""
        self._snapshot = replace(self._snapshot, current_target=_parse_target(payload))
        self._record(ContextEventKind.TARGET, payload)

    def update_combat(self, payload: dict[str, Any]) -> None:
        """Replace the combat state."""
        active = payload.get("active", payload.get("in_combat", payload.get("inCombat", False)))
        combat = CombatState(
            active=bool(active),
            round=_as_number(payload.get("round"), "combat round", int),
            turn=_as_number(payload.get("turn"), "combat turn", int),
        )
        self._snapshot = replace(self._snapshot, combat=combat)
        self._record(ContextEventKind.COMBAT, payload)

    def update_character(self, payload: dict[str, Any]) -> None:
        """Merge reported character fields into the vitals."""
        vitals = _merge_vitals(self._snapshot.vitals, payload)
        self._snapshot = replace(self._snapshot, vitals=vitals)
        self._record(ContextEventKind.CHARACTER, payload)

    def restore(self, snapshot: ContextSnapshot, history: list[ContextEntry]) -> None:
        """Replace all state, e.g. when importing a saved session."""
        self._history = deque(history, maxlen=self.history_size)
        self._snapshot = snapshot

    # =========================================================================
    # Queries
    # =========================================================================

    def get_history(self, limit: int = 10) -> list[ContextEntry]:
        """Return the most recent history entries, oldest first."""
        if limit <= 0:
            return []
        return list(self._history)[-limit:]

    def available_actions(self, game_system: str = "pf2e") -> list[ActionType]:
        """Actions legal in the given game system."""
        return [*BASE_ACTIONS, *SYSTEM_ACTIONS.get(game_system, ())]

    def contextual_suggestions(self) -> list[str]:
        """Suggest commands that fit the current situation."""
        snapshot = self._snapshot
        suggestions: list[str] = []

        if snapshot.current_target:
            suggestions.append(f"attack {snapshot.current_target.name}")
            suggestions.append(f"target {snapshot.current_target.name}")

        if snapshot.last_action:
            suggestions.extend(_FOLLOW_UPS.get(snapshot.last_action, ()))

        if snapshot.combat_active:
            suggestions.extend(("raise shield", "seek", "hide"))

        if snapshot.vitals and snapshot.vitals.badly_wounded:
            suggestions.extend(("treat wounds", "use healing potion"))

        # Keep first occurrence order
        return list(dict.fromkeys(suggestions))

    def contextual_info(self, game_system: str = "pf2e") -> dict[str, Any]:
        """Summarize the context for the context-aware fallback prompt."""
        snapshot = self._snapshot
        return {
            "character_name": (snapshot.vitals.name if snapshot.vitals else None) or "Unknown",
            "current_target": snapshot.current_target.name if snapshot.current_target else "None",
            "last_action": snapshot.last_action.value if snapshot.last_action else "None",
            "combat_state": "In Combat" if snapshot.combat_active else "Out of Combat",
            "available_actions": [a.value for a in self.available_actions(game_system)],
        }

    def stats(self) -> dict[str, Any]:
        """Summary counters for diagnostics."""
        snapshot = self._snapshot
        return {
            "history_size": len(self._history),
            "max_history_size": self.history_size,
            "has_target": snapshot.current_target is not None,
            "has_last_action": snapshot.last_intent is not None,
            "in_combat": snapshot.combat_active,
            "has_character_state": snapshot.vitals is not None,
        }

    def clear_history(self) -> None:
        """Drop the history but keep the current snapshot."""
        self._history.clear()
        logger.info("Context history cleared")

    def reset(self) -> None:
        """Return to the empty state of a new session."""
        self._history.clear()
        self._snapshot = ContextSnapshot()
        logger.info("Context reset")
