"""Learned command history and per-action preference profiles.

The LearningStore keeps a bounded history of executed commands and their
outcomes. From the retained successful records it derives, per action,
the phrase fragments and parameter values the player has used
successfully before. Success rates come from running per-action counters
that also cover records already evicted from the history.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from vai.parser.action_types import ActionOutcome, ActionType, Intent, Param

logger = logging.getLogger(__name__)


DEFAULT_HISTORY_SIZE = 100

# Minimum attempts before a success rate is considered meaningful.
MIN_SAMPLE_SIZE = 3

# Word-overlap similarity a past command needs to count as an alternative.
SIMILARITY_THRESHOLD = 0.3


def extract_phrases(text: str) -> frozenset[str]:
    """Split text into its 2-word and 3-word fragments.

    Example:
        extract_phrases("attack the goblin")
        # -> {"attack the", "the goblin", "attack the goblin"}
    """
    words = text.lower().split()
    bigrams = {" ".join(words[i : i + 2]) for i in range(len(words) - 1)}
    trigrams = {" ".join(words[i : i + 3]) for i in range(len(words) - 2)}
    return frozenset(bigrams | trigrams)


def similarity(first: str, second: str) -> float:
    """Share of words in common, relative to the longer text."""
    words1 = first.lower().split()
    words2 = second.lower().split()
    if not words1 or not words2:
        return 0.0
    common = [w for w in words1 if w in words2]
    return len(common) / max(len(words1), len(words2))


@dataclass(frozen=True)
class LearningRecord:
    """One executed command and how it turned out."""

    text: str
    intent: Intent
    outcome: ActionOutcome
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def success(self) -> bool:
        return self.outcome.success


@dataclass(frozen=True)
class ActionCounter:
    """Running attempt and success totals for one action."""

    attempts: int = 0
    successes: int = 0

    @property
    def success_rate(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.successes / self.attempts

    def counted(self, success: bool) -> "ActionCounter":
        return ActionCounter(
            attempts=self.attempts + 1,
            successes=self.successes + (1 if success else 0),
        )


@dataclass(frozen=True)
class PreferenceProfile:
    """What has worked for one action before.

    Attributes:
        phrases: 2- and 3-word fragments of successful commands.
        targets: Targets of successful commands.
        weapons: Weapons of successful commands.
        spells: Spells of successful commands.
        success_rate: Share of all attempts at this action that succeeded.
        attempts: Number of attempts behind success_rate.
    """

    phrases: frozenset[str] = frozenset()
    targets: frozenset[str] = frozenset()
    weapons: frozenset[str] = frozenset()
    spells: frozenset[str] = frozenset()
    success_rate: float = 0.0
    attempts: int = 0


@dataclass(frozen=True)
class _Preferences:
    """Preference sets derived from successful records of one action."""

    phrases: frozenset[str] = frozenset()
    targets: frozenset[str] = frozenset()
    weapons: frozenset[str] = frozenset()
    spells: frozenset[str] = frozenset()

    def extended(self, record: LearningRecord) -> "_Preferences":
        intent = record.intent

        def add(values: frozenset[str], param: Param) -> frozenset[str]:
            value = intent.get(param)
            return values | {str(value)} if value is not None else values

        return _Preferences(
            phrases=self.phrases | extract_phrases(record.text),
            targets=add(self.targets, Param.TARGET),
            weapons=add(self.weapons, Param.WEAPON),
            spells=add(self.spells, Param.SPELL),
        )


def _derive_preferences(records: list[LearningRecord]) -> dict[ActionType, _Preferences]:
    preferences: dict[ActionType, _Preferences] = {}
    for record in records:
        if record.success:
            action = record.intent.action
            preferences[action] = preferences.get(action, _Preferences()).extended(record)
    return preferences


class LearningStore:
    """Bounded command history with derived per-action preferences.

    Appends are applied by building the new preference map first and then
    swapping it in together with the history, so readers see either the
    old or the new state.

    Example:
        store = LearningStore()
        store.append("attack it", intent, ActionOutcome(success=True))

        store.profile(ActionType.ATTACK).phrases
        # -> frozenset({"attack it"})
    """

    def __init__(
        self,
        history_size: int = DEFAULT_HISTORY_SIZE,
        enabled: bool = True,
    ) -> None:
        """Initialize an empty store.

        Args:
            history_size: Maximum number of records kept (FIFO eviction).
            enabled: When False, appends are ignored.
        """
        self.history_size = history_size
        self.enabled = enabled
        self._records: deque[LearningRecord] = deque(maxlen=history_size)
        self._counters: dict[ActionType, ActionCounter] = {}
        self._preferences: dict[ActionType, _Preferences] = {}

    @property
    def records(self) -> tuple[LearningRecord, ...]:
        return tuple(self._records)

    @property
    def counters(self) -> dict[ActionType, ActionCounter]:
        return dict(self._counters)

    def __len__(self) -> int:
        return len(self._records)

    # =========================================================================
    # Updates
    # =========================================================================

    def append(
        self, text: str, intent: Intent, outcome: ActionOutcome
    ) -> LearningRecord | None:
        """Record an executed command.

        Args:
            text: The command text as heard.
            intent: The intent that was executed.
            outcome: How execution turned out.

        Returns:
            The new record, or None when learning is disabled.
        """
        if not self.enabled:
            return None

        record = LearningRecord(text=text, intent=intent, outcome=outcome)
        evicts = len(self._records) == self.history_size

        records = deque(self._records, maxlen=self.history_size)
        records.append(record)

        counters = dict(self._counters)
        action = intent.action
        counters[action] = counters.get(action, ActionCounter()).counted(outcome.success)

        if evicts:
            # An evicted record may have been the only source of a preference
            preferences = _derive_preferences(list(records))
        elif record.success:
            preferences = dict(self._preferences)
            preferences[action] = preferences.get(action, _Preferences()).extended(record)
        else:
            preferences = self._preferences

        self._records, self._counters, self._preferences = records, counters, preferences
        logger.debug(
            f"Learned from '{text}' -> {action.value} "
            f"({'success' if outcome.success else 'failure'})"
        )
        return record

    def restore(
        self,
        records: list[LearningRecord],
        counters: dict[ActionType, ActionCounter],
        enabled: bool = True,
    ) -> None:
        """Replace all state, e.g. when importing a saved session.

        Preferences are rebuilt from the records; they are never restored
        on their own.
        """
        restored = deque(records, maxlen=self.history_size)
        self._preferences = _derive_preferences(list(restored))
        self._counters = dict(counters)
        self._records = restored
        self.enabled = enabled

    def clear(self) -> None:
        """Forget everything learned."""
        self._records = deque(maxlen=self.history_size)
        self._counters = {}
        self._preferences = {}
        logger.info("Learning data cleared")

    # =========================================================================
    # Queries
    # =========================================================================

    def success_rate(self, action: ActionType) -> float:
        """Share of attempts at an action that succeeded (0.0 if none)."""
        return self._counters.get(action, ActionCounter()).success_rate

    def attempts(self, action: ActionType) -> int:
        return self._counters.get(action, ActionCounter()).attempts

    def profile(self, action: ActionType) -> PreferenceProfile:
        """Get the preference profile for an action.

        An action with no history gets an empty profile.
        """
        preferences = self._preferences.get(action, _Preferences())
        counter = self._counters.get(action, ActionCounter())
        return PreferenceProfile(
            phrases=preferences.phrases,
            targets=preferences.targets,
            weapons=preferences.weapons,
            spells=preferences.spells,
            success_rate=counter.success_rate,
            attempts=counter.attempts,
        )

    def suggest_alternatives(self, text: str, limit: int = 5) -> list[dict[str, Any]]:
        """Suggest successful past phrasings similar to the given text.

        Args:
            text: Command text to find alternatives for.
            limit: Maximum number of suggestions.

        Returns:
            Dicts with ``text``, ``action`` and ``similarity``, most
            similar first. Each past phrasing appears at most once.
        """
        seen: set[str] = set()
        suggestions: list[dict[str, Any]] = []

        for record in reversed(self._records):
            if not record.success or record.text in seen:
                continue
            score = similarity(text, record.text)
            if score > SIMILARITY_THRESHOLD:
                seen.add(record.text)
                suggestions.append({
                    "text": record.text,
                    "action": record.intent.action.value,
                    "similarity": score,
                })

        suggestions.sort(key=lambda s: s["similarity"], reverse=True)
        return suggestions[:limit]

    def recent_history(self, limit: int = 10) -> list[LearningRecord]:
        """Most recent records, oldest first."""
        if limit <= 0:
            return []
        return list(self._records)[-limit:]

    def _ranked(self, limit: int, best_first: bool) -> list[dict[str, Any]]:
        ranked = [
            {
                "action": action.value,
                "success_rate": counter.success_rate,
                "attempts": counter.attempts,
            }
            for action, counter in self._counters.items()
            if counter.attempts >= MIN_SAMPLE_SIZE
        ]
        ranked.sort(key=lambda s: s["success_rate"], reverse=best_first)
        return ranked[:limit]

    def most_successful(self, limit: int = 5) -> list[dict[str, Any]]:
        """Actions with the highest success rates (at least 3 attempts)."""
        return self._ranked(limit, best_first=True)

    def least_successful(self, limit: int = 5) -> list[dict[str, Any]]:
        """Actions with the lowest success rates (at least 3 attempts)."""
        return self._ranked(limit, best_first=False)

    def learning_stats(self) -> dict[str, Any]:
        """Overall and per-action statistics."""
        total = len(self._records)
        successful = sum(1 for r in self._records if r.success)
        return {
            "total_commands": total,
            "successful_commands": successful,
            "overall_success_rate": successful / total if total else 0.0,
            "action_stats": {
                action.value: {
                    "success_rate": counter.success_rate,
                    "total_commands": counter.attempts,
                    "successful_commands": counter.successes,
                }
                for action, counter in self._counters.items()
            },
            "learning_enabled": self.enabled,
            "max_history_size": self.history_size,
        }
