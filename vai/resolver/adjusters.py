"""Confidence adjusters driven by session context and learned history.

Both adjusters only ever raise confidence. Each returns a non-negative
delta capped at its own bound; the ConfidenceResolver adds them to the
pattern's base confidence.
"""

import logging

from vai.managers.context_manager import ContextSnapshot
from vai.managers.learning_manager import MIN_SAMPLE_SIZE, LearningStore, extract_phrases
from vai.parser.action_types import ActionType, Intent, Param

logger = logging.getLogger(__name__)


# Context deltas
CONTEXT_MAX_BONUS = 0.3
TARGET_MATCH_BONUS = 0.1
SUCCESSOR_BONUS = 0.1
APPROPRIATE_BONUS = 0.05

# Pairs (previous action, next action) that naturally follow each other.
SUCCESSOR_PAIRS: frozenset[tuple[ActionType, ActionType]] = frozenset({
    (ActionType.TARGET, ActionType.ATTACK),
    (ActionType.ATTACK, ActionType.RAISE_SHIELD),
})

# Learning deltas
LEARNING_MAX_BONUS = 0.2
PHRASE_BONUS = 0.05
PARAMETER_BONUS = 0.03
SUCCESS_RATE_BONUS = 0.02
HIGH_SUCCESS_RATE = 0.8


def is_contextually_appropriate(intent: Intent, context: ContextSnapshot) -> bool:
    """Whether an action makes sense in the current situation.

    Attack needs someone to attack, raising a shield needs combat, and
    treating wounds needs missing HP. Everything else is always fine.
    """
    if intent.action == ActionType.ATTACK:
        return context.current_target is not None or intent.has(Param.TARGET)
    if intent.action == ActionType.RAISE_SHIELD:
        return context.combat_active
    if intent.action == ActionType.TREAT_WOUNDS:
        return context.vitals is not None and context.vitals.wounded
    return True


class ContextAdjuster:
    """Boosts intents that fit the current context."""

    max_bonus = CONTEXT_MAX_BONUS

    def adjust(self, candidate: Intent, context: ContextSnapshot) -> float:
        """Compute the context bonus for a candidate.

        Args:
            candidate: Intent being resolved.
            context: Current context snapshot.

        Returns:
            Bonus in [0, 0.3].
        """
        bonus = 0.0

        target = candidate.get(Param.TARGET)
        if (
            target is not None
            and context.current_target is not None
            and str(target).lower() == context.current_target.name.lower()
        ):
            bonus += TARGET_MATCH_BONUS

        if (context.last_action, candidate.action) in SUCCESSOR_PAIRS:
            bonus += SUCCESSOR_BONUS

        if is_contextually_appropriate(candidate, context):
            bonus += APPROPRIATE_BONUS

        return min(bonus, self.max_bonus)


class LearningAdjuster:
    """Boosts intents that match what has worked for the player before."""

    max_bonus = LEARNING_MAX_BONUS

    def adjust(self, candidate: Intent, learning: LearningStore) -> float:
        """Compute the learning bonus for a candidate.

        Args:
            candidate: Intent being resolved.
            learning: The session's learning store.

        Returns:
            Bonus in [0, 0.2].
        """
        profile = learning.profile(candidate.action)
        bonus = 0.0

        matched = extract_phrases(candidate.original_text) & profile.phrases
        bonus += PHRASE_BONUS * len(matched)

        for param, preferred in (
            (Param.TARGET, profile.targets),
            (Param.WEAPON, profile.weapons),
            (Param.SPELL, profile.spells),
        ):
            value = candidate.get(param)
            if value is not None and str(value) in preferred:
                bonus += PARAMETER_BONUS

        if profile.attempts >= MIN_SAMPLE_SIZE and profile.success_rate > HIGH_SUCCESS_RATE:
            bonus += SUCCESS_RATE_BONUS

        return min(bonus, self.max_bonus)
