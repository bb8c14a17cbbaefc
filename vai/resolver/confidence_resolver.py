"""Confidence resolution for candidate intents.

Combines the pattern's base confidence with parameter penalties, the
exact-intent bonus, and the context and learning adjusters, then clamps
the result to [0, 1]. Resolution only reads the stores.
"""

import logging

from vai.managers.context_manager import ContextSnapshot
from vai.managers.learning_manager import LearningStore
from vai.parser.action_types import ActionType, Intent, clamp_confidence
from vai.parser.intent_parser import MOVE_PARAMETERS, REQUIRED_PARAMETERS
from vai.resolver.adjusters import ContextAdjuster, LearningAdjuster

logger = logging.getLogger(__name__)


DEFAULT_THRESHOLD = 0.8
MISSING_PARAMETER_PENALTY = 0.2
MISSING_MOVEMENT_PENALTY = 0.1
EXACT_INTENT_BONUS = 0.1

# Zero-parameter actions that are unambiguous when matched.
EXACT_INTENT_ACTIONS: frozenset[ActionType] = frozenset({ActionType.HELP, ActionType.STATUS})

# Decimal places kept in resolved confidences.
_PRECISION = 6


class ConfidenceResolver:
    """Scores candidate intents and decides whether they are acceptable.

    Example:
        resolver = ConfidenceResolver(threshold=0.8)
        resolved = resolver.resolve(candidate, context.snapshot, learning)
        if resolver.is_acceptable(resolved):
            ...
    """

    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        context_adjuster: ContextAdjuster | None = None,
        learning_adjuster: LearningAdjuster | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            threshold: Minimum confidence for an intent to be accepted.
            context_adjuster: Context adjuster (default instance if omitted).
            learning_adjuster: Learning adjuster (default instance if omitted).
        """
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Threshold must be in [0, 1], got {threshold}")
        self.threshold = threshold
        self.context_adjuster = context_adjuster or ContextAdjuster()
        self.learning_adjuster = learning_adjuster or LearningAdjuster()

    def penalty(self, candidate: Intent) -> float:
        """Penalty for missing parameters the action needs."""
        missing = sum(
            1 for param in REQUIRED_PARAMETERS.get(candidate.action, ())
            if not candidate.has(param)
        )
        penalty = MISSING_PARAMETER_PENALTY * missing

        if candidate.action == ActionType.MOVE and not any(
            candidate.has(p) for p in MOVE_PARAMETERS
        ):
            penalty += MISSING_MOVEMENT_PENALTY

        return penalty

    def bonus(self, candidate: Intent) -> float:
        """Bonus for unambiguous zero-parameter actions."""
        return EXACT_INTENT_BONUS if candidate.action in EXACT_INTENT_ACTIONS else 0.0

    def resolve(
        self,
        candidate: Intent,
        context: ContextSnapshot,
        learning: LearningStore,
    ) -> Intent:
        """Compute the final confidence for a candidate.

        Args:
            candidate: Intent from the pattern matcher.
            context: Current context snapshot.
            learning: The session's learning store.

        Returns:
            A new Intent differing from the candidate only in confidence.
            Unknown intents are returned unchanged.
        """
        if candidate.is_unknown:
            return candidate

        context_delta = self.context_adjuster.adjust(candidate, context)
        learning_delta = self.learning_adjuster.adjust(candidate, learning)

        confidence = (
            candidate.confidence
            - self.penalty(candidate)
            + self.bonus(candidate)
            + context_delta
            + learning_delta
        )
        confidence = round(clamp_confidence(confidence), _PRECISION)

        logger.debug(
            f"Resolved {candidate.action.value}: base={candidate.confidence:.2f} "
            f"context=+{context_delta:.2f} learning=+{learning_delta:.2f} "
            f"-> {confidence:.2f}"
        )
        return candidate.with_confidence(confidence)

    def is_acceptable(self, intent: Intent) -> bool:
        """Whether an intent's confidence meets the threshold."""
        return not intent.is_unknown and intent.confidence >= self.threshold
