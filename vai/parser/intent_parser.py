"""Pattern matcher for converting player input to candidate intents.

This module provides the PatternMatcher class, the deterministic first
stage of the voice pipeline. It normalizes input, runs it against the
ordered command pattern table, and extracts parameters for the first
match. It never calls out to a language model; anything it cannot
recognize comes back as an ``unknown`` intent for later stages to deal
with.
"""

import logging
from typing import Any

from vai.parser.action_types import (
    ActionType,
    CommandInfo,
    Intent,
    IntentValidation,
    Param,
)
from vai.parser.patterns import (
    COMMAND_PATTERNS,
    CommandPattern,
    extract_parameters,
    normalize_text,
)

logger = logging.getLogger(__name__)


# Parameters an action cannot meaningfully run without.
REQUIRED_PARAMETERS: dict[ActionType, tuple[Param, ...]] = {
    ActionType.ATTACK: (Param.TARGET,),
    ActionType.SKILL_CHECK: (Param.SKILL,),
    ActionType.CAST_SPELL: (Param.SPELL,),
}

# Move needs at least one of these.
MOVE_PARAMETERS: tuple[Param, ...] = (Param.DIRECTION, Param.DESTINATION, Param.DISTANCE)


class PatternMatcher:
    """Rule-based matcher from raw text to a candidate Intent.

    Matching is pure: the same text always yields the same action,
    parameters and base confidence.

    Example:
        matcher = PatternMatcher()

        matcher.match("Attack the goblin!")
        # -> Intent(action=ATTACK, parameters={"target": "goblin"}, confidence=0.9)

        matcher.match("sing a song")
        # -> Intent(action=UNKNOWN, confidence=0.1)
    """

    def __init__(
        self,
        patterns: tuple[CommandPattern, ...] = COMMAND_PATTERNS,
        confidence_threshold: float = 0.8,
    ):
        """Initialize the matcher.

        Args:
            patterns: Ordered pattern table. Defaults to the built-in table.
            confidence_threshold: Acceptance threshold reported by get_stats().
        """
        self.patterns = patterns
        self.confidence_threshold = confidence_threshold

    def match(self, text: str) -> Intent:
        """Match raw text against the pattern table.

        Args:
            text: Raw player input.

        Returns:
            Candidate Intent with the pattern's base confidence, or an
            ``unknown`` intent when no rule matches.
        """
        normalized = normalize_text(text)
        if not normalized:
            return Intent.unknown(normalized)

        for pattern in self.patterns:
            rule_match = pattern.first_match(normalized)
            if rule_match is None:
                continue

            parameters = extract_parameters(pattern, rule_match)
            intent = Intent(
                action=pattern.action,
                parameters=parameters,
                confidence=pattern.confidence,
                original_text=normalized,
            )
            logger.debug(f"Matched '{normalized}' -> {intent}")
            return intent

        logger.debug(f"No pattern matched '{normalized}'")
        return Intent.unknown(normalized)

    def get_available_commands(self) -> list[CommandInfo]:
        """List every action in the table with its example phrasings."""
        return [
            CommandInfo(action=pattern.action, examples=pattern.examples)
            for pattern in self.patterns
        ]

    def validate_intent(self, intent: Intent) -> IntentValidation:
        """Check an intent for missing required parameters.

        Missing parameters are not an error during matching; they only
        lower confidence. Callers that want to ask the player for the
        missing value can use this to find out what to ask for.

        Args:
            intent: Intent to check.

        Returns:
            IntentValidation listing each problem found.
        """
        errors: list[str] = []

        if intent.is_unknown:
            errors.append("Command not recognized")
            return IntentValidation(valid=False, errors=errors)

        for param in REQUIRED_PARAMETERS.get(intent.action, ()):
            if not intent.has(param):
                errors.append(f"{intent.action.value} requires a {param.value}")

        if intent.action == ActionType.MOVE and not any(
            intent.has(p) for p in MOVE_PARAMETERS
        ):
            errors.append("move requires a direction, destination, or distance")

        return IntentValidation(valid=not errors, errors=errors)

    def get_stats(self) -> dict[str, Any]:
        """Summarize the pattern table."""
        return {
            "pattern_count": sum(len(p.rules) for p in self.patterns),
            "supported_actions": [p.action.value for p in self.patterns],
            "confidence_threshold": self.confidence_threshold,
        }
