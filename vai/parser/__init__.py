"""Intent parser module for converting player commands to structured intents.

Main Components:
    - ActionType: Enum of all command actions
    - Intent: Dataclass representing one resolved command
    - PatternMatcher: Deterministic rule-based matcher
    - COMMAND_PATTERNS: The ordered pattern table
    - DisambiguationFallback: Language-model fallback for unclear commands
"""

from vai.parser.action_types import (
    UNKNOWN_CONFIDENCE,
    ActionOutcome,
    ActionType,
    CommandInfo,
    Intent,
    IntentValidation,
    Param,
)
from vai.parser.disambiguation import (
    DisambiguationFallback,
    FallbackCondition,
    FallbackResult,
    NameMatch,
)
from vai.parser.exceptions import EmptyInputError
from vai.parser.intent_parser import PatternMatcher
from vai.parser.patterns import COMMAND_PATTERNS, CommandPattern, normalize_text
from vai.parser.rules import MatchRule, RuleKind

__all__ = [
    # Core types
    "ActionType",
    "ActionOutcome",
    "CommandInfo",
    "Intent",
    "IntentValidation",
    "Param",
    "UNKNOWN_CONFIDENCE",
    # Pattern table
    "COMMAND_PATTERNS",
    "CommandPattern",
    "MatchRule",
    "RuleKind",
    "normalize_text",
    # Matching
    "PatternMatcher",
    "EmptyInputError",
    # Fallback
    "DisambiguationFallback",
    "FallbackCondition",
    "FallbackResult",
    "NameMatch",
]
