"""Command pattern table for spoken and typed player commands.

The table is evaluated in declaration order and the first rule of the
first action that matches wins. Order is therefore significant: more
specific phrasings must come before general catch-alls that would also
match them (e.g. "full attack" before "attack", help and status before
the open-ended query rules).
"""

import re
from dataclasses import dataclass
from typing import Any, Callable

from vai.parser import extractors
from vai.parser.action_types import ActionType, Param
from vai.parser.rules import MatchRule, RuleKind, RuleMatch, capture, literal, numeric


_MOVE_VERBS = ("move", "go", "walk", "run", "step", "dash")
_DISTANCE_UNITS = ("feet", "foot", "ft", "meters", "meter", "m", "squares", "square")
_SPELL_NAMES = "|".join(
    re.escape(s).replace(r"\ ", r"\s+")
    for s in sorted(extractors.SPELLS, key=len, reverse=True)
)


@dataclass(frozen=True)
class CommandPattern:
    """All matching rules for one action.

    Attributes:
        action: The action these rules recognize.
        rules: Ordered rules; the first one that matches is used.
        confidence: Base confidence for a match, in (0, 1].
        examples: Example phrasings for help display.
    """

    action: ActionType
    rules: tuple[MatchRule, ...]
    confidence: float
    examples: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate the base confidence."""
        if not 0.0 < self.confidence <= 1.0:
            raise ValueError(
                f"Base confidence for {self.action.value} must be in (0, 1], "
                f"got {self.confidence}"
            )

    def first_match(self, text: str) -> RuleMatch | None:
        """Return the first rule match for normalized text, if any."""
        for rule in self.rules:
            if match := rule.match(text):
                return match
        return None


COMMAND_PATTERNS: tuple[CommandPattern, ...] = (
    # Combat - "full attack" must precede the plain attack rules
    CommandPattern(
        action=ActionType.FULL_ATTACK,
        rules=(capture(r"\bfull\s+attack(?:\s+(?P<subject>.+))?"),),
        confidence=0.9,
        examples=("full attack the orc",),
    ),
    CommandPattern(
        action=ActionType.ATTACK,
        rules=(
            capture(r"\b(?:attack|shoot|strike|hit(?!\s+points?\b))\s+(?P<subject>.+)"),
            capture(r"\b(?:use|wield)\s+(?P<subject>.+?)\s+(?:to\s+)?(?:attack|hit|strike)\b"),
            literal("attack", "strike"),
        ),
        confidence=0.9,
        examples=("attack the goblin", "shoot an arrow at bob", "strike with my sword"),
    ),
    CommandPattern(
        action=ActionType.TARGET,
        rules=(
            capture(r"\b(?:target|focus\s+on|aim\s+at)\s+(?P<subject>.+)"),
            capture(r"\b(?:select|choose)\s+(?P<subject>.+?)\s+(?:as\s+)?(?:my\s+)?target\b"),
        ),
        confidence=0.85,
        examples=("target the orc", "focus on the dragon", "aim at the goblin"),
    ),
    CommandPattern(
        action=ActionType.CHARGE,
        rules=(capture(r"\bcharge\s+(?:at\s+)?(?P<subject>.+)"),),
        confidence=0.85,
        examples=("charge the goblin",),
    ),
    # Movement
    CommandPattern(
        action=ActionType.MOVE,
        rules=(
            numeric(_MOVE_VERBS, _DISTANCE_UNITS),
            capture(r"\b(?:move|go|walk|run|step|dash)\s+(?P<subject>.+)"),
        ),
        confidence=0.9,
        examples=("move north", "walk to the door", "run 30 feet"),
    ),
    # Skills and checks
    CommandPattern(
        action=ActionType.SKILL_CHECK,
        rules=(
            capture(
                r"\b(?:make|do|roll)\s+(?:a\s+|an\s+)?(?P<subject>\w+(?:\s+\w+)?)"
                r"\s+(?:check|roll|save)\b"
            ),
            capture(r"\b(?:roll|check)\s+(?:for\s+)?(?P<subject>.+)"),
            literal("roll", "make a check", "roll a check"),
        ),
        confidence=0.85,
        examples=("roll stealth", "check perception", "make an athletics check"),
    ),
    # Spells - "use" only counts as casting when a spell name follows
    CommandPattern(
        action=ActionType.CAST_SPELL,
        rules=(
            capture(r"\bcast\s+(?P<subject>.+)"),
            capture(rf"\buse\s+(?P<subject>(?:{_SPELL_NAMES})\b.*)"),
            literal("cast", "cast a spell"),
        ),
        confidence=0.9,
        examples=("cast fireball", "use invisibility", "cast heal on ally"),
    ),
    # Utility - before the open-ended query rules that would swallow them
    CommandPattern(
        action=ActionType.HELP,
        rules=(literal("help", "what can i do", "commands", "options"),),
        confidence=0.95,
        examples=("help", "what can i do", "show commands"),
    ),
    CommandPattern(
        action=ActionType.STATUS,
        rules=(literal("status", "how am i", "my condition"),),
        confidence=0.85,
        examples=("status", "how am i", "what is my status"),
    ),
    # Information queries
    CommandPattern(
        action=ActionType.QUERY,
        rules=(
            capture(r"\b(?:how\s+many|how\s+much|what\s+is|what\s+are|tell\s+me|show)\s+(?P<subject>.+)"),
            capture(r"\bwhats\s+(?P<subject>.+)"),
            capture(r"\blook\s+up\s+(?P<subject>.+)"),
        ),
        confidence=0.8,
        examples=("how many charges in my wand", "what are my hit points", "show my spell slots"),
    ),
    # Character management
    CommandPattern(
        action=ActionType.EQUIP_ITEM,
        rules=(
            capture(r"\b(?:equip|use|wear)\s+(?P<subject>.+)"),
            capture(r"\b(?:put\s+on|don)\s+(?P<subject>.+)"),
        ),
        confidence=0.85,
        examples=("equip my sword", "wear armor", "use my ring"),
    ),
    CommandPattern(
        action=ActionType.ADD_SPELL,
        rules=(
            capture(
                r"\b(?:add|learn)\s+(?P<subject>.+?)\s+(?:to\s+)?(?:my\s+)?"
                r"(?:spells|spell\s+list|spellbook)\b"
            ),
            capture(r"\b(?:add|learn)\s+(?P<subject>.+?)\s+spell\b"),
        ),
        confidence=0.8,
        examples=("add fireball to my spells", "learn magic missile spell"),
    ),
    # Tactical actions
    CommandPattern(
        action=ActionType.SEEK,
        rules=(literal("seek", "search", "look around"),),
        confidence=0.9,
        examples=("seek", "search the room", "look around"),
    ),
    CommandPattern(
        action=ActionType.RAISE_SHIELD,
        rules=(literal("raise shield", "raise my shield", "lift shield", "lift my shield"),),
        confidence=0.9,
        examples=("raise shield", "raise my shield"),
    ),
    CommandPattern(
        action=ActionType.HIDE,
        rules=(literal("hide", "stealth", "sneak"),),
        confidence=0.9,
        examples=("hide", "sneak"),
    ),
    CommandPattern(
        action=ActionType.DEMORALIZE,
        rules=(literal("demoralize", "intimidate"),),
        confidence=0.9,
        examples=("demoralize the goblin", "intimidate"),
    ),
    CommandPattern(
        action=ActionType.FEINT,
        rules=(literal("feint", "distract"),),
        confidence=0.9,
        examples=("feint", "distract the orc"),
    ),
    CommandPattern(
        action=ActionType.TREAT_WOUNDS,
        rules=(
            literal(
                "treat wounds", "treat wound", "heal wounds", "heal wound",
                "treat injuries", "treat injury", "heal injuries", "heal injury",
            ),
        ),
        confidence=0.9,
        examples=("treat wounds", "heal wounds"),
    ),
)


def _target_params(text: str) -> dict[str, Any]:
    return {Param.TARGET: extractors.extract_target(text)}


def _attack_params(text: str) -> dict[str, Any]:
    return {
        Param.TARGET: extractors.extract_target(text),
        Param.WEAPON: extractors.extract_weapon(text),
    }


def _move_params(text: str) -> dict[str, Any]:
    params: dict[str, Any] = {
        Param.DIRECTION: extractors.extract_direction(text),
        Param.DESTINATION: extractors.extract_destination(text),
    }
    if distance := extractors.extract_distance(text):
        params[Param.DISTANCE], params[Param.UNIT] = distance
    return params


def _spell_params(text: str) -> dict[str, Any]:
    spell = extractors.extract_spell(text)
    # Strip the spell name so it is not mistaken for the target
    remainder = text.replace(spell, " ") if spell else text
    return {
        Param.SPELL: spell,
        Param.TARGET: extractors.extract_target(remainder),
    }


# Per-action parameter extraction over the captured text
PARAMETER_EXTRACTORS: dict[ActionType, Callable[[str], dict[str, Any]]] = {
    ActionType.ATTACK: _attack_params,
    ActionType.FULL_ATTACK: _attack_params,
    ActionType.CHARGE: _attack_params,
    ActionType.TARGET: _target_params,
    ActionType.MOVE: _move_params,
    ActionType.SKILL_CHECK: lambda text: {Param.SKILL: extractors.extract_skill(text)},
    ActionType.CAST_SPELL: _spell_params,
    ActionType.QUERY: lambda text: {Param.QUERY: extractors.extract_query(text)},
    ActionType.EQUIP_ITEM: lambda text: {Param.ITEM: extractors.extract_item(text)},
    ActionType.ADD_SPELL: lambda text: {Param.SPELL: extractors.extract_spell(text)},
}


def normalize_text(text: str) -> str:
    """Normalize input for matching.

    Lower-cases, drops apostrophes ("what's" -> "whats"), replaces other
    punctuation with spaces and collapses whitespace.
    """
    lowered = text.lower().replace("'", "").replace("’", "")
    stripped = re.sub(r"[^\w\s]", " ", lowered)
    return re.sub(r"\s+", " ", stripped).strip()


def extract_parameters(pattern: CommandPattern, match: RuleMatch) -> dict[str, Any]:
    """Extract parameters for a matched pattern.

    Literal rules carry no capture, so only captured text from CAPTURE
    and NUMERIC rules is searched for parameter values.
    """
    if match.kind == RuleKind.LITERAL:
        return {}

    extractor = PARAMETER_EXTRACTORS.get(pattern.action)
    params = extractor(match.captured) if extractor else {}

    if match.kind == RuleKind.NUMERIC and match.number is not None:
        params[Param.DISTANCE] = match.number
        params[Param.UNIT] = extractors.normalize_unit(match.unit or "")

    return params


def get_pattern(action: ActionType) -> CommandPattern | None:
    """Look up the table entry for an action."""
    for pattern in COMMAND_PATTERNS:
        if pattern.action == action:
            return pattern
    return None
