"""Matching rules for the command pattern table.

Each rule is a small tagged variant rather than a raw regex string, so
the table can be inspected and tested one rule at a time:

    LITERAL  - matches when any of a set of phrases appears as whole words
    CAPTURE  - a pattern with one captured group; the group text is handed
               to the action's parameter extractors
    NUMERIC  - a verb followed by a number and a unit ("run 30 feet")

All rules run against text that has already been normalized
(lower-cased, punctuation stripped, whitespace collapsed).
"""

import re
from dataclasses import dataclass, field
from enum import Enum


class RuleKind(str, Enum):
    """Tag identifying which kind of rule a MatchRule is."""

    LITERAL = "literal"
    CAPTURE = "capture"
    NUMERIC = "numeric"


@dataclass(frozen=True)
class RuleMatch:
    """Result of a rule matching normalized text.

    Attributes:
        kind: Kind of rule that matched.
        captured: Text handed to parameter extraction. For LITERAL rules
            this is the whole input; for CAPTURE rules the group text.
        number: Numeric value for NUMERIC rules.
        unit: Unit word for NUMERIC rules.
    """

    kind: RuleKind
    captured: str
    number: int | None = None
    unit: str | None = None


def _alternation(words: tuple[str, ...]) -> str:
    """Build a regex alternation, longest phrase first."""
    ordered = sorted(words, key=len, reverse=True)
    return "|".join(re.escape(w).replace(r"\ ", r"\s+") for w in ordered)


@dataclass(frozen=True)
class MatchRule:
    """A single recognizer in a CommandPattern's ordered rule list.

    Build instances with literal(), capture(), or numeric() rather than
    calling the constructor directly.

    Attributes:
        kind: Which variant this rule is.
        source: The regex this rule compiles to (kept for display/tests).
        phrases: Alternatives for LITERAL and NUMERIC rules.
        units: Unit words accepted by NUMERIC rules.
    """

    kind: RuleKind
    source: str
    phrases: tuple[str, ...] = ()
    units: tuple[str, ...] = ()
    _compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_compiled", re.compile(self.source))

    def match(self, text: str) -> RuleMatch | None:
        """Try this rule against normalized text.

        Args:
            text: Normalized input text.

        Returns:
            RuleMatch on success, None if the rule does not apply.
        """
        found = self._compiled.search(text)
        if found is None:
            return None

        if self.kind == RuleKind.LITERAL:
            return RuleMatch(kind=self.kind, captured=text)

        if self.kind == RuleKind.NUMERIC:
            return RuleMatch(
                kind=self.kind,
                captured=found.group(0),
                number=int(found.group("number")),
                unit=found.group("unit"),
            )

        captured = (found.group("subject") or "").strip()
        return RuleMatch(kind=self.kind, captured=captured)


def literal(*phrases: str) -> MatchRule:
    """Rule matching any of the given phrases as whole words."""
    source = rf"\b(?:{_alternation(phrases)})\b"
    return MatchRule(kind=RuleKind.LITERAL, source=source, phrases=phrases)


def capture(pattern: str) -> MatchRule:
    """Rule with a single captured group.

    The pattern must contain exactly one group named ``subject``; use
    ``(?P<subject>...)``. The group text is what the action's extractors
    see.
    """
    if "(?P<subject>" not in pattern:
        raise ValueError(f"Capture rule needs a 'subject' group: {pattern!r}")
    return MatchRule(kind=RuleKind.CAPTURE, source=pattern)


def numeric(verbs: tuple[str, ...], units: tuple[str, ...]) -> MatchRule:
    """Rule matching '<verb> <number> <unit>'."""
    source = (
        rf"\b(?:{_alternation(verbs)})\s+(?:\w+\s+)?(?P<number>\d+)\s*"
        rf"(?P<unit>{_alternation(units)})\b"
    )
    return MatchRule(kind=RuleKind.NUMERIC, source=source, phrases=verbs, units=units)
