"""Parameter extraction for matched commands.

Extractors take the text a rule captured and pull out named parameters.
A failed extraction returns None; the parameter is then simply absent
from the Intent and the confidence resolver applies any penalty.
"""

import re

# Word lists used to recognize parameter values in captured text.
TARGET_KEYWORDS: tuple[str, ...] = (
    "enemy", "ally", "friend", "foe", "target", "creature", "monster",
    "npc", "player", "goblin", "orc", "dragon", "kobold", "skeleton",
    "zombie", "wolf", "bandit", "guard",
)

WEAPONS: tuple[str, ...] = (
    "sword", "axe", "bow", "arrow", "crossbow", "dagger", "mace", "hammer",
    "spear", "staff", "wand", "rod",
)

DIRECTIONS: tuple[str, ...] = (
    "northeast", "northwest", "southeast", "southwest", "north", "south",
    "east", "west", "up", "down", "forward", "back", "left", "right",
)

DESTINATIONS: tuple[str, ...] = (
    "door", "wall", "corner", "cover", "tree", "rock", "building", "house",
    "tower",
)

SKILLS: tuple[str, ...] = (
    "acrobatics", "athletics", "deception", "diplomacy", "intimidation",
    "medicine", "nature", "occultism", "performance", "religion", "society",
    "stealth", "survival", "thievery", "perception", "fortitude", "reflex",
    "will",
)

SPELLS: tuple[str, ...] = (
    "fireball", "magic missile", "cure wounds", "heal", "invisibility", "fly",
    "teleport", "shield", "armor", "lightning bolt", "burning hands",
    "charm person", "detect magic",
)

ITEMS: tuple[str, ...] = (
    "sword", "axe", "bow", "armor", "shield", "helmet", "boots", "gloves",
    "ring", "amulet", "potion", "scroll", "wand", "staff", "rod",
)

# Query kinds, checked in order; the first whose cue appears wins.
QUERY_KINDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("itemCharges", ("charges", "charge")),
    ("hitPoints", ("hit points", "hp", "health")),
    ("spellSlots", ("spell slots", "spell slot")),
    ("distance", ("distance", "far")),
)
DEFAULT_QUERY_KIND = "general"

UNIT_ALIASES: dict[str, str] = {
    "feet": "feet",
    "foot": "feet",
    "ft": "feet",
    "meters": "meters",
    "meter": "meters",
    "m": "meters",
    "squares": "squares",
    "square": "squares",
}

# Words that never name a target on their own.
_STOPWORDS = frozenset({
    "the", "a", "an", "my", "your", "his", "her", "their", "our", "with",
    "using", "and", "then", "at", "on", "to", "into", "onto", "toward",
    "towards", "for", "from", "of", "in", "that", "this", "these", "those",
    "some", "spell", "check", "please", "now", "again",
})
_PRONOUNS = frozenset({"it", "him", "her", "them", "they", "that", "this", "one"})

_DISTANCE_RE = re.compile(r"\b(?P<number>\d+)\s*(?P<unit>feet|foot|ft|meters?|m|squares?)\b")
_PREPOSITION_RE = re.compile(r"\b(?:at|on|onto)\s+(?:the\s+)?(?P<word>[a-z]+)")
_DESTINATION_RE = re.compile(r"\b(?:to|towards?|into)\s+(?:the\s+)?(?P<dest>[a-z]+(?:\s+[a-z]+)?)")


def _find_keyword(text: str, keywords: tuple[str, ...]) -> str | None:
    """Return the first keyword (longest phrase wins ties) found in text."""
    found: list[tuple[int, int, str]] = []
    for keyword in keywords:
        pattern = r"\b" + re.escape(keyword).replace(r"\ ", r"\s+") + r"\b"
        if match := re.search(pattern, text):
            found.append((match.start(), -len(keyword), keyword))
    if not found:
        return None
    return min(found)[2]


def _is_lexicon_word(word: str) -> bool:
    """Whether a word already names a weapon, spell, skill, or item."""
    return word in WEAPONS or word in SKILLS or word in ITEMS or any(
        word in spell.split() for spell in SPELLS
    )


def _is_candidate_name(word: str) -> bool:
    return (
        len(word) > 2
        and word.isalpha()
        and word not in _STOPWORDS
        and word not in _PRONOUNS
        and not _is_lexicon_word(word)
    )


def extract_target(text: str) -> str | None:
    """Extract a target reference from captured text.

    Tries, in order: a known creature/role keyword, the word after
    'at'/'on', then the first plausible name. Pronouns ("it", "them")
    never count as a target.

    Args:
        text: Normalized captured text, e.g. "the goblin with my sword".

    Returns:
        Target name, or None if nothing target-like was found.
    """
    if not text:
        return None

    if keyword := _find_keyword(text, TARGET_KEYWORDS):
        return keyword

    if match := _PREPOSITION_RE.search(text):
        word = match.group("word")
        if _is_candidate_name(word):
            return word

    for word in text.split():
        if _is_candidate_name(word):
            return word

    return None


def extract_weapon(text: str) -> str | None:
    """Extract a weapon name."""
    return _find_keyword(text, WEAPONS)


def extract_direction(text: str) -> str | None:
    """Extract a compass or relative direction."""
    return _find_keyword(text, DIRECTIONS)


def extract_distance(text: str) -> tuple[int, str] | None:
    """Extract a numeric distance and its normalized unit.

    Returns:
        (value, unit) such as (30, "feet"), or None.
    """
    match = _DISTANCE_RE.search(text)
    if match is None:
        return None
    return int(match.group("number")), normalize_unit(match.group("unit"))


def normalize_unit(unit: str) -> str:
    """Map unit spellings ("ft", "meter") to a canonical form."""
    return UNIT_ALIASES.get(unit, unit)


def extract_destination(text: str) -> str | None:
    """Extract a destination: a known landmark, else the phrase after 'to'."""
    if keyword := _find_keyword(text, DESTINATIONS):
        return keyword

    if match := _DESTINATION_RE.search(text):
        words = [w for w in match.group("dest").split() if w not in _STOPWORDS]
        dest = " ".join(words)
        if dest and extract_direction(dest) != dest:
            return dest

    return None


def extract_skill(text: str) -> str | None:
    """Extract a skill or save name."""
    return _find_keyword(text, SKILLS)


def extract_spell(text: str) -> str | None:
    """Extract a spell name (multi-word spells supported)."""
    return _find_keyword(text, SPELLS)


def extract_item(text: str) -> str | None:
    """Extract an equippable item name."""
    return _find_keyword(text, ITEMS)


def extract_query(text: str) -> str:
    """Classify what an information query is asking about.

    Always returns a kind; falls back to "general".
    """
    for kind, cues in QUERY_KINDS:
        if _find_keyword(text, cues):
            return kind
    return DEFAULT_QUERY_KIND
