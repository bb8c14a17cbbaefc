"""Prompt templates for the disambiguation fallback.

Prompts are assembled from fixed templates; only the player's words and
the context summary are substituted in.
"""

from typing import Any, Sequence

SYSTEM_PROMPT = (
    "You are a helpful assistant for interpreting voice commands in a "
    "tabletop RPG game."
)

ACTION_GUIDE = """Available game actions:
- attack [target] [with weapon]
- move [direction/distance/destination]
- cast [spell] [on target]
- roll [skill] check
- target [enemy/ally]
- seek (search for hidden things)
- raise shield
- hide/sneak
- demoralize
- feint
- treat wounds
- equip [item]
- query [information]
- help
- status"""

RESPONSE_FORMAT = """Please respond with a JSON object containing:
{
    "action": "the intended action, one of the action identifiers",
    "confidence": 0.0-1.0,
    "parameters": {
        "target": "target name if applicable",
        "weapon": "weapon name if applicable",
        "spell": "spell name if applicable",
        "skill": "skill name if applicable",
        "direction": "direction if applicable",
        "distance": "distance if applicable",
        "item": "item name if applicable"
    },
    "explanation": "brief explanation of interpretation"
}
Omit parameters that do not apply."""

ACTION_IDENTIFIERS = (
    "attack, target, move, skillCheck, castSpell, query, equipItem, addSpell, "
    "seek, raiseShield, hide, demoralize, feint, treatWounds, help, status, "
    "fullAttack, charge"
)

CONNECTION_TEST_PROMPT = 'Respond with: {"test": "success", "message": "Connection working"}'


def build_disambiguation_prompt(text: str) -> str:
    """Build the plain disambiguation prompt."""
    parts = [
        "You are a voice command interpreter for a tabletop RPG game (Pathfinder 2e/1e).",
        "The user spoke a command that was not clearly understood. "
        "Please help interpret what they meant.",
        "",
        ACTION_GUIDE,
        "",
        f"Action identifiers: {ACTION_IDENTIFIERS}",
        "",
        f'User\'s speech: "{text}"',
        "",
        RESPONSE_FORMAT,
    ]
    return "\n".join(parts)


def build_context_prompt(text: str, context_info: dict[str, Any]) -> str:
    """Build the context-aware disambiguation prompt.

    Args:
        text: The player's words.
        context_info: Summary from ContextStore.contextual_info().

    Returns:
        Prompt text.
    """
    available = context_info.get("available_actions") or []
    parts = [
        "You are a voice command interpreter for a tabletop RPG game.",
        "Consider the current game context when interpreting commands.",
        "",
        "Current context:",
        f"- Character: {context_info.get('character_name') or 'Unknown'}",
        f"- Current target: {context_info.get('current_target') or 'None'}",
        f"- Last action: {context_info.get('last_action') or 'None'}",
        f"- Combat state: {context_info.get('combat_state') or 'Unknown'}",
        "",
        f'User\'s command: "{text}"',
        "",
        f"Available actions: {', '.join(available) if available else 'All actions'}",
        "",
        "If no target is spoken, use the current target when the action needs one.",
        RESPONSE_FORMAT,
    ]
    return "\n".join(parts)


def _build_match_prompt(kind: str, spoken: str, available: Sequence[str]) -> str:
    key = f"matched{kind.capitalize()}"
    parts = [
        f"You are helping to identify a {kind} in a tabletop RPG.",
        "",
        f"Available {kind}s: {', '.join(available)}",
        "",
        f'User said: "{spoken}"',
        "",
        "Please find the best match and respond with JSON:",
        "{",
        f'    "{key}": "exact {kind} name",',
        '    "confidence": 0.0-1.0,',
        '    "alternatives": ["other possible matches"],',
        f'    "explanation": "why this {kind} was chosen"',
        "}",
    ]
    return "\n".join(parts)


def build_spell_match_prompt(spell_name: str, available_spells: Sequence[str]) -> str:
    """Build the prompt for matching a spoken spell name."""
    return _build_match_prompt("spell", spell_name, available_spells)


def build_target_match_prompt(target_name: str, available_targets: Sequence[str]) -> str:
    """Build the prompt for matching a spoken target name."""
    return _build_match_prompt("target", target_name, available_targets)
