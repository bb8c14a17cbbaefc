"""Tests for the language-model disambiguation fallback."""

import asyncio
import json
import logging

import pytest

from vai.llm.exceptions import AuthenticationError, ProviderError, StructuredOutputError
from vai.llm.retry import RetryConfig
from vai.observability.events import FallbackEvent
from vai.parser.action_types import ActionType, Intent
from vai.parser.disambiguation import (
    DisambiguationFallback,
    FallbackCondition,
    FallbackResponse,
    extract_json_block,
    merge_intents,
    parse_fallback_response,
)
from vai.parser.prompts import SYSTEM_PROMPT
from tests.factories import FakeProvider, create_intent

NO_RETRY = RetryConfig(max_retries=0)


def reply(action="attack", confidence=0.85, explanation="attack on the goblin", **parameters):
    """Build a provider reply wrapped in some prose."""
    block = {
        "action": action,
        "confidence": confidence,
        "parameters": parameters,
        "explanation": explanation,
    }
    return f"Sure! Here is my interpretation:\n```json\n{json.dumps(block)}\n```"


@pytest.fixture
def candidate() -> Intent:
    return create_intent(
        action=ActionType.ATTACK,
        confidence=0.55,
        original_text="smack it with my axe",
        weapon="axe",
    )


class TestExtractJsonBlock:
    """Tests for locating the structured block in free text."""

    def test_block_in_prose(self):
        assert extract_json_block('ok {"action": "seek"} done') == {"action": "seek"}

    def test_skips_malformed_brace(self):
        text = 'I think {this} is it: {"action": "hide", "confidence": 0.9}'

        assert extract_json_block(text)["action"] == "hide"

    def test_first_object_wins(self):
        text = '{"action": "hide"} or maybe {"action": "seek"}'

        assert extract_json_block(text) == {"action": "hide"}

    def test_no_object(self):
        with pytest.raises(StructuredOutputError):
            extract_json_block("I could not understand that command.")

    def test_array_is_not_an_object(self):
        with pytest.raises(StructuredOutputError):
            extract_json_block('[{"action"')


class TestParseFallbackResponse:
    """Tests for validating the structured block."""

    def test_valid_response(self):
        response, action = parse_fallback_response(reply(target="goblin"))

        assert action == ActionType.ATTACK
        assert response.confidence == 0.85
        assert response.parameters == {"target": "goblin"}

    def test_confidence_is_clamped(self):
        response, _ = parse_fallback_response(reply(confidence=1.4))

        assert response.confidence == 1.0

    def test_missing_action(self):
        with pytest.raises(StructuredOutputError):
            parse_fallback_response('{"confidence": 0.9}')

    def test_unrecognized_action(self):
        with pytest.raises(StructuredOutputError):
            parse_fallback_response(reply(action="dance"))

    def test_unknown_action(self):
        with pytest.raises(StructuredOutputError):
            parse_fallback_response(reply(action="unknown"))

    def test_non_numeric_confidence(self):
        with pytest.raises(StructuredOutputError):
            parse_fallback_response(reply(confidence="very"))

    @pytest.mark.parametrize("confidence", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_confidence(self, confidence):
        with pytest.raises(StructuredOutputError):
            parse_fallback_response(reply(confidence=confidence))

    def test_bare_nan_literal(self):
        with pytest.raises(StructuredOutputError):
            parse_fallback_response('{"action": "attack", "confidence": NaN, "parameters": {}}')


class TestMergeIntents:
    """Tests for merging a fallback answer into the candidate."""

    def test_fills_only_missing_parameters(self, candidate):
        response = FallbackResponse(
            action="attack",
            confidence=0.9,
            parameters={"target": "Goblin", "weapon": "sword"},
        )
        merged = merge_intents(candidate, response, ActionType.ATTACK)

        assert merged.parameters == {"weapon": "axe", "target": "goblin"}

    def test_confidence_is_max(self, candidate):
        lower = FallbackResponse(action="attack", confidence=0.3)
        higher = FallbackResponse(action="attack", confidence=0.9)

        assert merge_intents(candidate, lower, ActionType.ATTACK).confidence == 0.55
        assert merge_intents(candidate, higher, ActionType.ATTACK).confidence == 0.9

    def test_action_replaced_when_different(self, candidate):
        response = FallbackResponse(action="feint", confidence=0.8)
        merged = merge_intents(candidate, response, ActionType.FEINT)

        assert merged.action == ActionType.FEINT
        assert merged.original_text == candidate.original_text
        assert merged.timestamp == candidate.timestamp

    def test_placeholder_values_dropped(self, candidate):
        response = FallbackResponse(
            action="attack",
            confidence=0.8,
            parameters={"target": "N/A", "spell": "spell name if applicable", "skill": None},
        )
        merged = merge_intents(candidate, response, ActionType.ATTACK)

        assert merged.parameters == {"weapon": "axe"}

    def test_unknown_keys_ignored_and_distance_parsed(self):
        candidate = create_intent(action=ActionType.MOVE, confidence=0.6, original_text="go")
        response = FallbackResponse(
            action="move",
            confidence=0.8,
            parameters={"distance": "30 feet", "mood": "angry"},
        )
        merged = merge_intents(candidate, response, ActionType.MOVE)

        assert merged.parameters == {"distance": 30}


class TestDisambiguate:
    """Tests for DisambiguationFallback.disambiguate."""

    @pytest.mark.asyncio
    async def test_merges_provider_answer(self, candidate):
        provider = FakeProvider(reply(target="goblin", confidence=0.9))
        fallback = DisambiguationFallback(provider, retry_config=NO_RETRY)

        result = await fallback.disambiguate("smack it with my axe", candidate)

        assert result.applied
        assert result.intent.get("target") == "goblin"
        assert result.intent.confidence == 0.9
        assert result.explanation == "attack on the goblin"
        assert provider.calls[0]["system_prompt"] == SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_no_provider_is_unavailable(self, candidate, recording_hook):
        fallback = DisambiguationFallback(None, hook=recording_hook)

        result = await fallback.disambiguate("smack it", candidate)

        assert not fallback.available
        assert result.condition == FallbackCondition.UNAVAILABLE
        assert result.intent is candidate
        events = recording_hook.of_type(FallbackEvent)
        assert [e.condition for e in events] == ["fallback_unavailable"]

    @pytest.mark.asyncio
    async def test_unparsable_reply(self, candidate):
        provider = FakeProvider("I'm not sure what you mean, adventurer.")
        fallback = DisambiguationFallback(provider, retry_config=NO_RETRY)

        result = await fallback.disambiguate("smack it", candidate)

        assert result.condition == FallbackCondition.PARSE_FAILURE
        assert result.intent is candidate

    @pytest.mark.asyncio
    async def test_nan_confidence_is_parse_failure(self, candidate):
        """Test a NaN confidence leaves the candidate untouched."""
        provider = FakeProvider('{"action": "attack", "confidence": NaN, "parameters": {"target": "orc"}}')
        fallback = DisambiguationFallback(provider, retry_config=NO_RETRY)

        result = await fallback.disambiguate("smack it", candidate)

        assert result.condition == FallbackCondition.PARSE_FAILURE
        assert result.intent is candidate

    @pytest.mark.asyncio
    async def test_provider_error(self, candidate):
        provider = FakeProvider(AuthenticationError("bad key"))
        fallback = DisambiguationFallback(provider, retry_config=NO_RETRY)

        result = await fallback.disambiguate("smack it", candidate)

        assert result.condition == FallbackCondition.TRANSPORT_FAILURE
        assert result.intent is candidate
        assert "bad key" in result.explanation

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, candidate):
        provider = FakeProvider(RuntimeError("socket exploded"))
        fallback = DisambiguationFallback(provider, retry_config=NO_RETRY)

        result = await fallback.disambiguate("smack it", candidate)

        assert result.condition == FallbackCondition.TRANSPORT_FAILURE

    @pytest.mark.asyncio
    async def test_retryable_error_is_retried(self, candidate):
        provider = FakeProvider(
            ProviderError("overloaded", is_retryable=True, status_code=503),
            reply(target="goblin"),
        )
        fallback = DisambiguationFallback(
            provider,
            retry_config=RetryConfig(max_retries=1, initial_delay=0.01, jitter=False),
        )

        result = await fallback.disambiguate("smack it", candidate)

        assert result.applied
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_timeout(self, candidate):
        provider = FakeProvider(reply(), delay=1.0)
        fallback = DisambiguationFallback(provider, timeout=0.05, retry_config=NO_RETRY)

        result = await fallback.disambiguate("smack it", candidate)

        assert result.condition == FallbackCondition.TRANSPORT_FAILURE
        assert result.intent is candidate
        assert not fallback.pending

    @pytest.mark.asyncio
    async def test_cancel(self, candidate):
        provider = FakeProvider(None)
        fallback = DisambiguationFallback(provider, timeout=5.0, retry_config=NO_RETRY)

        task = asyncio.create_task(fallback.disambiguate("smack it", candidate))
        await provider.started.wait()
        assert fallback.cancel()
        result = await task

        assert result.condition == FallbackCondition.TRANSPORT_FAILURE
        assert result.explanation == "cancelled"
        assert result.intent is candidate

    def test_cancel_without_pending_call(self):
        assert not DisambiguationFallback(FakeProvider()).cancel()

    @pytest.mark.asyncio
    async def test_context_prompt_used_with_context(self, candidate):
        provider = FakeProvider(reply())
        fallback = DisambiguationFallback(provider, retry_config=NO_RETRY)

        await fallback.disambiguate(
            "smack it",
            candidate,
            {"character_name": "Valeros", "current_target": "goblin", "combat_state": "In Combat"},
        )

        assert "Character: Valeros" in provider.last_prompt
        assert "Current target: goblin" in provider.last_prompt

    @pytest.mark.asyncio
    async def test_plain_prompt_when_not_context_aware(self, candidate):
        provider = FakeProvider(reply())
        fallback = DisambiguationFallback(provider, retry_config=NO_RETRY, context_aware=False)

        await fallback.disambiguate("smack it", candidate, {"character_name": "Valeros"})

        assert "Valeros" not in provider.last_prompt
        assert 'User\'s speech: "smack it"' in provider.last_prompt

    @pytest.mark.asyncio
    async def test_resolve_returns_intent(self, candidate):
        fallback = DisambiguationFallback(None)

        assert await fallback.resolve("smack it", candidate) is candidate


class TestNameMatching:
    """Tests for spell and target name matching."""

    @pytest.mark.asyncio
    async def test_match_spell_name(self):
        provider = FakeProvider(json.dumps({
            "matchedSpell": "Magic Missile",
            "confidence": 0.92,
            "alternatives": ["Magic Weapon"],
            "explanation": "closest sounding spell",
        }))
        fallback = DisambiguationFallback(provider, retry_config=NO_RETRY)

        match = await fallback.match_spell_name("magic misile", ["Magic Missile", "Magic Weapon"])

        assert match.matched == "Magic Missile"
        assert match.confidence == 0.92
        assert match.alternatives == ["Magic Weapon"]
        assert "Magic Weapon" in provider.last_prompt

    @pytest.mark.asyncio
    async def test_match_target_name(self):
        provider = FakeProvider('{"matchedTarget": "Goblin Scout", "confidence": 0.8}')
        fallback = DisambiguationFallback(provider, retry_config=NO_RETRY)

        match = await fallback.match_target_name("gobbo", ["Goblin Scout", "Orc"])

        assert match.matched == "Goblin Scout"

    @pytest.mark.asyncio
    async def test_fails_soft_without_provider(self):
        match = await DisambiguationFallback(None).match_spell_name("fireball", ["Fireball"])

        assert match.matched == "fireball"
        assert match.confidence == 0.5

    @pytest.mark.asyncio
    async def test_fails_soft_on_garbage(self):
        fallback = DisambiguationFallback(FakeProvider("no idea"), retry_config=NO_RETRY)

        match = await fallback.match_target_name("gobbo", ["Goblin"])

        assert match.matched == "gobbo"
        assert match.confidence == 0.5

    @pytest.mark.asyncio
    async def test_unexpected_error_fails_soft(self, caplog):
        fallback = DisambiguationFallback(FakeProvider(RuntimeError("socket exploded")), retry_config=NO_RETRY)

        with caplog.at_level(logging.ERROR, logger="vai.parser.disambiguation"):
            match = await fallback.match_spell_name("fireball", ["Fireball"])

        assert match.matched == "fireball"
        assert match.confidence == 0.5
        assert "socket exploded" in caplog.text

    @pytest.mark.asyncio
    async def test_non_finite_confidence_uses_floor(self):
        provider = FakeProvider('{"matchedTarget": "Goblin Scout", "confidence": NaN, "alternatives": 3}')
        fallback = DisambiguationFallback(provider, retry_config=NO_RETRY)

        match = await fallback.match_target_name("gobbo", ["Goblin Scout"])

        assert match.matched == "Goblin Scout"
        assert match.confidence == 0.5
        assert match.alternatives == []


class TestConnection:
    """Tests for test_connection."""

    @pytest.mark.asyncio
    async def test_success(self):
        provider = FakeProvider('{"test": "success", "message": "Connection working"}')

        assert await DisambiguationFallback(provider, retry_config=NO_RETRY).test_connection()

    @pytest.mark.asyncio
    async def test_failure(self):
        provider = FakeProvider(AuthenticationError())

        assert not await DisambiguationFallback(provider, retry_config=NO_RETRY).test_connection()

    @pytest.mark.asyncio
    async def test_no_provider(self):
        assert not await DisambiguationFallback(None).test_connection()
