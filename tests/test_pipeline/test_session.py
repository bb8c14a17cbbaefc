"""Tests for IntentPipeline."""

import asyncio
import json
import logging

import pytest

from vai.managers.context_manager import ContextEventKind, TargetRef
from vai.observability.events import FallbackEvent, PhaseEndEvent, PhaseStartEvent
from vai.parser.action_types import ActionType
from vai.parser.disambiguation import DisambiguationFallback, FallbackCondition
from vai.parser.exceptions import EmptyInputError
from vai.parser.intent_parser import PatternMatcher
from vai.parser.patterns import CommandPattern
from vai.parser.rules import literal
from vai.pipeline.session import IntentPipeline, ResolutionState
from tests.factories import FakeProvider, create_intent, create_outcome

PEEK_TABLE = (CommandPattern(ActionType.SEEK, (literal("peek"),), 0.45),)


def _pipeline_with(provider: FakeProvider | None, **kwargs) -> IntentPipeline:
    hook = kwargs.pop("hook", None)
    fallback = DisambiguationFallback(provider, timeout=kwargs.pop("timeout", 2.0), hook=hook)
    return IntentPipeline(fallback=fallback, hook=hook, **kwargs)


class TestOnRawText:
    """Tests for resolving raw commands."""

    @pytest.mark.asyncio
    async def test_confident_match_skips_fallback(self):
        """Test a confident match is accepted without calling the provider."""
        provider = FakeProvider('{"action": "hide"}')
        pipeline = _pipeline_with(provider)

        intent = await pipeline.on_raw_text("Attack the goblin!")

        assert intent.action == ActionType.ATTACK
        assert intent.get("target") == "goblin"
        assert provider.calls == []
        report = pipeline.last_report
        assert report.transitions == [ResolutionState.MATCHED, ResolutionState.ACCEPTED]
        assert not report.used_fallback

    @pytest.mark.asyncio
    async def test_scenario_d_fallback_unavailable(self):
        """Test a low-confidence match without a provider returns the resolved candidate."""
        pipeline = IntentPipeline(matcher=PatternMatcher(PEEK_TABLE))

        intent = await pipeline.on_raw_text("peek")

        assert intent.action == ActionType.SEEK
        assert intent.confidence == pytest.approx(0.5)
        report = pipeline.last_report
        assert report.conditions == [FallbackCondition.UNAVAILABLE]
        assert report.transitions == [
            ResolutionState.MATCHED,
            ResolutionState.PENDING_FALLBACK,
            ResolutionState.FALLBACK_FAILED,
            ResolutionState.ACCEPTED,
        ]

    @pytest.mark.asyncio
    async def test_scenario_e_unparseable_reply(self):
        """Test a garbage fallback reply never raises."""
        provider = FakeProvider("I reckon they want to do something heroic")
        pipeline = _pipeline_with(provider)

        intent = await pipeline.on_raw_text("la la la")

        assert intent.action == ActionType.UNKNOWN
        assert intent.confidence == 0.1
        assert pipeline.last_report.conditions == [FallbackCondition.PARSE_FAILURE]
        assert pipeline.last_report.state == ResolutionState.ACCEPTED

    @pytest.mark.asyncio
    async def test_fallback_merge(self):
        """Test an applied fallback answer replaces an unknown candidate."""
        reply = json.dumps({
            "action": "attack",
            "confidence": 0.85,
            "parameters": {"target": "Goblin", "weapon": "none"},
            "explanation": "smack means attack",
        })
        pipeline = _pipeline_with(FakeProvider(reply))

        intent = await pipeline.on_raw_text("smack the gobbo")

        assert intent.action == ActionType.ATTACK
        assert intent.parameters == {"target": "goblin"}
        assert intent.confidence == pytest.approx(0.85)
        assert intent.original_text == "smack the gobbo"
        report = pipeline.last_report
        assert report.used_fallback
        assert report.conditions == []
        assert report.explanation == "smack means attack"

    @pytest.mark.asyncio
    async def test_fallback_prompt_carries_context(self):
        provider = FakeProvider('{"action": "attack", "confidence": 0.9}')
        pipeline = _pipeline_with(provider)
        pipeline.on_game_event("target", {"name": "Ogre"})

        await pipeline.on_raw_text("bonk it")

        assert "Ogre" in provider.last_prompt

    @pytest.mark.asyncio
    async def test_transport_failure_returns_candidate(self):
        pipeline = _pipeline_with(FakeProvider(ConnectionError("down")))

        intent = await pipeline.on_raw_text("la la la")

        assert intent.action == ActionType.UNKNOWN
        assert pipeline.last_report.conditions == [FallbackCondition.TRANSPORT_FAILURE]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_empty_input_rejected(self, text):
        pipeline = IntentPipeline()

        with pytest.raises(EmptyInputError):
            await pipeline.on_raw_text(text)

        assert pipeline.context.history == ()

    @pytest.mark.asyncio
    async def test_records_command_in_context(self):
        pipeline = IntentPipeline()

        await pipeline.on_raw_text("roll stealth")

        entry = pipeline.context.history[-1]
        assert entry.kind == ContextEventKind.COMMAND
        assert entry.data == {"text": "roll stealth"}

    @pytest.mark.asyncio
    async def test_resolution_does_not_learn(self):
        """Test only reported outcomes reach the learning store."""
        pipeline = IntentPipeline()

        await pipeline.on_raw_text("attack the goblin")

        assert len(pipeline.learning) == 0
        assert pipeline.context.snapshot.last_intent is None

    @pytest.mark.asyncio
    async def test_cancel_in_flight_fallback(self):
        """Test cancel() turns a hanging provider call into a transport failure."""
        provider = FakeProvider(None)
        pipeline = _pipeline_with(provider, timeout=30.0)

        task = asyncio.create_task(pipeline.on_raw_text("la la la"))
        await asyncio.wait_for(provider.started.wait(), timeout=1.0)

        assert pipeline.cancel()
        intent = await asyncio.wait_for(task, timeout=1.0)

        assert intent.action == ActionType.UNKNOWN
        assert pipeline.last_report.conditions == [FallbackCondition.TRANSPORT_FAILURE]
        assert pipeline.last_report.explanation == "cancelled"

    def test_cancel_without_call(self):
        assert not IntentPipeline().cancel()

    @pytest.mark.asyncio
    async def test_concurrent_commands_are_serialized(self):
        provider = FakeProvider('{"action": "seek"}', '{"action": "hide"}', delay=0.01)
        pipeline = _pipeline_with(provider)

        first, second = await asyncio.gather(
            pipeline.on_raw_text("hmm what"),
            pipeline.on_raw_text("hmm where"),
        )

        assert first.action == ActionType.SEEK
        assert second.action == ActionType.HIDE
        commands = [e.data["text"] for e in pipeline.context.history]
        assert commands == ["hmm what", "hmm where"]


class TestPhaseEvents:
    """Tests for hook events emitted during resolution."""

    @pytest.mark.asyncio
    async def test_match_and_resolve_phases(self, recording_hook):
        pipeline = IntentPipeline(hook=recording_hook)

        await pipeline.on_raw_text("attack the goblin")

        starts = [e.phase for e in recording_hook.of_type(PhaseStartEvent)]
        ends = recording_hook.of_type(PhaseEndEvent)
        assert starts == ["match", "resolve"]
        assert [e.phase for e in ends] == ["match", "resolve"]
        assert all(e.success for e in ends)
        assert ends[0].details == {"action": "attack"}

    @pytest.mark.asyncio
    async def test_fallback_phase_and_event(self, recording_hook):
        pipeline = IntentPipeline(matcher=PatternMatcher(PEEK_TABLE), hook=recording_hook)

        await pipeline.on_raw_text("peek")

        fallback_end = recording_hook.of_type(PhaseEndEvent)[-1]
        assert fallback_end.phase == "fallback"
        assert not fallback_end.success
        assert fallback_end.details == {"condition": "fallback_unavailable"}

        event = recording_hook.of_type(FallbackEvent)[0]
        assert event.condition == FallbackCondition.UNAVAILABLE
        assert event.text == "peek"


class TestOnActionOutcome:
    """Tests for outcome feedback."""

    def test_outcome_feeds_both_stores(self):
        pipeline = IntentPipeline()
        intent = create_intent(original_text="attack the goblin", target="goblin")

        pipeline.on_action_outcome(intent, create_outcome())

        assert pipeline.context.snapshot.last_intent == intent
        assert pipeline.learning.records[-1].text == "attack the goblin"
        assert pipeline.learning.success_rate(ActionType.ATTACK) == 1.0

    def test_dict_outcome(self):
        pipeline = IntentPipeline()
        outcome = {"success": True, "data": {"target": {"name": "Orc"}}}

        pipeline.on_action_outcome(create_intent(), outcome)

        assert pipeline.context.snapshot.current_target == TargetRef(name="Orc")

    def test_dict_without_success_is_failure(self):
        pipeline = IntentPipeline()

        pipeline.on_action_outcome(create_intent(), {})

        assert pipeline.learning.success_rate(ActionType.ATTACK) == 0.0

    def test_malformed_data_keeps_stores_in_step(self, caplog):
        """Test a bad numeric field updates both stores instead of raising."""
        pipeline = IntentPipeline()
        intent = create_intent(original_text="attack the goblin", target="goblin")
        outcome = {"success": True, "data": {"target": {"name": "goblin", "distance": "30 ft"}}}

        with caplog.at_level(logging.WARNING, logger="vai.managers.context_manager"):
            pipeline.on_action_outcome(intent, outcome)

        assert pipeline.context.snapshot.last_intent == intent
        assert pipeline.context.snapshot.current_target == TargetRef(name="goblin")
        assert len(pipeline.learning.records) == 1
        assert "30 ft" in caplog.text

    def test_non_object_data_is_ignored(self):
        pipeline = IntentPipeline()

        pipeline.on_action_outcome(create_intent(), {"success": True, "data": ["goblin"]})

        assert pipeline.learning.records[-1].outcome.data is None
        assert pipeline.context.snapshot.current_target is None

    @pytest.mark.asyncio
    async def test_learning_raises_later_confidence(self):
        """Test a learned phrase lifts the next resolution of the same text."""
        pipeline = IntentPipeline()
        pipeline.on_game_event("target", {"name": "goblin"})

        before = await pipeline.on_raw_text("attack it")
        pipeline.on_action_outcome(before, create_outcome())
        after = await pipeline.on_raw_text("attack it")

        assert after.confidence > before.confidence


class TestOnGameEvent:
    """Tests for game-state events."""

    def test_target_event(self):
        pipeline = IntentPipeline()

        pipeline.on_game_event("target", {"name": "Skeleton", "distance": 30})

        assert pipeline.context.snapshot.current_target.name == "Skeleton"

    def test_target_event_with_unparsable_distance(self):
        pipeline = IntentPipeline()

        pipeline.on_game_event("target", {"name": "goblin", "distance": "near"})

        assert pipeline.context.snapshot.current_target == TargetRef(name="goblin")

    def test_character_event_with_unparsable_hp(self):
        pipeline = IntentPipeline()
        pipeline.on_game_event("character", {"hp": {"current": 20, "max": 30}})

        pipeline.on_game_event("character", {"hp": {"current": "12", "max": "unknown"}})

        vitals = pipeline.context.snapshot.vitals
        assert (vitals.hp_current, vitals.hp_max) == (12, 30)

    def test_combat_event_accepts_enum(self):
        pipeline = IntentPipeline()

        pipeline.on_game_event(ContextEventKind.COMBAT, {"active": True, "round": 1})

        assert pipeline.context.snapshot.combat_active

    def test_character_event(self):
        pipeline = IntentPipeline()

        pipeline.on_game_event("Character", {"name": "Kyra", "hp_current": 4, "hp_max": 18})

        assert pipeline.context.snapshot.vitals.badly_wounded

    def test_unknown_kind_is_ignored(self, caplog):
        pipeline = IntentPipeline()
        before = pipeline.context.snapshot

        with caplog.at_level(logging.WARNING, logger="vai.pipeline.session"):
            pipeline.on_game_event("weather", {"rain": True})

        assert pipeline.context.snapshot is before
        assert "weather" in caplog.text

    def test_sessions_are_isolated(self):
        first, second = IntentPipeline(), IntentPipeline()

        first.on_game_event("target", {"name": "Orc"})
        first.on_action_outcome(create_intent(), create_outcome())

        assert second.context.snapshot.current_target is None
        assert len(second.learning) == 0


class TestOutbound:
    """Tests for command listing and validation."""

    def test_available_commands(self):
        commands = IntentPipeline().get_available_commands()

        actions = {c.action for c in commands}
        assert ActionType.ATTACK in actions
        assert ActionType.UNKNOWN not in actions
        assert all(c.examples for c in commands)

    def test_validate(self):
        validation = IntentPipeline().validate(create_intent(original_text="attack"))

        assert not validation.valid
        assert validation.errors == ["attack requires a target"]
