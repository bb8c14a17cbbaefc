"""Tests for ConfidenceResolver and the context/learning adjusters."""

import pytest

from vai.managers.context_manager import (
    CharacterVitals,
    CombatState,
    ContextSnapshot,
    ContextStore,
    TargetRef,
)
from vai.managers.learning_manager import LearningStore
from vai.parser.action_types import ActionType, Intent
from vai.resolver.adjusters import (
    ContextAdjuster,
    LearningAdjuster,
    is_contextually_appropriate,
)
from vai.resolver.confidence_resolver import ConfidenceResolver
from tests.factories import create_intent, create_learning_store


@pytest.fixture
def goblin_context() -> ContextSnapshot:
    return ContextSnapshot(current_target=TargetRef(name="Goblin"))


class TestConfidenceResolver:
    """Tests for ConfidenceResolver.resolve."""

    def test_scenario_a_complete_attack(self, matcher, resolver, learning_store):
        """Test a complete attack keeps at least its base confidence."""
        candidate = matcher.match("attack the goblin")
        resolved = resolver.resolve(candidate, ContextSnapshot(), learning_store)

        assert resolved.action == ActionType.ATTACK
        assert resolved.get("target") == "goblin"
        assert resolved.confidence >= 0.9
        assert resolver.is_acceptable(resolved)

    def test_scenario_b_missing_skill_penalty(self, matcher, resolver, learning_store):
        """Test a skill check without a skill loses the missing-parameter penalty."""
        bare = resolver.resolve(matcher.match("roll"), ContextSnapshot(), learning_store)
        full = resolver.resolve(matcher.match("roll stealth"), ContextSnapshot(), learning_store)

        assert bare.action == full.action == ActionType.SKILL_CHECK
        assert full.confidence - bare.confidence == pytest.approx(0.2)

    def test_scenario_c_learned_phrase(self, matcher, resolver, goblin_context):
        """Test a learned 'attack it' phrase raises confidence with a current target."""
        candidate = matcher.match("attack it")
        assert not candidate.has("target")

        learned = create_learning_store([("attack it", create_intent(original_text="attack it"), True)])
        empty = LearningStore()

        with_learning = resolver.resolve(candidate, goblin_context, learned)
        without_learning = resolver.resolve(candidate, goblin_context, empty)

        assert with_learning.confidence > without_learning.confidence
        assert with_learning.confidence == pytest.approx(0.8)
        assert without_learning.confidence == pytest.approx(0.75)

    def test_only_confidence_changes(self, matcher, resolver, learning_store, goblin_context):
        candidate = matcher.match("attack the goblin with my axe")
        resolved = resolver.resolve(candidate, goblin_context, learning_store)

        assert resolved.action == candidate.action
        assert resolved.parameters == candidate.parameters
        assert resolved.original_text == candidate.original_text
        assert resolved.timestamp == candidate.timestamp

    def test_idempotent(self, matcher, resolver, goblin_context):
        learned = create_learning_store([("attack the goblin", create_intent(target="goblin"), True)])
        candidate = matcher.match("attack the goblin")

        first = resolver.resolve(candidate, goblin_context, learned)
        second = resolver.resolve(candidate, goblin_context, learned)

        assert first.action == second.action
        assert first.confidence == second.confidence

    def test_clamped_to_one(self, resolver):
        """Test help with every bonus cannot exceed 1.0."""
        candidate = create_intent(ActionType.HELP, confidence=0.95, original_text="help me please")
        learned = create_learning_store(
            [("help me please", create_intent(ActionType.HELP, original_text="help me please"), True)] * 3
        )

        resolved = resolver.resolve(candidate, ContextSnapshot(), learned)

        assert resolved.confidence == 1.0

    def test_clamped_to_zero(self):
        """Test penalties cannot push confidence below zero."""
        resolver = ConfidenceResolver()
        candidate = create_intent(ActionType.CAST_SPELL, confidence=0.1, original_text="cast")

        resolved = resolver.resolve(candidate, ContextSnapshot(), LearningStore())

        assert resolved.confidence == 0.0

    def test_move_without_destination_penalty(self, resolver, learning_store):
        bare = create_intent(ActionType.MOVE, confidence=0.9, original_text="move")
        directed = create_intent(ActionType.MOVE, confidence=0.9, original_text="move", direction="north")

        delta = (
            resolver.resolve(directed, ContextSnapshot(), learning_store).confidence
            - resolver.resolve(bare, ContextSnapshot(), learning_store).confidence
        )
        assert delta == pytest.approx(0.1)

    def test_unknown_passes_through(self, resolver, learning_store):
        unknown = Intent.unknown("la la la")

        assert resolver.resolve(unknown, ContextSnapshot(), learning_store) is unknown
        assert not resolver.is_acceptable(unknown)

    def test_threshold_is_inclusive(self):
        resolver = ConfidenceResolver(threshold=0.7)

        assert resolver.is_acceptable(create_intent(confidence=0.7))
        assert not resolver.is_acceptable(create_intent(confidence=0.69))

    def test_threshold_validated(self):
        with pytest.raises(ValueError):
            ConfidenceResolver(threshold=1.5)

    def test_resolution_does_not_touch_stores(self, matcher, resolver):
        context = ContextStore()
        context.update_target({"name": "goblin"})
        learning = create_learning_store([("attack it", create_intent(), True)])
        snapshot, records = context.snapshot, learning.records

        resolver.resolve(matcher.match("attack it"), context.snapshot, learning)

        assert context.snapshot is snapshot
        assert learning.records == records


class TestContextAdjuster:
    """Tests for ContextAdjuster."""

    def test_target_match_is_case_insensitive(self, goblin_context):
        adjuster = ContextAdjuster()

        matching = adjuster.adjust(create_intent(target="goblin"), goblin_context)
        other = adjuster.adjust(create_intent(target="orc"), goblin_context)

        assert matching - other == pytest.approx(0.1)

    def test_successor_pair(self):
        adjuster = ContextAdjuster()
        after_target = ContextSnapshot(last_intent=create_intent(ActionType.TARGET, target="orc"))

        bonus = adjuster.adjust(create_intent(target="orc"), after_target)

        assert bonus == pytest.approx(0.15)

    def test_bonus_is_monotone_in_context(self, goblin_context):
        """Test adding matching context never lowers the bonus."""
        adjuster = ContextAdjuster()
        candidate = create_intent(target="goblin")
        richer = ContextSnapshot(
            current_target=TargetRef(name="goblin"),
            last_intent=create_intent(ActionType.TARGET, target="goblin"),
        )

        empty_bonus = adjuster.adjust(candidate, ContextSnapshot())
        target_bonus = adjuster.adjust(candidate, goblin_context)
        rich_bonus = adjuster.adjust(candidate, richer)

        assert 0.0 <= empty_bonus <= target_bonus <= rich_bonus <= 0.3

    def test_raise_shield_needs_combat(self):
        shield = create_intent(ActionType.RAISE_SHIELD, original_text="raise shield")

        assert not is_contextually_appropriate(shield, ContextSnapshot())
        assert is_contextually_appropriate(shield, ContextSnapshot(combat=CombatState(active=True)))

    def test_treat_wounds_needs_missing_hp(self):
        treat = create_intent(ActionType.TREAT_WOUNDS, original_text="treat wounds")
        healthy = ContextSnapshot(vitals=CharacterVitals(hp_current=20, hp_max=20))
        hurt = ContextSnapshot(vitals=CharacterVitals(hp_current=12, hp_max=20))

        assert not is_contextually_appropriate(treat, healthy)
        assert is_contextually_appropriate(treat, hurt)

    def test_attack_needs_some_target(self):
        bare = create_intent(original_text="attack")

        assert not is_contextually_appropriate(bare, ContextSnapshot())
        assert is_contextually_appropriate(bare, ContextSnapshot(current_target=TargetRef(name="orc")))


class TestLearningAdjuster:
    """Tests for LearningAdjuster."""

    def test_no_history_no_bonus(self, learning_store):
        assert LearningAdjuster().adjust(create_intent(target="goblin"), learning_store) == 0.0

    def test_preferred_parameters(self):
        learned = create_learning_store([
            ("smite", create_intent(original_text="smite", target="goblin", weapon="axe"), True),
        ])
        candidate = create_intent(original_text="hit", target="goblin", weapon="axe")

        assert LearningAdjuster().adjust(candidate, learned) == pytest.approx(0.06)

    def test_success_rate_needs_samples(self):
        intent = create_intent(ActionType.HIDE, original_text="hide")
        two = create_learning_store([("hide", intent, True)] * 2)
        three = create_learning_store([("hide", intent, True)] * 3)

        assert LearningAdjuster().adjust(intent, two) == 0.0
        assert LearningAdjuster().adjust(intent, three) == pytest.approx(0.02)

    def test_capped(self):
        text = "attack the goblin with my axe"
        intent = create_intent(original_text=text, target="goblin", weapon="axe")
        learned = create_learning_store([(text, intent, True)] * 3)

        assert LearningAdjuster().adjust(intent, learned) == pytest.approx(0.2)
