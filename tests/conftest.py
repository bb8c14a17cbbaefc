"""Core test fixtures for intent pipeline tests."""

import pytest

from vai.managers.context_manager import ContextStore
from vai.managers.learning_manager import LearningStore
from vai.observability.hooks import RecordingHook
from vai.parser.intent_parser import PatternMatcher
from vai.resolver.confidence_resolver import ConfidenceResolver


@pytest.fixture
def matcher() -> PatternMatcher:
    """PatternMatcher over the built-in pattern table."""
    return PatternMatcher()


@pytest.fixture
def context_store() -> ContextStore:
    """Empty context store."""
    return ContextStore()


@pytest.fixture
def learning_store() -> LearningStore:
    """Empty learning store."""
    return LearningStore()


@pytest.fixture
def resolver() -> ConfidenceResolver:
    """Resolver with the default 0.8 threshold."""
    return ConfidenceResolver()


@pytest.fixture
def recording_hook() -> RecordingHook:
    """Hook that records every emitted event."""
    return RecordingHook()
