"""Session stores for context and learned command history."""

from vai.managers.context_manager import (
    CharacterVitals,
    CombatState,
    ContextEntry,
    ContextEventKind,
    ContextSnapshot,
    ContextStore,
    TargetRef,
)
from vai.managers.learning_manager import (
    ActionCounter,
    LearningRecord,
    LearningStore,
    PreferenceProfile,
)

__all__ = [
    # Context
    "CharacterVitals",
    "CombatState",
    "ContextEntry",
    "ContextEventKind",
    "ContextSnapshot",
    "ContextStore",
    "TargetRef",
    # Learning
    "ActionCounter",
    "LearningRecord",
    "LearningStore",
    "PreferenceProfile",
]
