"""Session-scoped intent pipeline.

IntentPipeline is the entry point the voice front end talks to. Each
instance owns its own matcher, context store, learning store, resolver
and fallback, so sessions never share state.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from vai.config import Settings, get_settings
from vai.llm.factory import get_disambiguation_provider
from vai.llm.retry import RetryConfig
from vai.managers.context_manager import ContextEventKind, ContextStore
from vai.managers.learning_manager import LearningStore
from vai.observability.events import PhaseEndEvent, PhaseStartEvent
from vai.observability.hooks import NullHook, ObservabilityHook
from vai.parser.action_types import ActionOutcome, CommandInfo, Intent, IntentValidation
from vai.parser.disambiguation import DisambiguationFallback, FallbackCondition
from vai.parser.exceptions import EmptyInputError
from vai.parser.intent_parser import PatternMatcher
from vai.pipeline.state import dump_state, load_state
from vai.resolver.confidence_resolver import ConfidenceResolver

logger = logging.getLogger(__name__)


class ResolutionState(str, Enum):
    """Stages of one resolution cycle."""

    IDLE = "idle"
    MATCHED = "matched"
    PENDING_FALLBACK = "pending_fallback"
    FALLBACK_FAILED = "fallback_failed"
    ACCEPTED = "accepted"


@dataclass
class ResolutionReport:
    """What happened while resolving one command.

    Attributes:
        text: The raw command text.
        state: Final state of the cycle.
        transitions: Every state entered, in order.
        candidate: Intent produced by the pattern matcher.
        resolved: Intent handed back to the caller.
        conditions: Fallback conditions encountered.
        explanation: Fallback explanation or failure detail.
    """

    text: str
    state: ResolutionState = ResolutionState.IDLE
    transitions: list[ResolutionState] = field(default_factory=list)
    candidate: Intent | None = None
    resolved: Intent | None = None
    conditions: list[FallbackCondition] = field(default_factory=list)
    explanation: str = ""

    def advance(self, state: ResolutionState) -> None:
        self.state = state
        self.transitions.append(state)

    @property
    def used_fallback(self) -> bool:
        return ResolutionState.PENDING_FALLBACK in self.transitions


class IntentPipeline:
    """Turns player commands into intents and learns from their outcomes.

    Example:
        pipeline = IntentPipeline.from_settings()

        intent = await pipeline.on_raw_text("attack the goblin")
        outcome = execute(intent)  # action-execution collaborator
        pipeline.on_action_outcome(intent, outcome)

        pipeline.on_game_event("combat", {"active": True, "round": 1})
    """

    def __init__(
        self,
        matcher: PatternMatcher | None = None,
        context: ContextStore | None = None,
        learning: LearningStore | None = None,
        resolver: ConfidenceResolver | None = None,
        fallback: DisambiguationFallback | None = None,
        hook: ObservabilityHook | None = None,
        game_system: str = "pf2e",
    ) -> None:
        """Initialize the pipeline.

        Args:
            matcher: Pattern matcher (built-in table if omitted).
            context: Context store for this session.
            learning: Learning store for this session.
            resolver: Confidence resolver.
            fallback: Disambiguation fallback; without one, low-confidence
                intents are reported as fallback-unavailable.
            hook: Observability hook for phase and fallback events.
            game_system: Game system used to list legal actions.
        """
        self.hook: ObservabilityHook = hook or NullHook()
        self.resolver = resolver or ConfidenceResolver()
        self.matcher = matcher or PatternMatcher(confidence_threshold=self.resolver.threshold)
        self.context = context or ContextStore()
        self.learning = learning or LearningStore()
        self.fallback = fallback or DisambiguationFallback(None, hook=self.hook)
        self.game_system = game_system
        self._last_report: ResolutionReport | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        hook: ObservabilityHook | None = None,
    ) -> "IntentPipeline":
        """Build a pipeline from application settings."""
        settings = settings or get_settings()
        hook = hook or NullHook()
        resolver = ConfidenceResolver(threshold=settings.confidence_threshold)
        fallback = DisambiguationFallback(
            get_disambiguation_provider(settings, hook),
            timeout=settings.fallback_timeout,
            retry_config=RetryConfig(max_retries=settings.fallback_max_retries),
            context_aware=settings.context_aware_fallback,
            hook=hook,
        )
        return cls(
            context=ContextStore(history_size=settings.context_history_size),
            learning=LearningStore(
                history_size=settings.learning_history_size,
                enabled=settings.learning_enabled,
            ),
            resolver=resolver,
            fallback=fallback,
            hook=hook,
            game_system=settings.game_system,
        )

    @property
    def last_report(self) -> ResolutionReport | None:
        """Report of the most recent resolution cycle."""
        return self._last_report

    # =========================================================================
    # Inbound
    # =========================================================================

    async def on_raw_text(self, text: str) -> Intent:
        """Resolve a raw command into an intent.

        Args:
            text: Transcribed or typed command.

        Returns:
            The resolved intent. Fallback failures are recorded on
            last_report, never raised.

        Raises:
            EmptyInputError: If text is empty or whitespace-only.
        """
        if text is None or not text.strip():
            raise EmptyInputError()
        text = text.strip()

        async with self._lock:
            report = ResolutionReport(text=text)
            self._last_report = report

            self.hook.on_phase_start(PhaseStartEvent(phase="match", details={"text": text}))
            match_start = time.perf_counter()
            candidate = self.matcher.match(text)
            report.candidate = candidate
            report.advance(ResolutionState.MATCHED)
            self.hook.on_phase_end(PhaseEndEvent(
                phase="match",
                duration_ms=(time.perf_counter() - match_start) * 1000,
                success=not candidate.is_unknown,
                details={"action": candidate.action.value},
            ))

            self.context.record_command(text)

            self.hook.on_phase_start(PhaseStartEvent(phase="resolve"))
            resolve_start = time.perf_counter()
            resolved = self.resolver.resolve(candidate, self.context.snapshot, self.learning)
            acceptable = self.resolver.is_acceptable(resolved)
            self.hook.on_phase_end(PhaseEndEvent(
                phase="resolve",
                duration_ms=(time.perf_counter() - resolve_start) * 1000,
                success=acceptable,
                details={"confidence": resolved.confidence},
            ))

            if not acceptable:
                report.advance(ResolutionState.PENDING_FALLBACK)
                resolved = await self._run_fallback(text, resolved, report)

            report.resolved = resolved
            report.advance(ResolutionState.ACCEPTED)
            logger.info(f"Resolved '{text}' -> {resolved}")
            return resolved

    async def _run_fallback(
        self, text: str, candidate: Intent, report: ResolutionReport
    ) -> Intent:
        self.hook.on_phase_start(PhaseStartEvent(phase="fallback"))
        fallback_start = time.perf_counter()

        context_info = self.context.contextual_info(self.game_system)
        result = await self.fallback.disambiguate(text, candidate, context_info)
        report.explanation = result.explanation

        self.hook.on_phase_end(PhaseEndEvent(
            phase="fallback",
            duration_ms=(time.perf_counter() - fallback_start) * 1000,
            success=result.applied,
            details={"condition": result.condition.value if result.condition else None},
        ))

        if not result.applied:
            report.conditions.append(result.condition)
            report.advance(ResolutionState.FALLBACK_FAILED)
        return result.intent

    def cancel(self) -> bool:
        """Cancel an in-flight fallback call; see DisambiguationFallback.cancel()."""
        return self.fallback.cancel()

    def on_action_outcome(
        self,
        intent: Intent,
        outcome: ActionOutcome | dict[str, Any],
    ) -> None:
        """Feed back the result of executing an intent.

        Args:
            intent: The intent that was executed.
            outcome: ActionOutcome, or a dict with ``success`` and
                optional ``message`` and ``data``.
        """
        if isinstance(outcome, dict):
            data = outcome.get("data")
            if data is not None and not isinstance(data, dict):
                logger.warning(f"Ignoring non-object outcome data {data!r}")
                data = None
            message = outcome.get("message")
            outcome = ActionOutcome(
                success=bool(outcome.get("success", False)),
                message=str(message) if message is not None else None,
                data=data,
            )
        # Context must apply before learning records the outcome
        self.context.record_result(intent, outcome)
        self.learning.append(intent.original_text, intent, outcome)

    def on_game_event(self, kind: ContextEventKind | str, payload: dict[str, Any] | None) -> None:
        """Apply a game-state change reported outside intent resolution.

        Args:
            kind: ``target``, ``combat`` or ``character``.
            payload: Event fields. Unknown kinds are logged and ignored.
        """
        payload = payload or {}
        kind_value = kind.value if isinstance(kind, ContextEventKind) else str(kind).lower()

        if kind_value == ContextEventKind.TARGET.value:
            self.context.update_target(payload)
        elif kind_value == ContextEventKind.COMBAT.value:
            self.context.update_combat(payload)
        elif kind_value == ContextEventKind.CHARACTER.value:
            self.context.update_character(payload)
        else:
            logger.warning(f"Ignoring game event of unknown kind '{kind_value}'")

    # =========================================================================
    # Outbound
    # =========================================================================

    def get_available_commands(self) -> list[CommandInfo]:
        """Actions with example phrasings, for help display."""
        return self.matcher.get_available_commands()

    def validate(self, intent: Intent) -> IntentValidation:
        """List required parameters the intent is missing."""
        return self.matcher.validate_intent(intent)

    def export_state(self) -> dict[str, Any]:
        """Serialize the context and learning stores to one JSON-safe dict."""
        return dump_state(self.context, self.learning)

    def import_state(self, document: dict[str, Any] | str | bytes) -> None:
        """Replace the session's stores with a previously exported state.

        Raises:
            InvalidStateError: If the document is malformed.
        """
        state = load_state(document)
        state.apply(self.context, self.learning)
        logger.info(
            f"Imported session state: {len(self.learning)} learning records, "
            f"{len(self.context.history)} context entries"
        )
