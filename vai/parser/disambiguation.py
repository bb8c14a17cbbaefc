"""Language-model fallback for low-confidence intents.

When deterministic resolution is not confident enough, the
DisambiguationFallback asks one remote provider to interpret the
player's words and merges the answer back into the candidate intent.

The fallback never raises to its caller. A missing provider, an
unparsable reply, a transport error, a timeout, or a cancellation all
return the candidate unchanged together with a FallbackCondition saying
what went wrong.
"""

import asyncio
import json
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from vai.llm.base import LLMProvider
from vai.llm.exceptions import LLMError, ProviderTimeoutError, StructuredOutputError
from vai.llm.message_types import Message
from vai.llm.retry import RetryConfig, with_retry
from vai.observability.events import FallbackEvent
from vai.observability.hooks import NullHook, ObservabilityHook
from vai.parser.action_types import ActionType, Intent, Param, action_from_string
from vai.parser.prompts import (
    CONNECTION_TEST_PROMPT,
    SYSTEM_PROMPT,
    build_context_prompt,
    build_disambiguation_prompt,
    build_spell_match_prompt,
    build_target_match_prompt,
)

logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT = 10.0

# Confidence reported when a name could not be matched remotely.
NAME_MATCH_FLOOR = 0.5

# Placeholder values models use for "no value".
_EMPTY_VALUES = frozenset({"", "none", "null", "n/a", "na", "unknown", "not applicable"})


class FallbackCondition(str, Enum):
    """Why the fallback returned the candidate unchanged."""

    UNAVAILABLE = "fallback_unavailable"
    PARSE_FAILURE = "fallback_parse_failure"
    TRANSPORT_FAILURE = "fallback_transport_failure"


class FallbackResponse(BaseModel):
    """Structured block expected in the provider's reply."""

    model_config = ConfigDict(extra="ignore")

    action: str
    confidence: float = 0.0
    parameters: dict[str, Any] = Field(default_factory=dict)
    explanation: str = ""

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        value = float(value)
        if not math.isfinite(value):
            raise ValueError("confidence must be a finite number")
        return max(0.0, min(1.0, value))

    @field_validator("parameters", mode="before")
    @classmethod
    def _default_parameters(cls, value: Any) -> Any:
        return value if value is not None else {}

    @field_validator("explanation", mode="before")
    @classmethod
    def _default_explanation(cls, value: Any) -> str:
        return "" if value is None else str(value)


@dataclass(frozen=True)
class FallbackResult:
    """Outcome of one fallback attempt.

    Attributes:
        intent: The merged intent, or the unchanged candidate on failure.
        condition: Set when the fallback could not help.
        explanation: The model's explanation, or the failure detail.
    """

    intent: Intent
    condition: FallbackCondition | None = None
    explanation: str = ""

    @property
    def applied(self) -> bool:
        """Whether the provider's answer was merged in."""
        return self.condition is None


@dataclass(frozen=True)
class NameMatch:
    """Best match for a spoken spell or target name."""

    matched: str
    confidence: float = NAME_MATCH_FLOOR
    alternatives: list[str] = field(default_factory=list)
    explanation: str = ""


class _FallbackCancelled(Exception):
    """The pending provider call was cancelled through cancel()."""


def extract_json_block(text: str) -> dict[str, Any]:
    """Find the first well-formed JSON object embedded in free text.

    Args:
        text: Raw generated text, possibly with prose or code fences
            around the JSON.

    Returns:
        The decoded object.

    Raises:
        StructuredOutputError: If no JSON object can be decoded.
    """
    decoder = json.JSONDecoder()
    index = text.find("{")
    while index != -1:
        try:
            value, _ = decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            index = text.find("{", index + 1)
            continue
        if isinstance(value, dict):
            return value
        index = text.find("{", index + 1)

    raise StructuredOutputError("No JSON object found in response", raw_output=text)


def parse_fallback_response(text: str) -> tuple[FallbackResponse, ActionType]:
    """Parse and validate a disambiguation reply.

    Returns:
        The validated response and the action it names.

    Raises:
        StructuredOutputError: If the block is missing or invalid, or
            names no recognized action.
    """
    data = extract_json_block(text)
    try:
        response = FallbackResponse.model_validate(data)
    except (ValidationError, TypeError, ValueError) as e:
        raise StructuredOutputError(f"Invalid disambiguation block: {e}", raw_output=text) from e

    action = action_from_string(response.action)
    if action is None or action == ActionType.UNKNOWN:
        raise StructuredOutputError(
            f"Response names no known action: {response.action!r}", raw_output=text
        )
    return response, action


def _clean_value(param: str, value: Any) -> Any:
    """Normalize one parameter value from the model; None drops it."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return value
    if not isinstance(value, str):
        return None

    cleaned = value.strip().lower()
    if cleaned in _EMPTY_VALUES or "if applicable" in cleaned:
        return None
    if param == Param.DISTANCE.value:
        digits = cleaned.split()[0] if cleaned.split() else ""
        if digits.isdigit():
            return int(digits)
    return cleaned


def merge_intents(candidate: Intent, response: FallbackResponse, action: ActionType) -> Intent:
    """Merge a fallback answer into the candidate.

    The action is replaced when the fallback names a different one.
    Fallback parameters only fill keys the candidate lacks. Confidence
    is the higher of the two.
    """
    known = {p.value for p in Param}
    parameters = dict(candidate.parameters)
    for key, value in response.parameters.items():
        if key not in known or key in parameters:
            continue
        cleaned = _clean_value(key, value)
        if cleaned is not None:
            parameters[key] = cleaned

    return Intent(
        action=action,
        parameters=parameters,
        confidence=max(candidate.confidence, response.confidence),
        original_text=candidate.original_text,
        timestamp=candidate.timestamp,
    )


class DisambiguationFallback:
    """Remote interpretation of commands the rules could not settle.

    Example:
        fallback = DisambiguationFallback(provider, timeout=10.0)
        result = await fallback.disambiguate("smack the gobbo", candidate)
        if result.applied:
            intent = result.intent
    """

    def __init__(
        self,
        provider: LLMProvider | None,
        timeout: float = DEFAULT_TIMEOUT,
        retry_config: RetryConfig | None = None,
        context_aware: bool = True,
        hook: ObservabilityHook | None = None,
    ) -> None:
        """Initialize the fallback.

        Args:
            provider: The one provider to consult, or None if disabled.
            timeout: Upper bound in seconds for a whole fallback call,
                retries included.
            retry_config: Retry policy for transient provider errors.
            context_aware: Use the context-aware prompt when context
                information is supplied.
            hook: Observability hook notified of fallback conditions.
        """
        self.provider = provider
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()
        self.context_aware = context_aware
        self.hook: ObservabilityHook = hook or NullHook()
        self._pending: asyncio.Task | None = None

    @property
    def available(self) -> bool:
        """Whether a provider is configured."""
        return self.provider is not None

    @property
    def pending(self) -> bool:
        """Whether a provider call is in flight."""
        return self._pending is not None and not self._pending.done()

    def cancel(self) -> bool:
        """Cancel the in-flight provider call, if any.

        The awaiting resolve() returns the candidate unchanged with a
        transport failure condition.

        Returns:
            True if a call was cancelled.
        """
        if self.pending:
            self._pending.cancel()
            return True
        return False

    async def _query(self, prompt: str) -> str:
        response = await with_retry(
            self.provider.complete,
            messages=[Message.user(prompt)],
            system_prompt=SYSTEM_PROMPT,
            config=self.retry_config,
        )
        return response.content

    async def _query_bounded(self, prompt: str) -> str:
        """Run one provider query under the timeout, cancellable via cancel().

        Raises:
            ProviderTimeoutError: If the call did not finish in time.
            _FallbackCancelled: If cancel() was called.
            LLMError: If the provider call failed.
        """
        task = asyncio.ensure_future(self._query(prompt))
        self._pending = task
        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout)
            if task not in done:
                task.cancel()
                raise ProviderTimeoutError(f"No response within {self.timeout:.1f}s")
            if task.cancelled():
                raise _FallbackCancelled()
            return task.result()
        finally:
            self._pending = None
            if not task.done():
                task.cancel()

    def _fail(
        self,
        candidate: Intent,
        text: str,
        condition: FallbackCondition,
        detail: str,
    ) -> FallbackResult:
        logger.warning(f"Disambiguation fallback for '{text}': {condition.value} ({detail})")
        self.hook.on_fallback(FallbackEvent(condition=condition.value, text=text, detail=detail))
        return FallbackResult(intent=candidate, condition=condition, explanation=detail)

    async def disambiguate(
        self,
        text: str,
        candidate: Intent,
        context_info: dict[str, Any] | None = None,
    ) -> FallbackResult:
        """Ask the provider to interpret the text and merge its answer.

        Args:
            text: The player's words.
            candidate: The deterministic candidate intent.
            context_info: Context summary for the context-aware prompt.

        Returns:
            FallbackResult with the merged intent, or the unchanged
            candidate and the condition that prevented merging.
        """
        if self.provider is None:
            return self._fail(
                candidate, text, FallbackCondition.UNAVAILABLE, "no provider configured"
            )

        if self.context_aware and context_info is not None:
            prompt = build_context_prompt(text, context_info)
        else:
            prompt = build_disambiguation_prompt(text)

        try:
            reply = await self._query_bounded(prompt)
        except _FallbackCancelled:
            return self._fail(candidate, text, FallbackCondition.TRANSPORT_FAILURE, "cancelled")
        except LLMError as e:
            return self._fail(candidate, text, FallbackCondition.TRANSPORT_FAILURE, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error from disambiguation provider: {e}")
            return self._fail(candidate, text, FallbackCondition.TRANSPORT_FAILURE, str(e))

        try:
            response, action = parse_fallback_response(reply)
        except StructuredOutputError as e:
            return self._fail(candidate, text, FallbackCondition.PARSE_FAILURE, str(e))

        merged = merge_intents(candidate, response, action)
        logger.info(f"Fallback resolved '{text}' -> {merged}")
        return FallbackResult(intent=merged, explanation=response.explanation)

    async def resolve(
        self,
        text: str,
        candidate: Intent,
        context_info: dict[str, Any] | None = None,
    ) -> Intent:
        """Like disambiguate(), returning only the intent."""
        result = await self.disambiguate(text, candidate, context_info)
        return result.intent

    async def _match_name(
        self,
        kind: str,
        prompt: str,
        name: str,
    ) -> NameMatch:
        fallback = NameMatch(matched=name)
        if self.provider is None:
            return fallback

        try:
            data = extract_json_block(await self._query_bounded(prompt))
        except _FallbackCancelled:
            return fallback
        except (LLMError, StructuredOutputError) as e:
            logger.warning(f"{kind.capitalize()} matching failed for '{name}': {e}")
            return fallback
        except Exception as e:
            logger.exception(f"Unexpected error while matching {kind} name '{name}': {e}")
            return fallback

        matched = data.get(f"matched{kind.capitalize()}")
        if not isinstance(matched, str) or not matched.strip():
            return fallback

        try:
            confidence = float(data.get("confidence", NAME_MATCH_FLOOR))
        except (TypeError, ValueError):
            confidence = NAME_MATCH_FLOOR
        if not math.isfinite(confidence):
            confidence = NAME_MATCH_FLOOR
        raw_alternatives = data.get("alternatives")
        alternatives = (
            [str(a) for a in raw_alternatives if a] if isinstance(raw_alternatives, list) else []
        )

        return NameMatch(
            matched=matched.strip(),
            confidence=max(0.0, min(1.0, confidence)),
            alternatives=alternatives,
            explanation=str(data.get("explanation") or ""),
        )

    async def match_spell_name(self, spell_name: str, available_spells: Sequence[str]) -> NameMatch:
        """Match a spoken spell name against the character's spells.

        Falls back to the spoken name at confidence 0.5 when no provider
        is configured or the call fails.
        """
        prompt = build_spell_match_prompt(spell_name, available_spells)
        return await self._match_name("spell", prompt, spell_name)

    async def match_target_name(self, target_name: str, available_targets: Sequence[str]) -> NameMatch:
        """Match a spoken target name against the creatures in view.

        Falls back to the spoken name at confidence 0.5 when no provider
        is configured or the call fails.
        """
        prompt = build_target_match_prompt(target_name, available_targets)
        return await self._match_name("target", prompt, target_name)

    async def test_connection(self) -> bool:
        """Check that the provider answers and follows JSON instructions."""
        if self.provider is None:
            return False
        try:
            data = extract_json_block(await self._query_bounded(CONNECTION_TEST_PROMPT))
        except (_FallbackCancelled, LLMError, StructuredOutputError) as e:
            logger.warning(f"Disambiguation connection test failed: {e}")
            return False
        return data.get("test") == "success"
