"""Main CLI application for the voice action intent pipeline."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from vai.cli.display import (
    console,
    display_commands,
    display_error,
    display_info,
    display_intent,
    display_learning_stats,
    display_report,
    display_success,
    progress_spinner,
)
from vai.config import get_settings
from vai.observability.console_observer import RichConsoleObserver
from vai.parser.action_types import ActionOutcome
from vai.parser.exceptions import EmptyInputError
from vai.parser.intent_parser import PatternMatcher
from vai.pipeline.session import IntentPipeline
from vai.pipeline.state import InvalidStateError

app = typer.Typer(
    name="vai",
    help="Turn spoken RPG commands into structured actions",
    add_completion=True,
)


def _load_pipeline(state: Path | None, **overrides) -> IntentPipeline:
    """Build a pipeline from settings and import saved state if present."""
    settings = get_settings()
    if overrides:
        settings = settings.model_copy(update=overrides)

    hook = RichConsoleObserver(console) if settings.debug else None
    pipeline = IntentPipeline.from_settings(settings, hook)

    if state is not None and state.exists():
        try:
            pipeline.import_state(state.read_text())
        except InvalidStateError as e:
            display_error(str(e))
            raise typer.Exit(1)
    return pipeline


def _save_pipeline(pipeline: IntentPipeline, state: Path) -> None:
    state.write_text(json.dumps(pipeline.export_state(), indent=2))
    display_info(f"State saved to {state}")


@app.command()
def parse(
    text: str = typer.Argument(..., help="Command text to match"),
) -> None:
    """Match text against the pattern table only (no scoring or fallback)."""
    matcher = PatternMatcher()
    intent = matcher.match(text)
    display_intent(intent, matcher.confidence_threshold, matcher.validate_intent(intent))


@app.command()
def resolve(
    text: str = typer.Argument(..., help="Command text to resolve"),
    state: Optional[Path] = typer.Option(None, "--state", "-s", help="Session state file"),
    threshold: Optional[float] = typer.Option(
        None, "--threshold", "-t", min=0.0, max=1.0, help="Acceptance threshold"
    ),
    no_fallback: bool = typer.Option(False, "--no-fallback", help="Disable the LLM fallback"),
    outcome: Optional[bool] = typer.Option(
        None, "--success/--failure", help="Record the execution outcome for learning"
    ),
) -> None:
    """Resolve text through the full pipeline."""
    overrides: dict = {}
    if threshold is not None:
        overrides["confidence_threshold"] = threshold
    if no_fallback:
        overrides["disambiguation"] = "none"
    pipeline = _load_pipeline(state, **overrides)

    try:
        with progress_spinner("Resolving..."):
            intent = asyncio.run(pipeline.on_raw_text(text))
    except EmptyInputError as e:
        display_error(str(e))
        raise typer.Exit(1)

    display_intent(intent, pipeline.resolver.threshold, pipeline.validate(intent))
    if pipeline.last_report:
        display_report(pipeline.last_report)

    if outcome is not None:
        pipeline.on_action_outcome(intent, ActionOutcome(success=outcome))
        display_success("Outcome recorded")

    if state is not None:
        _save_pipeline(pipeline, state)


@app.command()
def event(
    kind: str = typer.Argument(..., help="Event kind: target, combat or character"),
    payload: str = typer.Argument("{}", help="Event payload as JSON"),
    state: Path = typer.Option(..., "--state", "-s", help="Session state file"),
) -> None:
    """Apply a game event to a saved session."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        display_error(f"Payload is not valid JSON: {e}")
        raise typer.Exit(1)
    if not isinstance(data, dict):
        display_error("Payload must be a JSON object")
        raise typer.Exit(1)

    pipeline = _load_pipeline(state)
    pipeline.on_game_event(kind, data)
    for suggestion in pipeline.context.contextual_suggestions():
        display_info(f"Try: {suggestion}")
    _save_pipeline(pipeline, state)


@app.command()
def commands() -> None:
    """List available commands with example phrasings."""
    display_commands(PatternMatcher().get_available_commands())


@app.command()
def stats(
    state: Path = typer.Option(..., "--state", "-s", help="Session state file"),
) -> None:
    """Show learning statistics for a saved session."""
    if not state.exists():
        display_error(f"State file not found: {state}")
        raise typer.Exit(1)

    pipeline = _load_pipeline(state)
    display_learning_stats(pipeline.learning.learning_stats(), pipeline.learning.most_successful())


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Voice Action Intent - resolve tabletop RPG commands.

    Use 'vai resolve "attack the goblin"' to try it.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


if __name__ == "__main__":
    app()
