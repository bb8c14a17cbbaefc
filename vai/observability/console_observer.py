"""Rich console observer for real-time pipeline visibility.

Uses the Rich library to provide colored console output showing pipeline
phases, provider calls, and fallback conditions.
"""

from rich.console import Console

from vai.observability.events import (
    FallbackEvent,
    LLMCallEndEvent,
    LLMCallStartEvent,
    PhaseEndEvent,
    PhaseStartEvent,
)


class RichConsoleObserver:
    """Pretty console output using Rich."""

    # Phase icons for visual distinction
    PHASE_ICONS = {
        "match": "[blue]>[/]",
        "resolve": "[cyan]~[/]",
        "fallback": "[magenta]@[/]",
    }

    def __init__(
        self,
        console: Console | None = None,
        indent: str = "  ",
    ) -> None:
        """Initialize the console observer.

        Args:
            console: Rich Console instance. Creates new one if not provided.
            indent: Indentation string for nested output.
        """
        self.console = console or Console()
        self.indent = indent
        self._phase_times: dict[str, float] = {}

    def on_phase_start(self, event: PhaseStartEvent) -> None:
        """Render phase start."""
        icon = self.PHASE_ICONS.get(event.phase, "[dim]-[/]")
        self.console.print(f"{self.indent}{icon} {event.phase}...")

    def on_phase_end(self, event: PhaseEndEvent) -> None:
        """Render phase completion with timing."""
        status = "[green]done[/]" if event.success else "[red]failed[/]"
        details = ""
        if event.details:
            details = " " + " ".join(f"{k}={v}" for k, v in event.details.items())
        self.console.print(
            f"{self.indent}{self.indent}{status} ({event.duration_ms:.0f}ms){details}"
        )
        self._phase_times[event.phase] = event.duration_ms

    def on_llm_call_start(self, event: LLMCallStartEvent) -> None:
        """Render provider call start."""
        self.console.print(
            f"{self.indent}{self.indent}[cyan]{event.provider}[/] {event.model} "
            f"({event.prompt_chars} chars)"
        )

    def on_llm_call_end(self, event: LLMCallEndEvent) -> None:
        """Render provider call completion."""
        if not event.success:
            self.console.print(
                f"{self.indent}{self.indent}{self.indent}[red]x[/] "
                f"{event.duration_ms:.0f}ms {event.error or ''}"
            )
            return

        preview = f' "{event.text_preview[:40]}..."' if event.text_preview else ""
        self.console.print(
            f"{self.indent}{self.indent}{self.indent}-> {event.response_tokens} tokens, "
            f"{event.duration_ms:.0f}ms{preview}"
        )

    def on_fallback(self, event: FallbackEvent) -> None:
        """Render a fallback condition."""
        self.console.print(
            f"{self.indent}[yellow]fallback {event.condition}[/] {event.detail}",
        )

    def print_timing_summary(self) -> None:
        """Print summary of phase timings."""
        if not self._phase_times:
            return

        self.console.print("\n[bold]Phase Timing Summary:[/]")
        total = 0.0
        for phase, ms in self._phase_times.items():
            self.console.print(f"  {phase}: {ms:.0f}ms")
            total += ms
        self.console.print(f"  [bold]Total: {total:.0f}ms[/]")

    def reset(self) -> None:
        """Reset state for a new command."""
        self._phase_times = {}
