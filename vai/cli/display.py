"""Rich display helpers for CLI output."""

from contextlib import contextmanager
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from vai.parser.action_types import CommandInfo, Intent, IntentValidation

# Shared console instance
console = Console()


def display_error(message: str) -> None:
    """Display error message.

    Args:
        message: Error message.
    """
    console.print(f"[bold red]Error:[/bold red] {message}")


def display_success(message: str) -> None:
    """Display success message.

    Args:
        message: Success message.
    """
    console.print(f"[bold green]{message}[/bold green]")


def display_info(message: str) -> None:
    """Display info message.

    Args:
        message: Info message.
    """
    console.print(f"[dim]{message}[/dim]")


def _confidence_style(confidence: float, threshold: float) -> str:
    if confidence >= threshold:
        return "green"
    if confidence >= threshold / 2:
        return "yellow"
    return "red"


def display_intent(
    intent: Intent,
    threshold: float = 0.8,
    validation: IntentValidation | None = None,
) -> None:
    """Display a resolved intent as a panel.

    Args:
        intent: Intent to show.
        threshold: Acceptance threshold used to color the confidence.
        validation: Optional missing-parameter report.
    """
    style = _confidence_style(intent.confidence, threshold)
    lines = [
        f"[bold]Action:[/bold] [cyan]{intent.action.value}[/cyan]",
        f"[bold]Confidence:[/bold] [{style}]{intent.confidence:.2f}[/{style}]",
    ]
    for key, value in intent.parameters.items():
        lines.append(f"[bold]{key.title()}:[/bold] {value}")
    if validation and not validation.valid:
        for error in validation.errors:
            lines.append(f"[yellow]! {error}[/yellow]")

    console.print(Panel("\n".join(lines), title=f'"{intent.original_text}"', border_style="dim"))


def display_report(report: Any) -> None:
    """Display the resolution path and any fallback conditions."""
    path = " -> ".join(state.value for state in report.transitions)
    console.print(f"[dim]Path: {path}[/dim]")
    for condition in report.conditions:
        console.print(f"[yellow]Fallback: {condition.value}[/yellow]")
    if report.explanation:
        console.print(f"[dim]{report.explanation}[/dim]")


def display_commands(commands: list[CommandInfo]) -> None:
    """Display available commands with example phrasings.

    Args:
        commands: Commands from the pattern table.
    """
    table = Table(title="Available Commands")
    table.add_column("Action", style="cyan")
    table.add_column("Examples", style="white")

    for info in commands:
        table.add_row(info.action.value, ", ".join(f'"{e}"' for e in info.examples))

    console.print(table)


def display_learning_stats(stats: dict[str, Any], top: list[dict[str, Any]]) -> None:
    """Display learning statistics.

    Args:
        stats: Output of LearningStore.learning_stats().
        top: Output of LearningStore.most_successful().
    """
    console.print(
        f"[bold]Commands learned:[/bold] {stats['total_commands']} "
        f"({stats['successful_commands']} successful, "
        f"{stats['overall_success_rate']:.0%})"
    )
    if not stats["learning_enabled"]:
        console.print("[yellow]Learning is disabled[/yellow]")

    action_stats = stats["action_stats"]
    if not action_stats:
        console.print("[dim]No actions recorded yet.[/dim]")
        return

    table = Table(title="Per-Action Success")
    table.add_column("Action", style="cyan")
    table.add_column("Attempts", justify="right")
    table.add_column("Successes", justify="right")
    table.add_column("Rate", justify="right")

    for action, entry in sorted(action_stats.items()):
        rate = entry["success_rate"]
        rate_style = "green" if rate > 0.8 else "yellow" if rate >= 0.5 else "red"
        table.add_row(
            action,
            str(entry["total_commands"]),
            str(entry["successful_commands"]),
            f"[{rate_style}]{rate:.0%}[/{rate_style}]",
        )
    console.print(table)

    if top:
        best = ", ".join(f"{e['action']} ({e['success_rate']:.0%})" for e in top)
        display_info(f"Most reliable: {best}")


@contextmanager
def progress_spinner(description: str = "Processing..."):
    """Context manager for spinner during operations.

    Args:
        description: Text to show next to spinner.

    Yields:
        Tuple of (progress, task_id) for optional updates.
    """
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(description, total=None)
        yield progress, task
