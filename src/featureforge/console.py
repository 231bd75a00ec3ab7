"""Rich console helpers for the featureforge CLI."""

from __future__ import annotations

from collections.abc import Iterable

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from featureforge.config import PipelineConfig
from featureforge.domain.models import WorkflowState, WorkflowStatus
from featureforge.domain.routing import StageSpec

# Shared console instances
console = Console()
error_console = Console(stderr=True)


def print_header(title: str, subtitle: str | None = None) -> None:
    """Print a styled header panel."""
    content = Text(title, style="bold blue")
    if subtitle:
        content.append(f"\n{subtitle}", style="dim")
    console.print(Panel(content, expand=False))


def print_error(message: str, hint: str | None = None) -> None:
    """Print formatted error message to stderr."""
    content = Text(f"ERROR: {message}", style="bold red")
    if hint:
        content.append(f"\n\nHint: {hint}", style="yellow")
    error_console.print(Panel(content, title="Error", border_style="red"))


def print_config(config: PipelineConfig, log_file: str | None = None) -> None:
    """Print the resolved configuration as a key/value table."""
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    table.add_row("Model", config.llm.model)
    table.add_row("Endpoint", config.llm.base_url)
    table.add_row("Project root", config.project_root)
    table.add_row("Artifacts", config.artifacts_dir)
    table.add_row("Max iterations", str(config.max_iterations))
    if config.stage_timeout:
        table.add_row("Stage timeout", f"{config.stage_timeout}s")
    if log_file:
        table.add_row("Log file", log_file)

    console.print(table)


def print_stages(stages: Iterable[StageSpec]) -> None:
    """Print the pipeline stage table."""
    table = Table(title="Pipeline stages")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Agent", style="magenta")
    table.add_column("Artifact")
    table.add_column("Description", style="dim")

    for stage in stages:
        table.add_row(
            str(stage.number),
            stage.agent.value,
            f"{stage.directory}/{stage.filename}",
            stage.description,
        )

    console.print(table)


def print_history(state: WorkflowState) -> None:
    """Print every stage outcome of a workflow, in order."""
    table = Table(show_header=True, box=None)
    table.add_column("Iter", style="cyan", width=5)
    table.add_column("Agent", style="magenta")
    table.add_column("Result")
    table.add_column("Duration", justify="right")
    table.add_column("Artifact / error")

    for outcome in state.history:
        result = "[green]ok[/green]" if outcome.success else "[red]failed[/red]"
        detail = outcome.artifact_path if outcome.success else (outcome.error or "")
        table.add_row(
            str(outcome.iteration),
            outcome.agent.value,
            result,
            f"{outcome.duration_ms}ms",
            detail.split("\n")[0][:100],
        )

    console.print(table)


def print_outcome(state: WorkflowState) -> None:
    """Print the terminal status panel of a workflow."""
    if state.status == WorkflowStatus.COMPLETED:
        console.print(
            Panel(
                f"{state.feature_id} delivered after {state.iteration} iteration(s) "
                f"in {state.duration_seconds}s",
                title="Success",
                border_style="green",
            )
        )
        return

    content = Text(f"{state.feature_id} {state.status.value}", style="bold red")
    if state.error:
        content.append(f"\n{state.error}", style="dim")
    console.print(Panel(content, title="Failed", border_style="red"))
