"""
featureforge command line interface.

Examples:
  featureforge agents
  featureforge run "Add CSV export" -d "Export the orders table as CSV" -p high
  featureforge run "Fix login bug" -d "Session expires too early" --max-iterations 2 -v
  featureforge serve --port 3000
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable
from dataclasses import replace
from functools import wraps
from pathlib import Path
from typing import Any, TypeVar

import click
import uvicorn

from featureforge import __version__
from featureforge.api import create_app
from featureforge.bootstrap import build_orchestrator
from featureforge.config import PipelineConfig, load_config
from featureforge.console import (
    console,
    print_config,
    print_error,
    print_header,
    print_history,
    print_outcome,
    print_stages,
)
from featureforge.domain.exceptions import ConfigurationError, InputValidationError
from featureforge.domain.models import FeatureRequest, Priority, WorkflowStatus
from featureforge.domain.routing import STAGES
from featureforge.logging_setup import setup_logging


F = TypeVar("F", bound=Callable[..., Any])


def common_options(func: F) -> F:
    """
    Decorator adding the options shared by ``run`` and ``serve``.

    Options added:
        --config: Path to a JSON config file
        --artifact-dir: Directory for artifact storage
        --max-iterations: Bound on refinement cycles
        --log-file: Path to log file
        -v/--verbose: Enable verbose logging
    """

    @click.option(
        "--config",
        "config_path",
        default=None,
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Path to a JSON config file",
    )
    @click.option(
        "--artifact-dir",
        default=None,
        type=click.Path(file_okay=False),
        help="Directory for artifact storage (default: ./artifacts)",
    )
    @click.option(
        "--max-iterations",
        default=None,
        type=click.IntRange(min=1),
        help="Maximum refinement iterations (default: 5)",
    )
    @click.option(
        "--log-file",
        default=None,
        type=click.Path(dir_okay=False),
        help="Path to log file",
    )
    @click.option(
        "-v",
        "--verbose",
        is_flag=True,
        help="Enable verbose (DEBUG) logging to console",
    )
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def resolve_config(
    config_path: Path | None,
    artifact_dir: str | None,
    max_iterations: int | None,
) -> PipelineConfig:
    """Load configuration and apply command line overrides on top."""
    config = load_config(config_path)
    overrides: dict[str, Any] = {}
    if artifact_dir:
        overrides["artifacts_dir"] = artifact_dir
    if max_iterations is not None:
        overrides["max_iterations"] = max_iterations
    return replace(config, **overrides) if overrides else config


@click.group()
@click.version_option(__version__, prog_name="featureforge")
def cli() -> None:
    """Multi-agent feature delivery pipeline."""


@cli.command()
def agents() -> None:
    """List the pipeline stages and their artifacts."""
    print_stages(STAGES)


@cli.command()
@click.argument("title")
@click.option("-d", "--description", required=True, help="What the feature should do")
@click.option(
    "-p",
    "--priority",
    default=Priority.MEDIUM.value,
    show_default=True,
    type=click.Choice([p.value for p in Priority]),
)
@click.option("--requested-by", default="cli-user", show_default=True)
@common_options
def run(
    title: str,
    description: str,
    priority: str,
    requested_by: str,
    config_path: Path | None,
    artifact_dir: str | None,
    max_iterations: int | None,
    log_file: str | None,
    verbose: bool,
) -> None:
    """Run one feature workflow in the foreground."""
    logger = setup_logging(log_file=log_file, verbose=verbose)

    try:
        config = resolve_config(config_path, artifact_dir, max_iterations)
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        print_error(str(e), "Check the config file and environment variables.")
        sys.exit(1)

    print_header(title, f"priority: {priority}")
    print_config(config, log_file)

    request = FeatureRequest(
        title=title,
        description=description,
        priority=priority,
        requested_by=requested_by,
    )

    try:
        state = asyncio.run(build_orchestrator(config).run_workflow(request))
    except InputValidationError as e:
        print_error(str(e), f"Invalid field: {e.field}" if e.field else None)
        sys.exit(1)
    except KeyboardInterrupt:
        print_error("Interrupted")
        sys.exit(130)

    console.print()
    print_history(state)
    print_outcome(state)
    if state.status != WorkflowStatus.COMPLETED:
        sys.exit(1)


@cli.command()
@click.option("--host", default="0.0.0.0", help="Bind address.")
@click.option("--port", default=3000, type=int, help="Port number.")
@common_options
def serve(
    host: str,
    port: int,
    config_path: Path | None,
    artifact_dir: str | None,
    max_iterations: int | None,
    log_file: str | None,
    verbose: bool,
) -> None:
    """Serve the workflow HTTP API."""
    logger = setup_logging(log_file=log_file, verbose=verbose)

    try:
        config = resolve_config(config_path, artifact_dir, max_iterations)
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        print_error(str(e), "Check the config file and environment variables.")
        sys.exit(1)

    print_config(config, log_file)
    app = create_app(build_orchestrator(config))
    uvicorn.run(app, host=host, port=port, log_level="debug" if verbose else "info")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
