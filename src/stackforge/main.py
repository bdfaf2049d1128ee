"""Main CLI entry point for Stackforge.

This module provides the main Typer application with sub-commands for
project lifecycle and stack inspection.

Usage:
    stackforge project init --out-dir ~/work
    stackforge project create ~/work/my-project
    stackforge project apply ~/work/my-project
    stackforge stack list
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from stackforge.cli import project as project_cli
from stackforge.cli import stack as stack_cli
from stackforge.config import StackforgeConfig, load_config
from stackforge.logging import get_logger, set_run_id, setup_logging

app = typer.Typer(
    name="stackforge",
    help="Stackforge: scaffold multi-repository projects from module stacks",
    no_args_is_help=True,
)

app.add_typer(project_cli.app, name="project", help="Initialize, create and apply projects")
app.add_typer(stack_cli.app, name="stack", help="Inspect available stacks")

console = Console()


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded Stackforge configuration
        run_id: Identifier correlating every log event of this invocation
    """

    def __init__(self, config: StackforgeConfig, run_id: str):
        self.config = config
        self.run_id = run_id


_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: StackforgeConfig) -> AppContext:
    """Initialize the global application context and its run id."""
    global _app_context
    run_id = str(uuid.uuid4())
    set_run_id(run_id)
    _app_context = AppContext(config, run_id)
    return _app_context


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure global options and initialize application context.

    Args:
        config_path: Optional path to TOML configuration file
        verbose: Enable debug-level logging
    """
    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1)

    if verbose:
        config.logging = config.logging.model_copy(update={"level": "DEBUG"})
    setup_logging(config.logging)

    ctx = initialize_context(config)
    get_logger(__name__).debug("cli_started", run_id=ctx.run_id, verbose=verbose)

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]")


if __name__ == "__main__":
    app()
