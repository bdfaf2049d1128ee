"""Stack inspection CLI commands."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from stackforge.errors import RegistryError
from stackforge.modules.registry import Registry, get_registry

app = typer.Typer(help="Stack inspection commands")
console = Console()


def _load_registry() -> Registry:
    from stackforge.main import get_app_context

    config = get_app_context().config.registry
    try:
        return get_registry(config.registry_file, config.local_module_path)
    except RegistryError as e:
        console.print(f"[red]Error loading registry:[/red] {e}")
        raise typer.Exit(code=1)


@app.command("list")
def list_stacks() -> None:
    """List available stacks in registry order."""
    registry = _load_registry()

    table = Table(title="Stacks")
    table.add_column("Label", style="cyan")
    table.add_column("Modules", justify="right")
    for stack in registry.stacks:
        table.add_row(stack.label, str(len(stack.modules)))
    console.print(table)


@app.command()
def show(
    label: Annotated[str, typer.Argument(help="Stack label")],
) -> None:
    """Show the module addresses of a stack.

    Args:
        label: Stack label as printed by ``stack list``
    """
    registry = _load_registry()
    try:
        modules = registry.modules_for_label(label)
    except RegistryError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[bold]{label}[/bold]")
    for index, address in enumerate(modules, start=1):
        console.print(f"  {index}. {address}")
