"""Project lifecycle CLI commands.

``init`` asks every question and writes the project file, ``create``
renders module templates and provisions repositories, ``apply`` runs
each module's infrastructure command in dependency order.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from stackforge.apply import InfrastructureApplier
from stackforge.config import StackforgeConfig
from stackforge.errors import StackforgeError
from stackforge.generate.generator import ProjectGenerator
from stackforge.generate.templator import GenerationResult
from stackforge.modules.registry import get_registry
from stackforge.modules.source import ModuleFetcher
from stackforge.project.config import ProjectConfig
from stackforge.project.init import ProjectInitializer
from stackforge.prompts.surface import RichPromptSurface
from stackforge.vcs.github import GithubClient, ProvisioningReport, RepositoryProvisioner

app = typer.Typer(help="Project lifecycle commands")
console = Console()


def _load_project(config: StackforgeConfig, project_dir: Path) -> ProjectConfig:
    project_file = project_dir / config.generate.project_file_name
    try:
        return ProjectConfig.read(project_file)
    except StackforgeError as e:
        console.print(f"[red]Error reading project:[/red] {e}")
        raise typer.Exit(code=1)


@app.command()
def init(
    out_dir: Annotated[
        Path,
        typer.Option(
            "--out-dir",
            "-o",
            help="Directory the project directory is created in",
            file_okay=False,
        ),
    ] = Path("."),
) -> None:
    """Interactively configure a new project from a stack.

    Args:
        out_dir: Parent directory of the new project directory
    """
    from stackforge.main import get_app_context

    config = get_app_context().config
    surface = RichPromptSurface(console)

    try:
        registry = get_registry(config.registry.registry_file, config.registry.local_module_path)
        initializer = ProjectInitializer(config, surface, registry)
        project, project_dir = asyncio.run(initializer.run(out_dir))
    except StackforgeError as e:
        console.print(f"[red]Error initializing project:[/red] {e}")
        raise typer.Exit(code=1)

    panel = Panel(
        f"[green]Project initialized![/green]\n\n"
        f"[bold]Name:[/bold] {project.name}\n"
        f"[bold]Directory:[/bold] {project_dir}\n"
        f"[bold]Modules:[/bold] {', '.join(project.modules)}\n\n"
        f"Run [cyan]stackforge project create {project_dir}[/cyan] to generate it.",
        title="Project Initialized",
        border_style="green",
    )
    console.print(panel)


@app.command()
def create(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Project directory written by init", file_okay=False),
    ],
    github_token: Annotated[
        Optional[str],
        typer.Option(
            "--github-token",
            envvar="GITHUB_ACCESS_TOKEN",
            help="GitHub token used to provision repositories",
        ),
    ] = None,
    overwrite: Annotated[
        bool,
        typer.Option("--overwrite", help="Overwrite files that already exist"),
    ] = False,
) -> None:
    """Generate every module and provision its repository.

    Args:
        project_dir: Project directory containing the project file
        github_token: Token for repository provisioning
        overwrite: Replace existing files instead of skipping them
    """
    from stackforge.main import get_app_context

    config = get_app_context().config
    project = _load_project(config, project_dir)

    if project.should_push_repositories and not github_token:
        console.print(
            "[red]A GitHub token is required to push repositories:[/red] "
            "pass --github-token or set GITHUB_ACCESS_TOKEN"
        )
        raise typer.Exit(code=1)

    async def _create() -> tuple[GenerationResult, ProvisioningReport | None]:
        fetcher = ModuleFetcher(config.registry)
        await fetcher.fetch_all([module.source for module in project.modules.values()])
        module_dirs = {
            name: fetcher.local_path(module.source) for name, module in project.modules.items()
        }

        generator = ProjectGenerator(config.generate)
        result = await generator.generate(project, project_dir, module_dirs, overwrite=overwrite)
        if not result.complete or not project.should_push_repositories:
            return result, None

        async with GithubClient(github_token or "", config.github) as client:
            provisioner = RepositoryProvisioner(client, config.github)
            report = await provisioner.provision(project, project_dir)
        return result, report

    try:
        result, report = asyncio.run(_create())
    except StackforgeError as e:
        console.print(f"[red]Error creating project:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(
        f"[bold]Rendered:[/bold] {len(result.written)} written, "
        f"{len(result.skipped)} skipped, {len(result.errors)} failed"
    )

    if not result.complete:
        for error in result.errors:
            console.print(f"[red]{error}[/red]")
        console.print("[red]Generation incomplete, repositories were not provisioned[/red]")
        raise typer.Exit(code=1)

    if report is None:
        console.print(f"[green]Project {project.name} created in {project_dir}[/green]")
        return

    table = Table(title="Repositories")
    table.add_column("Module", style="cyan")
    table.add_column("Result")
    for name in report.succeeded:
        table.add_row(name, "[green]pushed[/green]")
    for name, reason in report.failed.items():
        table.add_row(name, f"[red]{reason}[/red]")
    console.print(table)

    if not report.ok:
        raise typer.Exit(code=1)


@app.command()
def apply(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Project directory written by create", file_okay=False),
    ],
) -> None:
    """Run each module's infrastructure command in dependency order.

    Args:
        project_dir: Project directory containing the project file
    """
    from stackforge.main import get_app_context

    config = get_app_context().config
    project = _load_project(config, project_dir)

    applier = InfrastructureApplier(config.apply)
    try:
        applied = applier.apply(project, project_dir)
    except StackforgeError as e:
        console.print(f"[red]Error applying project:[/red] {e}")
        raise typer.Exit(code=1)

    for name in applied:
        console.print(f"[green]Applied[/green] {name}")
