"""Apply generated infrastructure module by module.

Each module directory of a created project is expected to carry a
Makefile. Modules run strictly one at a time, every module after all the
modules it depends on, and the first failure stops the run.

Credentials are never persisted with the project; vendor credentials are
taken from the process environment of the apply run.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable, Mapping
from pathlib import Path

import structlog

from stackforge.config import ApplyConfig
from stackforge.errors import ExecutionError, StackforgeError
from stackforge.project.config import ProjectConfig, ResolvedModule
from stackforge.prompts.engine import to_environment

logger = structlog.get_logger(__name__)

DirectoryRunner = Callable[[str, Path, Mapping[str, str]], str]


def run_in_directory(command: str, cwd: Path, env: Mapping[str, str]) -> str:
    """Run a shell command inside a module directory.

    Raises:
        ExecutionError: If the command exits non-zero
    """
    completed = subprocess.run(
        ["bash", "-c", command],
        cwd=cwd,
        env={**os.environ, **env},
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
    )
    if completed.returncode != 0:
        raise ExecutionError(command, completed.returncode, completed.stdout)
    return completed.stdout


def dependency_order(modules: Mapping[str, ResolvedModule]) -> list[str]:
    """Order module names so every module follows its dependencies.

    Modules without ordering constraints between them keep project order.

    Raises:
        StackforgeError: On unknown dependencies or dependency cycles
    """
    for name, module in modules.items():
        for dependency in module.depends_on:
            if dependency not in modules:
                raise StackforgeError(f"Module {name!r} depends on unknown module {dependency!r}")

    ordered: list[str] = []
    visiting: set[str] = set()

    def visit(name: str, chain: list[str]) -> None:
        if name in ordered:
            return
        if name in visiting:
            cycle = " -> ".join([*chain, name])
            raise StackforgeError(f"Dependency cycle between modules: {cycle}")
        visiting.add(name)
        for dependency in modules[name].depends_on:
            visit(dependency, [*chain, name])
        visiting.discard(name)
        ordered.append(name)

    for name in modules:
        visit(name, [])
    return ordered


class InfrastructureApplier:
    """Runs the apply command in each module directory.

    Works from the project file alone; modules are not fetched again.

    Attributes:
        config: Apply configuration (command to run)
        runner: Executes the command in a directory
    """

    def __init__(
        self,
        config: ApplyConfig,
        runner: DirectoryRunner = run_in_directory,
    ) -> None:
        self.config = config
        self.runner = runner
        self.logger = logger.bind(component="InfrastructureApplier")

    def apply(self, project: ProjectConfig, project_dir: Path) -> list[str]:
        """Apply every module of the project.

        Returns:
            Module names in the order they were applied

        Raises:
            StackforgeError: On ordering errors or missing module directories
            ExecutionError: On the first module whose command fails
        """
        order = dependency_order(project.modules)

        applied: list[str] = []
        for name in order:
            module = project.modules[name]
            module_dir = project_dir / module.repository_name
            if not module_dir.is_dir():
                raise StackforgeError(
                    f"Module directory {module_dir} not found, run create first"
                )

            env = to_environment(module.parameters, module.env_var_names)
            self.logger.info(
                "applying_module", module=name, path=str(module_dir), command=self.config.command
            )
            try:
                output = self.runner(self.config.command, module_dir, env)
            except ExecutionError as e:
                self.logger.error(
                    "apply_failed", module=name, returncode=e.returncode, output=e.output
                )
                raise
            self.logger.debug("apply_output", module=name, output=output)
            applied.append(name)

        self.logger.info("apply_complete", modules=applied)
        return applied
