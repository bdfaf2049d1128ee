"""Render every module's template tree into the project directory.

Each module's ``templates/`` directory mirrors the layout of the
repository it produces. Every file below it is rendered with Jinja2 into
``<project-dir>/<repository-name>/<relative-path>``; relative paths may
themselves contain template expressions. Files that are not valid UTF-8
are copied verbatim. Paths excluded by a matching ``ignoreFile``
condition are not rendered.

Template variables:
    project: the whole project configuration
    module: the module's resolved configuration
    params: shortcut for module.parameters
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from stackforge.config import GenerateConfig
from stackforge.generate.templator import GenerationPipeline, GenerationResult, TemplateSource
from stackforge.project.config import ProjectConfig, ResolvedModule

logger = structlog.get_logger(__name__)

PROJECT_README_TEMPLATE = """\
# {{ project.name }}

Generated by stackforge.

## Modules

| Module | Repository | Source |
|--------|------------|--------|
{% for name, module in project.modules.items() -%}
| {{ name }} | {{ module.repositoryUrl or module.repositoryName }} | {{ module.source }} |
{% endfor %}"""


def is_ignored(relative_path: str, ignored: list[str]) -> bool:
    """Check a template path against ignoreFile entries (files or directories)."""
    for entry in ignored:
        entry = entry.strip("/")
        if entry and (relative_path == entry or relative_path.startswith(entry + "/")):
            return True
    return False


def read_template(path: Path) -> TemplateSource:
    raw = path.read_bytes()
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw


class ProjectGenerator:
    """Dispatches every render of a project onto one pipeline.

    Attributes:
        config: Generation configuration (templates directory name)
    """

    def __init__(self, config: GenerateConfig) -> None:
        self.config = config
        self.logger = logger.bind(component="ProjectGenerator")

    def dispatch_module(
        self,
        pipeline: GenerationPipeline,
        project: ProjectConfig,
        module_name: str,
        module: ResolvedModule,
        module_dir: Path,
        project_dir: Path,
        overwrite: bool = False,
    ) -> int:
        """Queue every template of one module.

        Returns:
            Number of renders dispatched
        """
        templates_root = module_dir / self.config.templates_dir_name
        if not templates_root.is_dir():
            self.logger.warning(
                "module_has_no_templates", module=module_name, path=str(templates_root)
            )
            return 0

        output_dir = project_dir / module.repository_name
        ignored = module.ignored_files()
        data: dict[str, Any] = {
            "project": project.model_dump(mode="json", by_alias=True),
            "module": module.model_dump(mode="json", by_alias=True),
            "params": dict(module.parameters),
        }

        dispatched = 0
        for path in sorted(templates_root.rglob("*")):
            if not path.is_file():
                continue
            relative = path.relative_to(templates_root).as_posix()
            if is_ignored(relative, ignored):
                self.logger.debug("template_ignored", module=module_name, path=relative)
                continue

            template = read_template(path)
            if overwrite:
                pipeline.template_file_and_overwrite(output_dir, relative, template, data)
            else:
                pipeline.template_file_if_does_not_exist(output_dir, relative, template, data)
            dispatched += 1

        self.logger.info("module_renders_dispatched", module=module_name, count=dispatched)
        return dispatched

    async def generate(
        self,
        project: ProjectConfig,
        project_dir: Path,
        module_dirs: Mapping[str, Path],
        overwrite: bool = False,
        pipeline: GenerationPipeline | None = None,
    ) -> GenerationResult:
        """Render the whole project and wait for every file.

        Args:
            project: Project configuration
            project_dir: Root of the generated project
            module_dirs: Module name -> fetched module directory
            overwrite: Replace existing files instead of skipping them
            pipeline: Pipeline to dispatch onto (a fresh one by default)

        Returns:
            Aggregated result; check ``complete`` before running
            post-generation steps

        Raises:
            KeyError: If a project module has no fetched directory
        """
        missing = [name for name in project.modules if name not in module_dirs]
        if missing:
            raise KeyError(f"No fetched directory for modules: {', '.join(missing)}")

        pipeline = pipeline or GenerationPipeline()
        pipeline.template_file_if_does_not_exist(
            project_dir,
            "README.md",
            PROJECT_README_TEMPLATE,
            {"project": project.model_dump(mode="json", by_alias=True)},
        )
        for module_name, module in project.modules.items():
            self.dispatch_module(
                pipeline,
                project,
                module_name,
                module,
                module_dirs[module_name],
                project_dir,
                overwrite=overwrite,
            )

        return await pipeline.wait()
