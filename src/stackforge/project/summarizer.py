"""Assemble the final ProjectConfig from resolved state.

Pure aggregation: no prompting, no I/O. Each module keeps only the
parameters it declared, along with its dependency and condition metadata
exactly as parsed.
"""

from __future__ import annotations

from collections.abc import Mapping

from stackforge.modules.descriptor import ModuleCondition, ModuleConfig
from stackforge.project.config import ProjectConfig, ResolvedModule


def summarize_parameters(module: ModuleConfig, resolved: Mapping[str, str]) -> dict[str, str]:
    """Pick the module's declared fields out of the shared parameter map."""
    return {p.field: resolved.get(p.field, "") for p in module.parameters}


def summarize_conditions(module: ModuleConfig) -> tuple[ModuleCondition, ...]:
    return tuple(module.conditions)


def repository_url(org_root: str, repository_name: str) -> str:
    """Join an org root such as ``github.com/acme`` with a repository name."""
    if not org_root:
        return ""
    return f"{org_root.rstrip('/')}/{repository_name}"


def build_project_config(
    name: str,
    global_parameters: Mapping[str, str],
    modules: Mapping[str, ModuleConfig],
    sources: Mapping[str, str],
    resolved: Mapping[str, str],
    repository_names: Mapping[str, str],
    org_root: str = "",
    should_push_repositories: bool = False,
) -> ProjectConfig:
    """Build the immutable project configuration.

    Args:
        name: Project name
        global_parameters: Project-level answers
        modules: Module name -> parsed module config
        sources: Module name -> module address
        resolved: Shared map of every resolved module parameter
        repository_names: Module name -> chosen repository name; the
            module's outputDir is used when missing or empty
        org_root: Root of the organization repositories are created in
        should_push_repositories: Whether repositories get provisioned

    Returns:
        ProjectConfig containing every module

    Raises:
        KeyError: If a module has no recorded source
    """
    project_modules: dict[str, ResolvedModule] = {}
    for module_name, module in modules.items():
        repo_name = repository_names.get(module_name) or module.output_dir or module_name
        project_modules[module_name] = ResolvedModule(
            parameters=summarize_parameters(module, resolved),
            repository_name=repo_name,
            repository_url=repository_url(org_root, repo_name),
            source=sources[module_name],
            depends_on=module.depends_on,
            conditions=summarize_conditions(module),
            env_var_names=module.env_var_names(),
        )

    return ProjectConfig(
        name=name,
        should_push_repositories=should_push_repositories,
        parameters=dict(global_parameters),
        modules=project_modules,
    )
