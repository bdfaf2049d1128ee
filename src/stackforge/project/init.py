"""The ``init`` flow: from a stack choice to a persisted ProjectConfig.

Order of operations:

1. Ask for the project name and create the project directory.
2. Ask which stack to use and fetch its modules (concurrent, one barrier).
3. Ask project-level questions (push repositories? organization root?).
4. Gather credentials for every vendor any module requires.
5. Resolve each module's parameters, in stack order, sharing answers.
6. Ask each module's repository name.
7. Summarize into a ProjectConfig and write it to the project directory.

Prompting is strictly sequential. Any error aborts the whole flow before
the project file is written.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from stackforge.config import StackforgeConfig
from stackforge.credentials import CredentialResolver
from stackforge.errors import StackforgeError
from stackforge.modules.descriptor import ModuleConfig, Parameter
from stackforge.modules.registry import Registry
from stackforge.modules.source import ModuleFetcher
from stackforge.project.config import ProjectConfig
from stackforge.project.summarizer import build_project_config
from stackforge.prompts.conditions import KeyEquals
from stackforge.prompts.engine import ParameterResolver
from stackforge.prompts.handler import PromptHandler
from stackforge.prompts.surface import PromptSurface
from stackforge.prompts.validators import specific_value_validation, validate_project_name

logger = structlog.get_logger(__name__)

PROJECT_NAME = "projectName"
SHOULD_PUSH_REPOSITORIES = "ShouldPushRepositories"
GITHUB_ROOT_ORG = "GithubRootOrg"


def project_name_prompt() -> PromptHandler:
    """Asked on its own, first: later defaults are derived from it."""
    return PromptHandler(
        Parameter(field=PROJECT_NAME, label="Project Name"),
        validate=validate_project_name,
    )


def project_prompts() -> list[PromptHandler]:
    return [
        PromptHandler(
            Parameter(
                field=SHOULD_PUSH_REPOSITORIES,
                label="Should the created projects be checked into github automatically? (y/n)",
                default="y",
            ),
            validate=specific_value_validation("y", "n"),
        ),
        PromptHandler(
            Parameter(
                field=GITHUB_ROOT_ORG,
                label="What's the root of the github org to create repositories in?",
                default="github.com/",
            ),
            condition=KeyEquals(SHOULD_PUSH_REPOSITORIES, "y"),
        ),
    ]


def repository_name_prompt(module: ModuleConfig) -> PromptHandler:
    return PromptHandler(
        Parameter(
            field=module.name,
            label=f"What do you want to call the {module.name} project?",
            default=module.output_dir,
        )
    )


class ProjectInitializer:
    """Runs the interactive ``init`` flow.

    Attributes:
        config: Stackforge configuration
        surface: Prompt surface for every question
        registry: Stack registry to choose from
        fetcher: Module fetcher
        resolver: Parameter resolution engine
        credential_resolver: Vendor credential resolver
    """

    def __init__(
        self,
        config: StackforgeConfig,
        surface: PromptSurface,
        registry: Registry,
        fetcher: ModuleFetcher | None = None,
        resolver: ParameterResolver | None = None,
        credential_resolver: CredentialResolver | None = None,
    ) -> None:
        self.config = config
        self.surface = surface
        self.registry = registry
        self.fetcher = fetcher or ModuleFetcher(config.registry)
        self.resolver = resolver or ParameterResolver(surface)
        self.credential_resolver = credential_resolver or CredentialResolver(surface)
        self.logger = logger.bind(component="ProjectInitializer")

    async def run(self, out_dir: Path) -> tuple[ProjectConfig, Path]:
        """Run the full flow.

        Args:
            out_dir: Directory the project directory is created in

        Returns:
            Tuple of (project configuration, project directory)

        Raises:
            StackforgeError: On any fatal error; nothing is written then
        """
        global_params: dict[str, str] = {}
        name_prompt = project_name_prompt()
        global_params[PROJECT_NAME] = name_prompt.get_param(global_params, self.surface)
        project_name = global_params[PROJECT_NAME]

        project_dir = out_dir / project_name
        self.logger.info("initializing_project", project=project_name, path=str(project_dir))
        try:
            project_dir.mkdir(parents=True)
        except FileExistsError as e:
            raise StackforgeError(f"Directory {project_dir} already exists") from e
        except OSError as e:
            raise StackforgeError(f"Error creating project directory {project_dir}: {e}") from e

        label = self.surface.ask_select(
            "Pick a stack you'd like to use", self.registry.available_labels()
        )
        sources = self.registry.modules_for_label(label)
        modules, mapped_sources = await self.fetcher.load_all_modules(sources)

        for handler in project_prompts():
            global_params[handler.field] = handler.get_param(global_params, self.surface)
        should_push = global_params[SHOULD_PUSH_REPOSITORIES] == "y"
        org_root = global_params.get(GITHUB_ROOT_ORG, "")

        required_vendors = [v for m in modules.values() for v in m.required_credentials]
        credentials = self.credential_resolver.resolve(required_vendors)

        shared = dict(global_params)
        for module in modules.values():
            self.resolver.resolve_module_parameters(module, shared, credentials)

        repository_names: dict[str, str] = {}
        for module in modules.values():
            repository_names[module.name] = repository_name_prompt(module).get_param(
                {}, self.surface
            )

        project = build_project_config(
            name=project_name,
            global_parameters=global_params,
            modules=modules,
            sources=mapped_sources,
            resolved=shared,
            repository_names=repository_names,
            org_root=org_root,
            should_push_repositories=should_push,
        )

        project_file = project_dir / self.config.generate.project_file_name
        project.write(project_file)
        self.logger.info("project_initialized", project=project_name, file=str(project_file))
        return project, project_dir
