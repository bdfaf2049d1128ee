"""Project configuration: the resolved output of ``init``.

A ProjectConfig is assembled once, after every module's parameters have
been resolved, and is read-only from then on. It is persisted as YAML in
the project directory so ``create`` and ``apply`` can pick it up later.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from stackforge.errors import ParseError
from stackforge.modules.descriptor import ConditionAction, ModuleCondition


class ResolvedModule(BaseModel):
    """Final state of one module in a project.

    Attributes:
        parameters: Resolved parameter values for the module's declared fields
        repository_name: Repository (and output directory) name
        repository_url: ``<org-root>/<repository-name>``
        source: Module address the module was fetched from
        depends_on: Module names this module depends on, as declared
        conditions: Module conditions, as declared
        env_var_names: Parameter field -> environment variable name, as declared
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    parameters: dict[str, str] = Field(default_factory=dict)
    repository_name: str = Field(..., alias="repositoryName")
    repository_url: str = Field(default="", alias="repositoryUrl")
    source: str
    depends_on: tuple[str, ...] = Field(default=(), alias="dependsOn")
    conditions: tuple[ModuleCondition, ...] = ()
    env_var_names: dict[str, str] = Field(default_factory=dict, alias="envVarNames")

    def ignored_files(self) -> list[str]:
        """Template paths excluded by matching ignoreFile conditions."""
        ignored: list[str] = []
        for condition in self.conditions:
            if condition.action == ConditionAction.IGNORE_FILE and condition.matches(
                self.parameters
            ):
                ignored.extend(condition.data)
        return ignored


class ProjectConfig(BaseModel):
    """The single source of truth handed to generation.

    Attributes:
        name: Project name
        should_push_repositories: Whether module repositories are provisioned
        parameters: Project-level answers (project name, org root, ...)
        modules: Module name -> ResolvedModule
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    should_push_repositories: bool = Field(default=False, alias="shouldPushRepositories")
    parameters: dict[str, str] = Field(default_factory=dict)
    modules: dict[str, ResolvedModule] = Field(default_factory=dict)

    def to_yaml(self) -> str:
        return yaml.safe_dump(
            self.model_dump(mode="json", by_alias=True), sort_keys=False, allow_unicode=True
        )

    @classmethod
    def from_yaml(cls, content: str, source: str = "<project>") -> ProjectConfig:
        """Parse a persisted project configuration.

        Raises:
            ParseError: If the content is malformed
        """
        try:
            data = yaml.safe_load(content)
            return cls.model_validate(data or {})
        except (yaml.YAMLError, PydanticValidationError) as e:
            raise ParseError(source, str(e)) from e

    def write(self, path: Path) -> None:
        path.write_text(self.to_yaml(), encoding="utf-8")

    @classmethod
    def read(cls, path: Path) -> ProjectConfig:
        """Read a project file.

        Raises:
            ParseError: If the file is missing or malformed
        """
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ParseError(str(path), f"cannot read project file: {e}") from e
        return cls.from_yaml(content, str(path))
