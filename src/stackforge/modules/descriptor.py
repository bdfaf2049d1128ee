"""Module descriptor schema and parser.

Every module ships a YAML descriptor (``stackforge-module.yml`` by default)
at its root declaring its parameters, the modules it depends on, file
conditions, the credential vendors it needs and its default output
directory. The descriptor is parsed once into an immutable ModuleConfig.

Example descriptor:

    name: backend-service
    outputDir: backend-service
    requiredCredentials: [aws, github]
    dependsOn: [aws-eks-stack]
    parameters:
      - field: region
        label: Which AWS region?
        options: [us-east-1, us-west-2]
      - field: accountId
        execute: aws sts get-caller-identity --query Account --output text
        envVarName: AWS_ACCOUNT_ID
    conditions:
      - action: ignoreFile
        matchField: enableCI
        whenValue: "n"
        data: [.circleci/]
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from stackforge.errors import ParseError


def _as_string(v: Any) -> str:
    """YAML authors write `default: 3` or `whenValue: true`; store strings."""
    if v is None:
        return ""
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v)


class ParameterConditionAction(str, Enum):
    """Actions a parameter-level condition can take."""

    KEY_MATCH = "KeyMatchCondition"


class ConditionAction(str, Enum):
    """Actions a module-level condition can take.

    Attributes:
        IGNORE_FILE: Skip rendering the listed template paths
    """

    IGNORE_FILE = "ignoreFile"


class _DescriptorModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class ParameterCondition(_DescriptorModel):
    """Gate a parameter's prompt on an earlier answer."""

    action: ParameterConditionAction = ParameterConditionAction.KEY_MATCH
    match_field: str = Field(..., alias="matchField")
    when_value: str = Field(..., alias="whenValue")

    @field_validator("match_field", "when_value", mode="before")
    @classmethod
    def coerce_scalar(cls, v: Any) -> str:
        return _as_string(v)


class Parameter(_DescriptorModel):
    """A single declared module parameter.

    Attributes:
        field: Unique key within the module
        label: Prompt text (falls back to field when empty)
        default: Default answer for free-text prompts
        options: Enumerated choices; non-empty turns the prompt into a selection
        value: Fixed value, bypasses prompting
        execute: Shell expression whose output becomes the value
        info: Help text shown before prompting
        env_var_name: Environment variable name used instead of field
        conditions: Earlier answers this parameter's prompt depends on
    """

    field: str
    label: str = ""
    default: str = ""
    options: tuple[str, ...] = ()
    value: str = ""
    execute: str = ""
    info: str = ""
    env_var_name: str = Field(default="", alias="envVarName")
    conditions: tuple[ParameterCondition, ...] = ()

    @field_validator("default", "value", "execute", "info", "label", "env_var_name", mode="before")
    @classmethod
    def coerce_scalar(cls, v: Any) -> str:
        return _as_string(v)

    @field_validator("options", mode="before")
    @classmethod
    def coerce_options(cls, v: Any) -> tuple[str, ...]:
        if v is None:
            return ()
        return tuple(str(item) for item in v)


class ModuleCondition(_DescriptorModel):
    """A module-level condition carried through to generation.

    Attributes:
        action: What to do when the condition matches
        match_field: Resolved parameter to inspect
        when_value: Value that triggers the action
        data: Action payload (template paths for ignoreFile)
    """

    action: ConditionAction
    match_field: str = Field(..., alias="matchField")
    when_value: str = Field(..., alias="whenValue")
    data: tuple[str, ...] = ()

    @field_validator("when_value", mode="before")
    @classmethod
    def coerce_when_value(cls, v: Any) -> str:
        return _as_string(v)

    def matches(self, parameters: dict[str, str]) -> bool:
        """Return True when the watched parameter holds the trigger value."""
        return parameters.get(self.match_field) == self.when_value


class ModuleConfig(_DescriptorModel):
    """Parsed, immutable module descriptor.

    Attributes:
        name: Module identity, unique within a stack
        description: Free-form description
        parameters: Declared parameters in prompt order
        depends_on: Names of modules this module depends on
        conditions: Module-level conditions
        required_credentials: Vendor names whose credentials this module needs
        output_dir: Default repository/output directory name
    """

    name: str
    description: str = ""
    parameters: tuple[Parameter, ...] = ()
    depends_on: tuple[str, ...] = Field(default=(), alias="dependsOn")
    conditions: tuple[ModuleCondition, ...] = ()
    required_credentials: tuple[str, ...] = Field(default=(), alias="requiredCredentials")
    output_dir: str = Field(default="", alias="outputDir")

    @field_validator("depends_on", "required_credentials", mode="before")
    @classmethod
    def dedupe_names(cls, v: Any) -> tuple[str, ...]:
        """These are sets in meaning; keep first-seen order for stable prompting."""
        if v is None:
            return ()
        seen: dict[str, None] = {}
        for item in v:
            seen.setdefault(str(item), None)
        return tuple(seen)

    @field_validator("parameters")
    @classmethod
    def unique_fields(cls, v: tuple[Parameter, ...]) -> tuple[Parameter, ...]:
        fields = [p.field for p in v]
        duplicates = sorted({f for f in fields if fields.count(f) > 1})
        if duplicates:
            raise ValueError(f"duplicate parameter fields: {', '.join(duplicates)}")
        return v

    def env_var_names(self) -> dict[str, str]:
        """Map parameter fields to their declared environment variable names."""
        return {p.field: p.env_var_name for p in self.parameters if p.env_var_name}


def parse_module_descriptor(content: str, source: str) -> ModuleConfig:
    """Parse descriptor YAML text into a ModuleConfig.

    Args:
        content: Raw YAML text
        source: Module address, used in error messages

    Returns:
        Parsed ModuleConfig

    Raises:
        ParseError: If the YAML is malformed or does not match the schema
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ParseError(source, f"malformed YAML: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(source, "descriptor must be a mapping")

    if not data.get("outputDir") and data.get("name"):
        data["outputDir"] = data["name"]

    try:
        return ModuleConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ParseError(source, str(e)) from e


def load_module_descriptor(module_dir: Path, source: str, descriptor_name: str) -> ModuleConfig:
    """Read and parse the descriptor file of a fetched module.

    Raises:
        ParseError: If the descriptor is missing, unreadable or invalid
    """
    descriptor_path = module_dir / descriptor_name
    try:
        content = descriptor_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ParseError(source, f"cannot read {descriptor_path}: {e}") from e
    return parse_module_descriptor(content, source)
