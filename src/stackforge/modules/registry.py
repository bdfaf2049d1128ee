"""Stack registry.

A stack is a human-readable label bundling an ordered list of module
addresses. The registry is a pure lookup table; retrieving module content
is the fetcher's job.

A registry file replaces the built-in stacks::

    stacks:
      - label: "EKS + Go + React"
        modules:
          - github.com/commitdev/zero-aws-eks-stack
          - github.com/commitdev/zero-deployable-backend
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from stackforge.errors import RegistryError

_EKS_STACK = "github.com/commitdev/zero-aws-eks-stack"
_LANDING_PAGE = "github.com/commitdev/zero-deployable-landing-page"
_GO_BACKEND = "github.com/commitdev/zero-deployable-backend"
_NODE_BACKEND = "github.com/commitdev/zero-deployable-node-backend"
_REACT_FRONTEND = "github.com/commitdev/zero-deployable-react-frontend"


class Stack(BaseModel):
    """A named, ordered bundle of module addresses."""

    label: str
    modules: list[str] = Field(default_factory=list)


class Registry(BaseModel):
    """Ordered collection of stacks."""

    stacks: list[Stack] = Field(default_factory=list)

    def available_labels(self) -> list[str]:
        """Return stack labels in declaration order."""
        return [stack.label for stack in self.stacks]

    def modules_for_label(self, label: str) -> list[str]:
        """Return the module addresses of a stack.

        Raises:
            RegistryError: If no stack carries the label
        """
        for stack in self.stacks:
            if stack.label == label:
                return list(stack.modules)
        raise RegistryError(f"Unknown stack: {label!r}")

    @classmethod
    def from_file(cls, path: Path) -> Registry:
        """Load a registry from a YAML file.

        Raises:
            RegistryError: If the file is unreadable or malformed
        """
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
            return cls.model_validate(data or {})
        except (OSError, yaml.YAMLError, PydanticValidationError) as e:
            raise RegistryError(f"Invalid registry file {path}: {e}") from e


def default_registry(local_module_path: Path | None = None) -> Registry:
    """Build the built-in registry.

    Args:
        local_module_path: When set, every module resolves to a directory of
            the same name below this path instead of its Git source, which
            makes developing modules locally possible.
    """

    def source(address: str) -> str:
        if local_module_path is None:
            return address
        return str(local_module_path / address.rsplit("/", 1)[-1])

    return Registry(
        stacks=[
            Stack(
                label="EKS + Go + React + Gatsby",
                modules=[
                    source(m) for m in (_EKS_STACK, _LANDING_PAGE, _GO_BACKEND, _REACT_FRONTEND)
                ],
            ),
            Stack(
                label="EKS + NodeJS + React + Gatsby",
                modules=[
                    source(m) for m in (_EKS_STACK, _LANDING_PAGE, _NODE_BACKEND, _REACT_FRONTEND)
                ],
            ),
        ]
    )


def get_registry(registry_file: Path | None, local_module_path: Path | None = None) -> Registry:
    """Return the registry file's stacks if configured, else the built-in ones."""
    if registry_file is not None:
        return Registry.from_file(registry_file)
    return default_registry(local_module_path)
