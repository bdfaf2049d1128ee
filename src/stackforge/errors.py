"""Exception hierarchy for Stackforge.

Fatal errors (fetch, parse, execution, prompt, credential) propagate to
the CLI layer, which reports them and exits. RenderError and
ProvisioningError are collected per unit of work and reported in
aggregate instead of being raised mid-pipeline.
"""

from __future__ import annotations

from pathlib import Path


class StackforgeError(Exception):
    """Base exception for all Stackforge errors."""

    pass


class RegistryError(StackforgeError):
    """Raised when a stack label is not present in the registry."""

    pass


class FetchError(StackforgeError):
    """Raised when module content cannot be retrieved."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Unable to fetch module {source}: {reason}")


class ParseError(StackforgeError):
    """Raised when a module descriptor is missing or malformed."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Unable to load module {source}: {reason}")


class ValidationError(StackforgeError):
    """Raised when a parameter value is rejected by its validator."""

    def __init__(self, field: str, value: str, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value for {field!r}: {reason}")


class ExecutionError(StackforgeError):
    """Raised when a shell-derived parameter command exits non-zero."""

    def __init__(self, command: str, returncode: int, output: str) -> None:
        self.command = command
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"Command {command!r} failed with exit code {returncode}: {output.strip()}"
        )


class PromptAbortedError(StackforgeError):
    """Raised when the prompt surface cannot produce an answer."""

    pass


class CredentialError(StackforgeError):
    """Raised when a module requires a vendor that was never resolved."""

    pass


class RenderError(StackforgeError):
    """A single failed template render."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to render {path}: {reason}")


class ProvisioningError(StackforgeError):
    """Raised when remote repository creation or the initial push fails."""

    pass
