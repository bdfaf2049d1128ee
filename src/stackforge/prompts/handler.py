"""Prompt handlers: one parameter bound to its condition and validator.

The value of a parameter comes from exactly one source, in priority order:
its ``execute`` shell expression, its fixed ``value``, or an interactive
prompt. Validator rejections of interactive answers are handled by the
prompt surface; rejections of executed or fixed values are fatal.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable, Mapping
from dataclasses import dataclass

import structlog

from stackforge.errors import ExecutionError, ValidationError
from stackforge.modules.descriptor import Parameter
from stackforge.prompts.conditions import ALWAYS, Condition
from stackforge.prompts.surface import PromptSurface
from stackforge.prompts.validators import Validator

logger = structlog.get_logger(__name__)

CommandRunner = Callable[[str, Mapping[str, str]], str]


def execute_command(command: str, env: Mapping[str, str]) -> str:
    """Run a shell expression and return its combined output.

    The given variables are layered over the current process environment.
    There is no timeout: a command that never exits blocks the run.

    Raises:
        ExecutionError: If the command exits non-zero
    """
    logger.debug("executing_parameter_command", command=command)
    completed = subprocess.run(
        ["bash", "-c", command],
        env={**os.environ, **env},
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
    )
    if completed.returncode != 0:
        logger.error(
            "parameter_command_failed",
            command=command,
            returncode=completed.returncode,
            output=completed.stdout,
        )
        raise ExecutionError(command, completed.returncode, completed.stdout)
    logger.debug("parameter_command_result", command=command, output=completed.stdout)
    return completed.stdout


def sanitize_parameter_value(value: str) -> str:
    """Strip line breaks; vendor CLIs print trailing newlines."""
    return value.replace("\r", "").replace("\n", "")


@dataclass(frozen=True)
class PromptHandler:
    """A parameter together with its prompt condition and validator."""

    parameter: Parameter
    condition: Condition = ALWAYS
    validate: Validator | None = None

    @property
    def field(self) -> str:
        return self.parameter.field

    def get_param(
        self,
        context: Mapping[str, str],
        surface: PromptSurface,
        env: Mapping[str, str] | None = None,
        runner: CommandRunner = execute_command,
    ) -> str:
        """Resolve this parameter to its final value.

        Args:
            context: Answers gathered so far, used by the condition
            surface: Prompt surface for interactive answers
            env: Environment for ``execute`` commands (defaults to context)
            runner: Shell runner for ``execute`` commands

        Returns:
            The sanitized value, or "" when the condition does not hold

        Raises:
            ExecutionError: If the execute command fails
            ValidationError: If an executed or fixed value is rejected
            PromptAbortedError: If the prompt surface fails
        """
        if not self.condition.evaluate(context):
            return ""

        param = self.parameter
        if param.info:
            surface.show_info(param.info)

        if param.execute:
            result = runner(param.execute, context if env is None else env)
            self._check(sanitize_parameter_value(result))
        elif param.value:
            result = param.value
            self._check(result)
        else:
            result = self._prompt(surface)

        return sanitize_parameter_value(result)

    def _check(self, value: str) -> None:
        if self.validate is None:
            return
        try:
            self.validate(value)
        except ValueError as e:
            logger.error("parameter_value_rejected", field=self.field, reason=str(e))
            raise ValidationError(self.field, value, str(e)) from e

    def _prompt(self, surface: PromptSurface) -> str:
        param = self.parameter
        label = param.label or param.field
        if param.options:
            return surface.ask_select(label, param.options)
        return surface.ask_text(label, default=param.default, validate=self.validate)
