"""Prompting, validation and parameter resolution."""

from __future__ import annotations

__all__ = [
    "ALWAYS",
    "AlwaysTrue",
    "Condition",
    "Custom",
    "KeyEquals",
    "ParameterResolver",
    "PromptHandler",
    "PromptSurface",
    "RichPromptSurface",
    "ValidatorSet",
    "default_validators",
    "execute_command",
    "sanitize_parameter_value",
    "specific_value_validation",
    "to_environment",
]

from stackforge.prompts.conditions import ALWAYS, AlwaysTrue, Condition, Custom, KeyEquals
from stackforge.prompts.engine import ParameterResolver, to_environment
from stackforge.prompts.handler import PromptHandler, execute_command, sanitize_parameter_value
from stackforge.prompts.surface import PromptSurface, RichPromptSurface
from stackforge.prompts.validators import (
    ValidatorSet,
    default_validators,
    specific_value_validation,
)
