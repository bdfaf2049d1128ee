"""Module registry, retrieval and descriptor parsing."""

from __future__ import annotations

__all__ = [
    "ConditionAction",
    "ModuleAddress",
    "ModuleCondition",
    "ModuleConfig",
    "ModuleFetcher",
    "Parameter",
    "ParameterCondition",
    "Registry",
    "Stack",
    "default_registry",
    "get_registry",
    "load_module_descriptor",
    "parse_module_descriptor",
]

from stackforge.modules.descriptor import (
    ConditionAction,
    ModuleCondition,
    ModuleConfig,
    Parameter,
    ParameterCondition,
    load_module_descriptor,
    parse_module_descriptor,
)
from stackforge.modules.registry import Registry, Stack, default_registry, get_registry
from stackforge.modules.source import ModuleAddress, ModuleFetcher
