"""Prompt conditions.

A condition decides, from the answers gathered so far, whether a prompt
runs at all. Conditions are a small tagged variant rather than bare
closures so they can be compared and inspected in tests.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from stackforge.modules.descriptor import ParameterCondition


@dataclass(frozen=True)
class AlwaysTrue:
    """Condition that always holds."""

    def evaluate(self, params: Mapping[str, str]) -> bool:
        return True


@dataclass(frozen=True)
class KeyEquals:
    """Holds when an earlier answer equals a literal value."""

    key: str
    value: str

    def evaluate(self, params: Mapping[str, str]) -> bool:
        return params.get(self.key) == self.value


@dataclass(frozen=True)
class Custom:
    """Arbitrary predicate over earlier answers."""

    predicate: Callable[[Mapping[str, str]], bool] = field(compare=False)
    description: str = ""

    def evaluate(self, params: Mapping[str, str]) -> bool:
        return bool(self.predicate(params))


Condition = AlwaysTrue | KeyEquals | Custom

ALWAYS = AlwaysTrue()


def all_of(conditions: Iterable[Condition]) -> Condition:
    """Compose conditions so that every one must hold."""
    parts = [c for c in conditions if not isinstance(c, AlwaysTrue)]
    if not parts:
        return ALWAYS
    if len(parts) == 1:
        return parts[0]
    return Custom(
        predicate=lambda params: all(c.evaluate(params) for c in parts),
        description=" and ".join(repr(c) for c in parts),
    )


def condition_for(declared: Iterable[ParameterCondition]) -> Condition:
    """Build the condition a module author declared on a parameter."""
    return all_of(KeyEquals(c.match_field, c.when_value) for c in declared)
