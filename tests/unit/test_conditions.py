"""Unit tests for prompt conditions."""

from __future__ import annotations

from stackforge.modules.descriptor import ParameterCondition
from stackforge.prompts.conditions import (
    ALWAYS,
    AlwaysTrue,
    Custom,
    KeyEquals,
    all_of,
    condition_for,
)


class TestConditions:
    """Test the condition variants."""

    def test_always_true(self) -> None:
        assert ALWAYS.evaluate({})
        assert AlwaysTrue() == ALWAYS

    def test_key_equals(self) -> None:
        condition = KeyEquals("ShouldPushRepositories", "y")
        assert condition.evaluate({"ShouldPushRepositories": "y"})
        assert not condition.evaluate({"ShouldPushRepositories": "n"})
        assert not condition.evaluate({})

    def test_key_equals_is_comparable(self) -> None:
        assert KeyEquals("a", "b") == KeyEquals("a", "b")
        assert KeyEquals("a", "b") != KeyEquals("a", "c")

    def test_custom_predicate(self) -> None:
        condition = Custom(lambda params: params.get("replicas", "0") > "1", "more than one")
        assert condition.evaluate({"replicas": "3"})
        assert not condition.evaluate({"replicas": "1"})


class TestComposition:
    """Test combining declared conditions."""

    def test_all_of_empty_is_always(self) -> None:
        assert all_of([]) is ALWAYS

    def test_all_of_single_is_unwrapped(self) -> None:
        condition = KeyEquals("a", "1")
        assert all_of([ALWAYS, condition]) is condition

    def test_all_of_requires_every_condition(self) -> None:
        condition = all_of([KeyEquals("a", "1"), KeyEquals("b", "2")])
        assert condition.evaluate({"a": "1", "b": "2"})
        assert not condition.evaluate({"a": "1", "b": "3"})

    def test_condition_for_declared_parameters(self) -> None:
        declared = [ParameterCondition(matchField="enableCI", whenValue="y")]
        assert condition_for(declared) == KeyEquals("enableCI", "y")
        assert condition_for([]) is ALWAYS
