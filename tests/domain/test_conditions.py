"""Tests for condition trees, loose equality and rule parsing."""

from __future__ import annotations

import pytest

from formwright.domain.conditions import (
    AllOf,
    AnyOf,
    Leaf,
    Not,
    Operator,
    RuleMode,
    all_of,
    any_of,
    equals,
    is_checked,
    is_not_checked,
    is_truthy,
    loose_equals,
    not_,
    not_equals,
    one_of,
    parse_condition,
    parse_rule,
)


class TestIsTruthy:
    @pytest.mark.parametrize("value", ["1", "on", "yes", "true", "anything", 1, True, ["a"]])
    def test_truthy_values(self, value: object) -> None:
        assert is_truthy(value) is True

    @pytest.mark.parametrize("value", ["0", "off", "no", "false", "", "  ", 0, False, None, []])
    def test_falsy_values(self, value: object) -> None:
        assert is_truthy(value) is False


class TestLooseEquals:
    def test_string_comparison_is_case_sensitive(self) -> None:
        assert loose_equals("rest", "rest")
        assert not loose_equals("REST", "rest")

    def test_numbers_compare_as_strings(self) -> None:
        assert loose_equals(5, "5")
        assert not loose_equals(5.0, "5")

    def test_bool_side_coerces_the_other(self) -> None:
        assert loose_equals("on", True)
        assert loose_equals(True, "1")
        assert loose_equals("off", False)
        assert not loose_equals("on", False)

    def test_non_boolean_string_never_equals_bool(self) -> None:
        assert not loose_equals("maybe", True)
        assert not loose_equals("maybe", False)

    def test_none_equals_empty_string(self) -> None:
        assert loose_equals(None, "")


class TestLeaf:
    def test_equals(self) -> None:
        assert equals("provider", "rest").evaluate({"provider": "rest"})
        assert not equals("provider", "rest").evaluate({"provider": "soap"})

    def test_missing_field_is_empty(self) -> None:
        assert not equals("provider", "rest").evaluate({})
        assert not_equals("provider", "rest").evaluate({})

    def test_checked_operators(self) -> None:
        assert is_checked("enabled").evaluate({"enabled": "on"})
        assert not is_checked("enabled").evaluate({"enabled": "0"})
        assert is_not_checked("enabled").evaluate({})

    def test_in_and_not_in(self) -> None:
        leaf = one_of("mode", ["a", "b"])
        assert leaf.evaluate({"mode": "b"})
        assert not leaf.evaluate({"mode": "c"})
        not_in = Leaf(field_id="mode", operator=Operator.NOT_IN, value=["a"])
        assert not_in.evaluate({"mode": "c"})

    def test_in_with_list_value_requires_overlap(self) -> None:
        leaf = one_of("types", ["post"])
        assert leaf.evaluate({"types": ["page", "post"]})
        assert not leaf.evaluate({"types": ["page"]})

    def test_contains(self) -> None:
        leaf = Leaf(field_id="tags", operator=Operator.CONTAINS, value="x")
        assert leaf.evaluate({"tags": ["x", "y"]})
        assert leaf.evaluate({"tags": "xyz"})
        assert not leaf.evaluate({"tags": None})

    def test_numeric_comparisons(self) -> None:
        gt = Leaf(field_id="n", operator=Operator.GREATER_THAN, value=10)
        lt = Leaf(field_id="n", operator=Operator.LESS_THAN, value="10")
        assert gt.evaluate({"n": "11"})
        assert not gt.evaluate({"n": "abc"})
        assert lt.evaluate({"n": 3})


class TestCombinators:
    def test_and_requires_all(self) -> None:
        tree = all_of(equals("a", "x"), is_checked("b"))
        assert tree.evaluate({"a": "x", "b": "on"})
        assert not tree.evaluate({"a": "x", "b": ""})

    def test_or_requires_any(self) -> None:
        tree = any_of(equals("a", "x"), equals("a", "y"))
        assert tree.evaluate({"a": "y"})
        assert not tree.evaluate({"a": "z"})

    def test_not_inverts(self) -> None:
        assert not_(equals("a", "x")).evaluate({"a": "y"})

    def test_nested_references(self) -> None:
        tree = all_of(equals("a", 1), any_of(is_checked("b"), not_(equals("c", 2))))
        assert sorted(tree.references()) == ["a", "b", "c"]


class TestParseCondition:
    def test_short_leaf(self) -> None:
        leaf = parse_condition({"field": "provider", "operator": "equals", "value": "rest"})
        assert isinstance(leaf, Leaf)
        assert leaf.field_id == "provider"

    def test_and_or_not_forms(self) -> None:
        tree = parse_condition(
            {"and": [{"field": "a", "value": 1}, {"or": [{"not": {"field": "b"}}]}]}
        )
        assert isinstance(tree, AllOf)
        assert isinstance(tree.children[1], AnyOf)
        assert isinstance(tree.children[1].children[0], Not)

    def test_list_is_implicit_and(self) -> None:
        assert isinstance(parse_condition([{"field": "a"}, {"field": "b"}]), AllOf)

    def test_canonical_dump_round_trips(self) -> None:
        tree = all_of(equals("a", "x"), not_(is_checked("b")))
        assert parse_condition(tree.model_dump()) == tree

    def test_missing_field_raises(self) -> None:
        with pytest.raises(ValueError, match="missing a field reference"):
            parse_condition({"operator": "equals"})

    def test_unknown_operator_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_condition({"field": "a", "operator": "matches"})

    def test_scalar_raises(self) -> None:
        with pytest.raises(ValueError, match="mapping or list"):
            parse_condition("a == b")


class TestParseRule:
    def test_mode_and_condition(self) -> None:
        rule = parse_rule({"mode": "hide_when", "condition": {"field": "a"}})
        assert rule.mode is RuleMode.HIDE_WHEN
        assert list(rule.references()) == ["a"]

    def test_defaults_to_show_when(self) -> None:
        assert parse_rule({"conditions": [{"field": "a"}]}).mode is RuleMode.SHOW_WHEN

    def test_missing_condition_raises(self) -> None:
        with pytest.raises(ValueError, match="requires"):
            parse_rule({"mode": "show_when"})
