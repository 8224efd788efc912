"""Tests for the conditional evaluator, cycle detection and verdict cache."""

from __future__ import annotations

import pytest

from formwright.builder import create_form
from formwright.domain.conditions import RuleMode, VisibilityRule, equals, is_checked
from formwright.domain.configuration import FormConfiguration
from formwright.domain.evaluator import (
    ConditionalEvaluator,
    Verdict,
    VerdictCache,
    build_dependency_graph,
    check_cycles,
    data_fingerprint,
)
from formwright.domain.fields import FieldDescriptor
from formwright.errors import ConditionCycleError


def _integration_form() -> FormConfiguration:
    return (
        create_form("integrations")
        .checkbox("enabled", "Enabled")
        .select("provider", "Provider")
        .options({"rest": "REST", "soap": "SOAP"})
        .url("endpoint", "Endpoint")
        .required()
        .show_when(equals("provider", "rest"))
        .text("notes")
        .hide_when(is_checked("enabled"))
        .text("reason")
        .required_when(equals("provider", "soap"))
        .build()
    )


class TestVerdicts:
    def test_unconditional_field_is_visible(self) -> None:
        evaluator = ConditionalEvaluator(_integration_form())
        verdicts = evaluator.evaluate({})
        assert verdicts["enabled"] == Verdict(visible=True, required=False)

    def test_show_when(self) -> None:
        evaluator = ConditionalEvaluator(_integration_form())
        assert evaluator.evaluate({"provider": "rest"})["endpoint"] == Verdict(True, True)
        assert evaluator.evaluate({"provider": "soap"})["endpoint"] == Verdict(False, False)

    def test_hide_when(self) -> None:
        evaluator = ConditionalEvaluator(_integration_form())
        assert not evaluator.is_visible("notes", {"enabled": "on"})
        assert evaluator.is_visible("notes", {"enabled": "0"})

    def test_required_when_keeps_field_visible(self) -> None:
        evaluator = ConditionalEvaluator(_integration_form())
        assert evaluator.evaluate({"provider": "soap"})["reason"] == Verdict(True, True)
        assert evaluator.evaluate({"provider": "rest"})["reason"] == Verdict(True, False)

    def test_hidden_field_is_never_required(self) -> None:
        evaluator = ConditionalEvaluator(_integration_form())
        assert not evaluator.is_required("endpoint", {"provider": "soap"})

    def test_unknown_field_is_not_visible(self) -> None:
        evaluator = ConditionalEvaluator(_integration_form())
        assert not evaluator.is_visible("missing", {})
        assert not evaluator.is_required("missing", {})

    def test_visible_and_conditional_fields(self) -> None:
        evaluator = ConditionalEvaluator(_integration_form())
        assert "endpoint" not in evaluator.visible_fields({"provider": "soap"})
        assert evaluator.conditional_fields() == ["endpoint", "notes", "reason"]

    def test_hidden_dependency_value_still_counts(self) -> None:
        config = (
            create_form("chain")
            .text("a")
            .text("b")
            .show_when(equals("a", "x"))
            .text("c")
            .show_when(equals("b", "y"))
            .build()
        )
        verdicts = ConditionalEvaluator(config).evaluate({"a": "nope", "b": "y"})
        assert verdicts["b"].visible is False
        assert verdicts["c"].visible is True

    def test_and_or_scenario(self) -> None:
        config = (
            create_form("combo")
            .text("a")
            .text("b")
            .text("both")
            .show_when({"and": [{"field": "a", "value": "1"}, {"field": "b", "value": "2"}]})
            .text("either")
            .show_when({"or": [{"field": "a", "value": "1"}, {"field": "b", "value": "2"}]})
            .build()
        )
        evaluator = ConditionalEvaluator(config)
        verdicts = evaluator.evaluate({"a": "1", "b": "3"})
        assert verdicts["both"].visible is False
        assert verdicts["either"].visible is True

    def test_verdict_to_dict(self) -> None:
        assert Verdict(True, False).to_dict() == {"visible": True, "required": False}


class TestCycles:
    def _descriptor(self, field_id: str, ref: str) -> FieldDescriptor:
        rule = VisibilityRule(mode=RuleMode.SHOW_WHEN, condition=equals(ref, "x"))
        return FieldDescriptor(id=field_id, type="text", visibility=rule)

    def test_graph_edges_point_at_references(self) -> None:
        plain = FieldDescriptor(id="b", type="text")
        g = build_dependency_graph([self._descriptor("a", "b"), plain])
        assert list(g.edges) == [("a", "b")]

    def test_two_field_cycle_raises(self) -> None:
        fields = [self._descriptor("a", "b"), self._descriptor("b", "a")]
        with pytest.raises(ConditionCycleError) as exc_info:
            check_cycles(fields)
        assert set(exc_info.value.field_ids) == {"a", "b"}
        assert exc_info.value.field_ids[0] == exc_info.value.field_ids[-1]

    def test_acyclic_chain_passes(self) -> None:
        check_cycles([self._descriptor("a", "b"), self._descriptor("b", "c")])

    def test_evaluate_rejects_cycle_added_after_build(self) -> None:
        config = FormConfiguration(form_id="loop")
        config.add_field(self._descriptor("a", "b"))
        config.add_field(self._descriptor("b", "a"))
        with pytest.raises(ConditionCycleError):
            ConditionalEvaluator(config).evaluate({})


class TestVerdictCache:
    def test_same_data_hits_cache(self) -> None:
        cache = VerdictCache()
        evaluator = ConditionalEvaluator(_integration_form(), cache=cache)
        evaluator.evaluate({"provider": "rest"})
        evaluator.evaluate({"provider": "rest"})
        assert cache.misses == 1
        assert cache.hits == 1
        assert len(cache) == 1

    def test_submitter_is_part_of_the_key(self) -> None:
        cache = VerdictCache()
        evaluator = ConditionalEvaluator(_integration_form(), cache=cache)
        evaluator.evaluate({"provider": "rest"}, submitter="alice")
        evaluator.evaluate({"provider": "rest"}, submitter="bob")
        assert len(cache) == 2
        assert cache.hits == 0

    def test_returned_map_is_a_copy(self) -> None:
        evaluator = ConditionalEvaluator(_integration_form())
        first = evaluator.evaluate({})
        first.pop("enabled")
        assert "enabled" in evaluator.evaluate({})

    def test_clear(self) -> None:
        cache = VerdictCache()
        ConditionalEvaluator(_integration_form(), cache=cache).evaluate({})
        cache.clear()
        assert len(cache) == 0

    def test_fingerprint_ignores_key_order(self) -> None:
        assert data_fingerprint({"a": 1, "b": 2}) == data_fingerprint({"b": 2, "a": 1})
        assert data_fingerprint({"a": 1}) != data_fingerprint({"a": "2"})
