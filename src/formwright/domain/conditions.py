"""Condition trees — boolean expressions over other fields' values.

A tree is made of :class:`Leaf` nodes (``field op value``) combined with
:class:`AllOf` (AND), :class:`AnyOf` (OR) and :class:`Not`. A
:class:`VisibilityRule` attaches a tree to a field together with a mode:

- ``show_when``: the field is visible iff the tree holds.
- ``hide_when``: the field is visible iff the tree does not hold.
- ``required_when``: the field is always visible; it is required iff the
  tree holds.

Trees are plain pydantic models so configurations round-trip through the
form repository as JSON.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


class Operator(StrEnum):
    """Leaf comparison operators."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    IS_CHECKED = "is_checked"
    IS_NOT_CHECKED = "is_not_checked"
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"


class RuleMode(StrEnum):
    """How a condition tree affects its owning field."""

    SHOW_WHEN = "show_when"
    HIDE_WHEN = "hide_when"
    REQUIRED_WHEN = "required_when"


# Strings that compare equal to boolean True under loose equality.
TRUTHY_STRINGS: frozenset[str] = frozenset({"true", "1", "on", "yes"})
FALSY_STRINGS: frozenset[str] = frozenset({"false", "0", "off", "no", ""})


# ---------------------------------------------------------------------------
# Value semantics
# ---------------------------------------------------------------------------


def is_truthy(value: Any) -> bool:
    """Checkbox-style truthiness: ``"0"``, ``"off"``, ``""`` and empties are false."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() not in FALSY_STRINGS
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) > 0
    return bool(value)


def _as_bool(value: Any) -> bool | None:
    """Return the boolean a value stands for, or None if it is not boolean-like."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUTHY_STRINGS:
            return True
        if lowered in FALSY_STRINGS - {""}:
            return False
    return None


def loose_equals(actual: Any, expected: Any) -> bool:
    """Loose string-or-boolean equality.

    If either side is a real boolean, both sides are compared as booleans
    (``"true"``, ``"1"``, ``"on"`` all equal ``True``). Otherwise both
    sides are compared as strings, case-sensitively.
    """
    if isinstance(actual, bool) or isinstance(expected, bool):
        left = _as_bool(actual) if not isinstance(actual, bool) else actual
        right = _as_bool(expected) if not isinstance(expected, bool) else expected
        if left is None or right is None:
            return False
        return left is right
    if actual is None:
        actual = ""
    if expected is None:
        expected = ""
    return str(actual) == str(expected)


def _as_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# ---------------------------------------------------------------------------
# Tree nodes
# ---------------------------------------------------------------------------


class Leaf(BaseModel):
    """Compare one referenced field's value against ``value``."""

    model_config = {"frozen": True}

    kind: Literal["leaf"] = "leaf"
    field_id: str = Field(min_length=1)
    operator: Operator = Operator.EQUALS
    value: Any = None

    def evaluate(self, data: Mapping[str, Any]) -> bool:
        actual = data.get(self.field_id)
        match self.operator:
            case Operator.EQUALS:
                return loose_equals(actual, self.value)
            case Operator.NOT_EQUALS:
                return not loose_equals(actual, self.value)
            case Operator.IS_CHECKED:
                return is_truthy(actual)
            case Operator.IS_NOT_CHECKED:
                return not is_truthy(actual)
            case Operator.IN:
                return _member(actual, self.value)
            case Operator.NOT_IN:
                return not _member(actual, self.value)
            case Operator.CONTAINS:
                if isinstance(actual, (list, tuple, set)):
                    return any(loose_equals(item, self.value) for item in actual)
                return str(self.value) in str(actual if actual is not None else "")
            case Operator.GREATER_THAN | Operator.LESS_THAN:
                left, right = _as_float(actual), _as_float(self.value)
                if left is None or right is None:
                    return False
                return left > right if self.operator is Operator.GREATER_THAN else left < right
        return False

    def references(self) -> Iterator[str]:
        yield self.field_id


class AllOf(BaseModel):
    """AND combinator; short-circuits on the first false child."""

    model_config = {"frozen": True}

    kind: Literal["all"] = "all"
    children: list[Condition]

    def evaluate(self, data: Mapping[str, Any]) -> bool:
        return all(child.evaluate(data) for child in self.children)

    def references(self) -> Iterator[str]:
        for child in self.children:
            yield from child.references()


class AnyOf(BaseModel):
    """OR combinator; short-circuits on the first true child."""

    model_config = {"frozen": True}

    kind: Literal["any"] = "any"
    children: list[Condition]

    def evaluate(self, data: Mapping[str, Any]) -> bool:
        return any(child.evaluate(data) for child in self.children)

    def references(self) -> Iterator[str]:
        for child in self.children:
            yield from child.references()


class Not(BaseModel):
    """Negation of a single child."""

    model_config = {"frozen": True}

    kind: Literal["not"] = "not"
    child: Condition

    def evaluate(self, data: Mapping[str, Any]) -> bool:
        return not self.child.evaluate(data)

    def references(self) -> Iterator[str]:
        yield from self.child.references()


Condition = Annotated[Leaf | AllOf | AnyOf | Not, Field(discriminator="kind")]

AllOf.model_rebuild()
AnyOf.model_rebuild()
Not.model_rebuild()


def _member(actual: Any, allowed: Any) -> bool:
    if allowed is None:
        return False
    if isinstance(allowed, (str, bytes)) or not hasattr(allowed, "__iter__"):
        allowed = [allowed]
    if isinstance(actual, (list, tuple, set)):
        return any(_member(item, allowed) for item in actual)
    return any(loose_equals(actual, candidate) for candidate in allowed)


class VisibilityRule(BaseModel):
    """A condition tree bound to a field with a :class:`RuleMode`."""

    model_config = {"frozen": True}

    mode: RuleMode = RuleMode.SHOW_WHEN
    condition: Condition

    def references(self) -> list[str]:
        """Field ids this rule depends on, in first-seen order."""
        return list(dict.fromkeys(self.condition.references()))


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------


def equals(field_id: str, value: Any) -> Leaf:
    return Leaf(field_id=field_id, operator=Operator.EQUALS, value=value)


def not_equals(field_id: str, value: Any) -> Leaf:
    return Leaf(field_id=field_id, operator=Operator.NOT_EQUALS, value=value)


def is_checked(field_id: str) -> Leaf:
    return Leaf(field_id=field_id, operator=Operator.IS_CHECKED)


def is_not_checked(field_id: str) -> Leaf:
    return Leaf(field_id=field_id, operator=Operator.IS_NOT_CHECKED)


def one_of(field_id: str, values: list[Any]) -> Leaf:
    return Leaf(field_id=field_id, operator=Operator.IN, value=list(values))


def all_of(*children: Leaf | AllOf | AnyOf | Not) -> AllOf:
    return AllOf(children=list(children))


def any_of(*children: Leaf | AllOf | AnyOf | Not) -> AnyOf:
    return AnyOf(children=list(children))


def not_(child: Leaf | AllOf | AnyOf | Not) -> Not:
    return Not(child=child)


def parse_condition(raw: Any) -> Leaf | AllOf | AnyOf | Not:
    """Build a condition tree from a loosely-shaped dict.

    Accepts the canonical model dump (with ``kind``) as well as the short
    forms used in YAML definitions::

        {"field": "provider", "operator": "equals", "value": "rest"}
        {"and": [...]}, {"or": [...]}, {"not": {...}}
        [{...}, {...}]            # implicit AND
    """
    if isinstance(raw, (Leaf, AllOf, AnyOf, Not)):
        return raw
    if isinstance(raw, list):
        return AllOf(children=[parse_condition(item) for item in raw])
    if not isinstance(raw, Mapping):
        msg = f"Condition must be a mapping or list, got {type(raw).__name__}"
        raise ValueError(msg)
    if "kind" in raw:
        match raw["kind"]:
            case "leaf":
                return Leaf.model_validate(raw)
            case "all":
                return AllOf(children=[parse_condition(c) for c in raw["children"]])
            case "any":
                return AnyOf(children=[parse_condition(c) for c in raw["children"]])
            case "not":
                return Not(child=parse_condition(raw["child"]))
    if "and" in raw:
        return AllOf(children=[parse_condition(c) for c in raw["and"]])
    if "or" in raw:
        return AnyOf(children=[parse_condition(c) for c in raw["or"]])
    if "not" in raw:
        return Not(child=parse_condition(raw["not"]))
    field_id = raw.get("field") or raw.get("field_id")
    if not field_id:
        msg = f"Condition leaf is missing a field reference: {dict(raw)!r}"
        raise ValueError(msg)
    return Leaf(
        field_id=field_id,
        operator=Operator(raw.get("operator", Operator.EQUALS)),
        value=raw.get("value"),
    )


def parse_rule(raw: Mapping[str, Any]) -> VisibilityRule:
    """Build a :class:`VisibilityRule` from ``{"mode"|"type": ..., "conditions": ...}``."""
    mode = raw.get("mode") or raw.get("type") or RuleMode.SHOW_WHEN
    body = raw.get("condition", raw.get("conditions"))
    if body is None:
        msg = "Visibility rule requires 'condition' or 'conditions'"
        raise ValueError(msg)
    return VisibilityRule(mode=RuleMode(mode), condition=parse_condition(body))
