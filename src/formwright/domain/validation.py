"""Field validation rules and messages.

Validation runs only over fields the conditional evaluator marked
visible. For each field the checks run in a fixed order:

1. Requiredness (effective, i.e. declared or ``required_when`` and visible).
2. Type checks (``email``, ``url``, ``number``, ``date``).
3. Declared rules in declaration order.

The first failing check for a field wins; every field is still checked
so all errors surface together. Failures are returned, never raised.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from datetime import date
from typing import TYPE_CHECKING, Any, TypeAlias
from urllib.parse import urlparse

from formwright.domain.fields import DISPLAY_ONLY_TYPES
from formwright.errors import ValidationError

if TYPE_CHECKING:
    from formwright.domain.evaluator import Verdict
    from formwright.domain.fields import FieldDescriptor, ValidationRule

logger = logging.getLogger(__name__)

MESSAGES: dict[str, str] = {
    "field_required": "{label} is required.",
    "this_field_required": "This field is required.",
    "invalid_email": "Please enter a valid email address.",
    "invalid_url": "Please enter a valid URL.",
    "invalid_number": "Please enter a valid number.",
    "invalid_date": "Please enter a valid date.",
    "invalid_pattern": "Value does not match the required format.",
    "min_length": "Minimum length is {arg} characters.",
    "max_length": "Maximum length is {arg} characters.",
    "number_too_small": "Value must be at least {arg}.",
    "number_too_large": "Value must be no more than {arg}.",
    "value_not_allowed": "Selected value is not allowed.",
    "custom_validation": "Custom validation failed.",
}

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def message_for(code: str, **kwargs: Any) -> str:
    """Look up and format a validation message by *code*."""
    template = MESSAGES.get(code, code)
    try:
        return template.format(**kwargs)
    except (KeyError, IndexError):
        return template


def is_empty(value: Any) -> bool:
    """Empty means ``None``, ``""``, ``False`` or an empty collection."""
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# ---------------------------------------------------------------------------
# Type checks
# ---------------------------------------------------------------------------


def _check_email(value: Any, _descriptor: FieldDescriptor) -> str | None:
    return None if _EMAIL_RE.match(str(value)) else "invalid_email"


def _check_url(value: Any, _descriptor: FieldDescriptor) -> str | None:
    parsed = urlparse(str(value))
    if parsed.scheme and parsed.netloc:
        return None
    return "invalid_url"


def _check_number(value: Any, _descriptor: FieldDescriptor) -> str | None:
    return None if _as_number(value) is not None else "invalid_number"


def _check_date(value: Any, _descriptor: FieldDescriptor) -> str | None:
    if isinstance(value, date):
        return None
    try:
        date.fromisoformat(str(value))
    except ValueError:
        return "invalid_date"
    return None


TYPE_CHECKS: dict[str, Callable[[Any, FieldDescriptor], str | None]] = {
    "email": _check_email,
    "url": _check_url,
    "number": _check_number,
    "range": _check_number,
    "date": _check_date,
}


# ---------------------------------------------------------------------------
# Declared rules
# ---------------------------------------------------------------------------

RuleResult: TypeAlias = tuple[str, str] | None  # (code, message) on failure


def _rule_min_length(value: Any, args: Any, _d: FieldDescriptor) -> RuleResult:
    if len(str(value)) < int(args):
        return "min_length", message_for("min_length", arg=args)
    return None


def _rule_max_length(value: Any, args: Any, _d: FieldDescriptor) -> RuleResult:
    if len(str(value)) > int(args):
        return "max_length", message_for("max_length", arg=args)
    return None


def _rule_min(value: Any, args: Any, _d: FieldDescriptor) -> RuleResult:
    number = _as_number(value)
    if number is None:
        return "invalid_number", message_for("invalid_number")
    if number < float(args):
        return "number_too_small", message_for("number_too_small", arg=args)
    return None


def _rule_max(value: Any, args: Any, _d: FieldDescriptor) -> RuleResult:
    number = _as_number(value)
    if number is None:
        return "invalid_number", message_for("invalid_number")
    if number > float(args):
        return "number_too_large", message_for("number_too_large", arg=args)
    return None


def _rule_pattern(value: Any, args: Any, _d: FieldDescriptor) -> RuleResult:
    if re.search(str(args), str(value)) is None:
        return "invalid_pattern", message_for("invalid_pattern")
    return None


def _rule_in(value: Any, args: Any, _d: FieldDescriptor) -> RuleResult:
    allowed = {str(item) for item in (args or [])}
    values = value if isinstance(value, (list, tuple, set)) else [value]
    if all(str(item) in allowed for item in values):
        return None
    return "value_not_allowed", message_for("value_not_allowed")


def _rule_custom(value: Any, args: Any, descriptor: FieldDescriptor) -> RuleResult:
    if not callable(args):
        # Recovered from the repository without its callable.
        return None
    result = args(value, descriptor)
    if result is True or result is None:
        return None
    message = result if isinstance(result, str) else message_for("custom_validation")
    return "custom_validation", message


RULES: dict[str, Callable[[Any, Any, FieldDescriptor], RuleResult]] = {
    "min_length": _rule_min_length,
    "max_length": _rule_max_length,
    "min": _rule_min,
    "max": _rule_max,
    "pattern": _rule_pattern,
    "in": _rule_in,
    "custom": _rule_custom,
}


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------


class FieldValidator:
    """Runs requiredness, type checks and declared rules per field."""

    def __init__(
        self,
        rules: Mapping[str, Callable[[Any, Any, FieldDescriptor], RuleResult]] | None = None,
    ) -> None:
        self._rules = dict(RULES)
        if rules:
            self._rules.update(rules)

    def register_rule(
        self,
        name: str,
        check: Callable[[Any, Any, FieldDescriptor], RuleResult],
    ) -> None:
        self._rules[name] = check

    def validate_field(
        self,
        descriptor: FieldDescriptor,
        value: Any,
        *,
        required: bool,
    ) -> ValidationError | None:
        """Return the first failure for *descriptor*, or None."""
        if descriptor.type in DISPLAY_ONLY_TYPES:
            return None

        if is_empty(value):
            if required:
                label = descriptor.label or "This field"
                return ValidationError(
                    descriptor.id, "field_required", message_for("field_required", label=label)
                )
            return None

        type_check = TYPE_CHECKS.get(descriptor.type)
        if type_check is not None:
            code = type_check(value, descriptor)
            if code is not None:
                return ValidationError(descriptor.id, code, message_for(code))

        for rule in descriptor.rules:
            failure = self._apply_rule(descriptor, rule, value)
            if failure is not None:
                return failure
        return None

    def validate(
        self,
        fields: Mapping[str, FieldDescriptor],
        data: Mapping[str, Any],
        verdicts: Mapping[str, Verdict],
    ) -> dict[str, ValidationError]:
        """Validate every visible field; hidden fields are skipped entirely."""
        errors: dict[str, ValidationError] = {}
        for field_id, descriptor in fields.items():
            verdict = verdicts.get(field_id)
            if verdict is not None and not verdict.visible:
                continue
            required = verdict.required if verdict is not None else descriptor.required
            failure = self.validate_field(descriptor, data.get(field_id), required=required)
            if failure is not None:
                errors[field_id] = failure
        if errors:
            logger.debug("Validation failed for %d field(s): %s", len(errors), sorted(errors))
        return errors

    def _apply_rule(
        self,
        descriptor: FieldDescriptor,
        rule: ValidationRule,
        value: Any,
    ) -> ValidationError | None:
        check = self._rules.get(rule.name)
        if check is None:
            logger.warning("Unknown validation rule %r on field %s", rule.name, descriptor.id)
            return None
        result = check(value, rule.args, descriptor)
        if result is None:
            return None
        code, message = result
        return ValidationError(descriptor.id, code, rule.message or message)
