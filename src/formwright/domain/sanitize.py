"""Default sanitizer — one clean value per submitted raw value.

Hosts that own a stricter sanitizer (HTML allow-lists, attachment
lookups) pass their own object satisfying the ``Sanitizer`` protocol to
the Form. This default only normalizes shapes and strips control
characters; it never escapes markup.
"""

from __future__ import annotations

import re
from typing import Any

from formwright.domain.conditions import is_truthy
from formwright.domain.fields import BOOLEAN_TYPES

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def sanitize_text(value: Any) -> str:
    """Single-line text: tags and control characters removed, whitespace collapsed."""
    if value is None:
        return ""
    text = _TAG_RE.sub("", str(value))
    text = _CONTROL_RE.sub("", text)
    return _WS_RE.sub(" ", text).strip()


def sanitize_multiline(value: Any) -> str:
    """Multi-line text: control characters removed, line breaks kept."""
    if value is None:
        return ""
    return _CONTROL_RE.sub("", str(value)).strip()


def sanitize_email(value: Any) -> str:
    return re.sub(r"[^A-Za-z0-9.!#$%&'*+/=?^_`{|}~@-]", "", str(value or ""))


def sanitize_url(value: Any) -> str:
    return re.sub(r"[\s<>\"']", "", str(value or ""))


def sanitize_number(value: Any) -> float | int | str:
    """Numeric strings become numbers; anything else is kept for validation to reject."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    text = sanitize_text(value)
    try:
        number = float(text)
    except ValueError:
        return text
    return int(number) if number.is_integer() and "." not in text else number


class DefaultSanitizer:
    """Type-driven sanitizer used when the host supplies none."""

    def sanitize(self, raw_value: Any, field_type: str) -> Any:
        if isinstance(raw_value, (list, tuple)):
            return [self.sanitize(item, field_type) for item in raw_value]
        if field_type in BOOLEAN_TYPES:
            return is_truthy(raw_value)
        match field_type:
            case "email":
                return sanitize_email(raw_value)
            case "url":
                return sanitize_url(raw_value)
            case "number" | "range":
                return sanitize_number(raw_value)
            case "textarea" | "wysiwyg":
                return sanitize_multiline(raw_value)
            case "file":
                return raw_value
            case "password" | "encrypted":
                return "" if raw_value is None else str(raw_value)
            case _:
                return sanitize_text(raw_value)
