"""Tests for Rich renderers and the JSON formatter."""

from __future__ import annotations

import json

from formwright.output.console import create_console, get_output
from formwright.output.formatters import OutputSettings, format_result
from formwright.output.renderers import render_result
from formwright.services.result import ServiceResult, failure


class TestRenderResult:
    def test_check(self) -> None:
        result = ServiceResult(
            ok=True,
            op="check",
            data={
                "form_id": "integrations",
                "field_count": 5,
                "conditional_fields": ["endpoint", "token"],
                "repeaters": ["post_types"],
                "persistence": "options",
            },
        )
        output = render_result(result)
        assert output.startswith("OK")
        assert "integrations" in output
        assert "endpoint, token" in output
        assert "post_types" in output

    def test_evaluate_table(self) -> None:
        result = ServiceResult(
            ok=True,
            op="evaluate",
            data={
                "form_id": "integrations",
                "verdicts": {
                    "provider": {"visible": True, "required": False},
                    "endpoint": {"visible": False, "required": False},
                },
            },
            meta={"conditional_fields": ["endpoint"]},
        )
        output = render_result(result)
        assert "Field" in output
        assert "provider" in output
        assert "endpoint" in output
        assert "meta:" not in output
        assert "meta:" in render_result(result, verbose=True)

    def test_submit_not_targeted(self) -> None:
        result = ServiceResult(
            ok=True, op="submit", data={"form_id": "s", "state": "loaded", "submitted": False}
        )
        assert "did not target" in render_result(result)

    def test_submit_saved(self) -> None:
        result = ServiceResult(
            ok=True,
            op="submit",
            data={"form_id": "s", "state": "persisted_ok", "message": "Saved!", "saved": ["a"]},
        )
        output = render_result(result)
        assert "persisted_ok" in output
        assert "Saved!" in output

    def test_error_lists_field_errors(self) -> None:
        result = failure(
            "submit",
            "VALIDATION_FAILED",
            "Failed to save settings.",
            detail={"errors": {"api_key": "API Key is required."}},
        )
        output = render_result(result)
        assert output.startswith("ERROR")
        assert "api_key" in output
        assert "API Key is required." in output
        assert "detail:" in render_result(result, verbose=True)

    def test_generic_fallback(self) -> None:
        output = render_result(ServiceResult(ok=True, op="other", data={"count": 2}))
        assert "count:" in output
        assert output.rstrip().endswith("2")


class TestFormatResult:
    def test_json_mode(self) -> None:
        result = ServiceResult(ok=True, op="check", data={"form_id": "x"}, warnings=["w"])
        parsed = json.loads(format_result(result, settings=OutputSettings(json_output=True)))
        assert parsed["ok"] is True
        assert parsed["data"] == {"form_id": "x"}
        assert parsed["warnings"] == ["w"]

    def test_default_is_human(self) -> None:
        result = ServiceResult(ok=True, op="other", data={"k": "v"})
        assert format_result(result).startswith("OK")


def test_console_buffer() -> None:
    console = create_console(no_color=True, width=40)
    console.print("hello")
    assert get_output(console) == "hello\n"
