"""Tests for ServiceResult, failure() and payload contracts."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from formwright.services.contracts import (
    EvaluateResultData,
    SubmitResultData,
    accept_all,
    dump_validated,
)
from formwright.services.request import FormRequest
from formwright.services.result import ServiceError, ServiceResult, failure


class TestServiceResult:
    def test_success(self) -> None:
        result = ServiceResult(ok=True, op="submit", data={"form_id": "settings"})
        assert result.error is None
        assert result.warnings == []

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="submit")
        with pytest.raises(ValidationError):
            result.ok = False  # type: ignore[misc]

    def test_failure_helper(self) -> None:
        result = failure("submit", "VALIDATION_FAILED", "Bad", detail={"errors": {"a": "x"}})
        assert not result.ok
        assert result.error == ServiceError(
            code="VALIDATION_FAILED", message="Bad", detail={"errors": {"a": "x"}}
        )

    def test_json_round_trip(self) -> None:
        result = failure("evaluate", "FORM_NOT_FOUND", "missing", meta={"state": "loaded"})
        restored = ServiceResult.model_validate_json(result.model_dump_json())
        assert restored == result


class TestContracts:
    def test_dump_validated_normalizes(self) -> None:
        data = dump_validated(
            SubmitResultData,
            {"form_id": "s", "state": "persisted_ok", "message": "ok", "saved": ("a",)},
        )
        assert data["saved"] == ["a"]

    def test_dump_validated_rejects_missing_keys(self) -> None:
        with pytest.raises(ValidationError):
            dump_validated(SubmitResultData, {"form_id": "s"})

    def test_verdict_items_forbid_extras(self) -> None:
        with pytest.raises(ValidationError):
            dump_validated(
                EvaluateResultData,
                {
                    "form_id": "s",
                    "verdicts": {"a": {"visible": True, "required": False, "x": 1}},
                    "visible": [],
                    "required": [],
                },
            )

    def test_accept_all(self) -> None:
        assert accept_all(FormRequest())


class TestFormRequest:
    def test_targets_method_case_insensitively(self) -> None:
        assert FormRequest(method="post").targets("settings", "POST")
        assert not FormRequest(method="GET").targets("settings", "POST")

    def test_targets_form_id(self) -> None:
        assert FormRequest(form_id="settings").targets("settings", "POST")
        assert not FormRequest(form_id="other").targets("settings", "POST")
