"""Inbound request as the Form sees it — transport agnostic."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class FormRequest(BaseModel):
    """One HTTP-ish request aimed at a form.

    Attributes:
        method: Request method; must match the form's method to count as a submission.
        form_id: Form the request targets; ``None`` accepts any form.
        payload: Raw submitted values keyed by field id.
        submitter: Opaque identity of the submitter (user id, session).
        request_id: Identifier that makes re-delivery of the same request a no-op.
        token: Anti-forgery token for the authenticity predicate.
    """

    model_config = {"frozen": True}

    method: str = "POST"
    form_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    submitter: str | None = None
    request_id: str | None = None
    token: str | None = None

    def targets(self, form_id: str, method: str) -> bool:
        if self.method.upper() != method.upper():
            return False
        return self.form_id is None or self.form_id == form_id
