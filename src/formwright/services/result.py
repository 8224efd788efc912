"""What every formwright operation hands back.

``Form.handle``, ``ConditionalService.evaluate`` and ``DefinitionService.check``
return a :class:`ServiceResult` instead of raising; the CLI prints it and a
host can serialize it straight into a response body.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Machine-readable failure: a stable *code*, a message fit to show, *detail*."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one operation.

    ``op`` names the operation (``check``, ``evaluate``, ``submit``). ``data``
    follows the payload contract for that op; ``error`` is set exactly when
    ``ok`` is False. ``warnings`` carry degraded-but-completed conditions,
    such as stored values that could not be loaded.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None


def failure(
    op: str,
    code: str,
    message: str,
    *,
    detail: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
    meta: dict[str, Any] | None = None,
) -> ServiceResult:
    """Shorthand for an ``ok=False`` result."""
    return ServiceResult(
        ok=False,
        op=op,
        warnings=warnings or [],
        error=ServiceError(code=code, message=message, detail=detail or {}),
        meta=meta,
    )
