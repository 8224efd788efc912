"""Boundary contracts — host-supplied protocols and typed result payloads.

The Form consumes three host collaborators:

- :class:`Renderer` turns a configuration plus live state into markup.
- :class:`Sanitizer` cleans one raw submitted value per field type.
- :data:`AuthenticityPredicate` decides whether a request is genuine.

Result payload models validate ``ServiceResult.data`` shapes before they
leave the service layer so key regressions fail fast in tests.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from formwright.domain.configuration import FormConfiguration
    from formwright.domain.evaluator import Verdict
    from formwright.services.request import FormRequest


T = TypeVar("T", bound=BaseModel)


def dump_validated(model_cls: type[T], data: dict[str, Any]) -> dict[str, Any]:
    """Validate *data* against *model_cls* and return a normalized payload dict."""
    model = model_cls.model_validate(data)
    return model.model_dump(mode="python")


# ---------------------------------------------------------------------------
# Host collaborators
# ---------------------------------------------------------------------------


@runtime_checkable
class Renderer(Protocol):
    def render(
        self,
        config: FormConfiguration,
        data: dict[str, Any],
        verdicts: dict[str, Verdict],
        errors: dict[str, str],
    ) -> Any: ...


@runtime_checkable
class Sanitizer(Protocol):
    def sanitize(self, raw_value: Any, field_type: str) -> Any: ...


AuthenticityPredicate = Callable[["FormRequest"], bool]


def accept_all(_request: FormRequest) -> bool:
    """Default authenticity predicate for trusted callers (CLI, tests)."""
    return True


@dataclass
class RenderContext:
    """Everything a renderer may read for one pass."""

    config: FormConfiguration
    data: dict[str, Any]
    verdicts: dict[str, Verdict]
    errors: dict[str, str] = field(default_factory=dict)
    messages: list[dict[str, str]] = field(default_factory=list)
    state: str = "loaded"

    def visible_fields(self) -> list[str]:
        return [fid for fid, verdict in self.verdicts.items() if verdict.visible]


# ---------------------------------------------------------------------------
# Result payloads
# ---------------------------------------------------------------------------


class SubmitResultData(BaseModel):
    """Payload contract for ``Form.handle`` on a persisted submission."""

    form_id: str
    state: str
    message: str
    saved: list[str]


class NotSubmittedData(BaseModel):
    """Payload contract for ``Form.handle`` when the request is not a submission."""

    form_id: str
    state: str
    submitted: bool = False


class VerdictItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    visible: bool
    required: bool


class EvaluateResultData(BaseModel):
    """Payload contract for ``ConditionalService.evaluate``."""

    form_id: str
    verdicts: dict[str, VerdictItem]
    visible: list[str]
    required: list[str]


class CheckResultData(BaseModel):
    """Payload contract for ``DefinitionService.check``."""

    form_id: str
    field_count: int
    conditional_fields: list[str]
    repeaters: list[str]
    persistence: str
