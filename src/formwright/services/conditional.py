"""ConditionalService — out-of-band re-evaluation of a published form.

Hosts call this from an async endpoint while the user edits a rendered
form: the configuration comes from the shared repository, the data from
the browser, and the verdicts go back as JSON.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from formwright.domain.evaluator import ConditionalEvaluator, VerdictCache
from formwright.errors import ConditionCycleError, PersistenceError
from formwright.services.contracts import EvaluateResultData, dump_validated
from formwright.services.result import ServiceResult, failure

if TYPE_CHECKING:
    from formwright.infrastructure.repository import FormConfigRepository

logger = logging.getLogger(__name__)


class ConditionalService:
    """Evaluate visibility/requiredness for a form looked up by id."""

    def __init__(self, repository: FormConfigRepository) -> None:
        self._repository = repository

    def evaluate(
        self,
        form_id: str,
        data: dict[str, Any],
        *,
        submitter: str | None = None,
    ) -> ServiceResult:
        op = "evaluate"
        try:
            config = self._repository.get(form_id)
        except PersistenceError as exc:
            logger.error("Form lookup failed for %s: %s", form_id, exc)
            return failure(op, "REPOSITORY_ERROR", str(exc))
        if config is None:
            return failure(op, "FORM_NOT_FOUND", f"No form registered as {form_id!r}")

        evaluator = ConditionalEvaluator(config, cache=VerdictCache())
        try:
            verdicts = evaluator.evaluate(data, submitter=submitter)
        except ConditionCycleError as exc:
            return failure(op, "CONDITION_CYCLE", str(exc), detail={"fields": exc.field_ids})

        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                EvaluateResultData,
                {
                    "form_id": form_id,
                    "verdicts": {fid: v.to_dict() for fid, v in verdicts.items()},
                    "visible": [fid for fid, v in verdicts.items() if v.visible],
                    "required": [fid for fid, v in verdicts.items() if v.required],
                },
            ),
            meta={"conditional_fields": evaluator.conditional_fields()},
        )
