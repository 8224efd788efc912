"""Form — one submission/render pass over a FormConfiguration.

A Form is created per request and drives the lifecycle::

    uninitialized -> loaded -> submitted -> validated_ok -> persisted_ok
                                         \\-> validated_failed
                                                         \\-> persisted_failed
    (any state) -> rendered

Transitions only move forward. ``handle()`` runs the whole submission
chain; calling it again (same request id or not) returns the stored
result without touching the persistence adapter a second time.
``render()`` may be called from any state and always reflects the data
after submission handling.

Phase boundaries catch :class:`HookError` and :class:`PersistenceError`
and turn them into the failed variant plus ``ServiceResult(ok=False)``.
Builder and configuration errors propagate.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from formwright.domain.evaluator import ConditionalEvaluator, VerdictCache
from formwright.domain.fields import BOOLEAN_TYPES, DISPLAY_ONLY_TYPES
from formwright.domain.lifecycle import LifecycleEvent, LifecycleState, is_valid_transition
from formwright.domain.repeater import (
    collapse_submission,
    expand_loaded,
    normalize_persisted,
    save_set,
)
from formwright.domain.sanitize import DefaultSanitizer
from formwright.domain.validation import FieldValidator
from formwright.errors import (
    HookError,
    InvalidChoiceError,
    PersistenceError,
    ValidationError,
    ValidationHalt,
)
from formwright.infrastructure.persistence import PersistenceAdapter, build_adapter
from formwright.plugins.event_bus import EventBus
from formwright.plugins.events import (
    AfterSave,
    AfterValidate,
    BeforeSave,
    BeforeValidate,
    OnError,
    OnSuccess,
)
from formwright.services.contracts import (
    AuthenticityPredicate,
    NotSubmittedData,
    RenderContext,
    Renderer,
    Sanitizer,
    SubmitResultData,
    accept_all,
    dump_validated,
)
from formwright.services.request import FormRequest
from formwright.services.result import ServiceResult, failure

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from formwright.domain.configuration import FormConfiguration
    from formwright.domain.evaluator import Verdict
    from formwright.domain.repeater import RepeaterSpec
    from formwright.infrastructure.repository import FormConfigRepository

logger = logging.getLogger(__name__)

FORM_ERROR_KEY = "_form"


class Form:
    """Request-scoped lifecycle orchestrator.

    Parameters:
        config: Built configuration; frozen on ``load()``.
        adapter: Persistence adapter; built from ``config.persistence`` when omitted.
        engine: SQLAlchemy engine for the options/records backends.
        repository: Shared store the configuration is published to on render.
        event_bus: Dispatcher for callbacks and plugin observers.
        sanitizer: Per-field value cleaner (``DefaultSanitizer`` when omitted).
        authenticity: Request predicate; every request is accepted when omitted.
        namespace: Store-wide prefix prepended to option keys.
    """

    def __init__(
        self,
        config: FormConfiguration,
        *,
        adapter: PersistenceAdapter | None = None,
        engine: Engine | None = None,
        repository: FormConfigRepository | None = None,
        event_bus: EventBus | None = None,
        sanitizer: Sanitizer | None = None,
        validator: FieldValidator | None = None,
        authenticity: AuthenticityPredicate | None = None,
        namespace: str = "",
    ) -> None:
        self._config = config
        self._adapter = adapter
        self._engine = engine
        self._repository = repository
        self._bus = event_bus or EventBus()
        self._sanitizer = sanitizer or DefaultSanitizer()
        self._validator = validator or FieldValidator()
        self._authenticity = authenticity or accept_all
        self._namespace = namespace
        self._evaluator = ConditionalEvaluator(config, cache=VerdictCache())

        self._state = LifecycleState.UNINITIALIZED
        self._data: dict[str, Any] = {}
        self._errors: dict[str, ValidationError] = {}
        self._messages: list[dict[str, str]] = []
        self._warnings: list[str] = []
        self._submitted = False
        self._request_id: str | None = None
        self._result: ServiceResult | None = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> FormConfiguration:
        return self._config

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def form_id(self) -> str:
        return self._config.form_id

    @property
    def evaluator(self) -> ConditionalEvaluator:
        return self._evaluator

    @property
    def result(self) -> ServiceResult | None:
        """Stored result of the submission, once one was handled."""
        return self._result

    def is_submitted(self) -> bool:
        return self._submitted

    def is_valid(self) -> bool:
        """True once a submission passed validation without errors."""
        return self._submitted and not self._errors

    def errors(self) -> dict[str, str]:
        """Error messages keyed by field id (``_form`` for form-level errors)."""
        return {fid: err.message for fid, err in self._errors.items()}

    def messages(self) -> list[dict[str, str]]:
        return list(self._messages)

    def warnings(self) -> list[str]:
        """Non-fatal problems seen so far, such as an unreadable store."""
        return list(self._warnings)

    def data(self, key: str | None = None) -> Any:
        if key is None:
            return dict(self._data)
        return self._data.get(key)

    def set_data(self, key: str, value: Any) -> None:
        """Override one value before rendering (e.g. a computed default)."""
        if key not in self._config.fields:
            logger.warning("set_data for unknown field %s on %s", key, self.form_id)
        self._data[key] = value

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load(self) -> Form:
        """Freeze the configuration and read stored values (``uninitialized -> loaded``)."""
        if self._state is not LifecycleState.UNINITIALIZED:
            return self
        self._config.freeze()
        self._data = self._read_stored()
        self._transition(LifecycleState.LOADED)
        return self

    def reload(self) -> Form:
        """Re-read stored values without changing the lifecycle state."""
        if self._state is LifecycleState.UNINITIALIZED:
            return self.load()
        self._data = self._read_stored()
        return self

    def _persisted_keys(self) -> list[str]:
        keys: list[str] = []
        for field_id, descriptor in self._config.fields.items():
            if descriptor.type in DISPLAY_ONLY_TYPES:
                continue
            spec = self._config.repeater_for(field_id)
            if spec is not None and not spec.single_choice:
                continue
            keys.append(field_id)
        keys.extend(b for b, s in self._config.repeaters.items() if not s.single_choice)
        return keys

    def _get_adapter(self) -> PersistenceAdapter:
        if self._adapter is None:
            self._adapter = build_adapter(
                self._config.persistence,
                self._engine,
                keys=self._persisted_keys(),
                namespace=self._namespace,
            )
        return self._adapter

    def _read_stored(self) -> dict[str, Any]:
        try:
            stored = self._get_adapter().load(self.form_id)
        except PersistenceError as exc:
            logger.warning("Falling back to defaults for %s: %s", self.form_id, exc)
            self._warnings.append(f"Stored values unavailable: {exc}")
            stored = {}

        data: dict[str, Any] = {}
        for field_id, descriptor in self._config.fields.items():
            if self._config.repeater_for(field_id) is None:
                data[field_id] = stored.get(field_id, descriptor.default)

        for base, spec in self._config.repeaters.items():
            if base in stored:
                spec = _with_persisted(spec, stored[base])
            data.update(expand_loaded(spec))
        return data

    def _apply_saved(self, payload: dict[str, Any]) -> None:
        """Reflect what the adapter received, after any before_save rewrites."""
        for field_id, value in payload.items():
            if field_id in self._config.fields and field_id not in self._config.repeaters:
                self._data[field_id] = value
        for base, spec in self._config.repeaters.items():
            if base in payload:
                self._data.update(expand_loaded(_with_persisted(spec, payload[base])))

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def handle(self, request: FormRequest) -> ServiceResult:
        """Run the submission chain for *request* if it targets this form."""
        op = "submit"
        if self._state is LifecycleState.UNINITIALIZED:
            self.load()

        if self._result is not None:
            if request.request_id is not None and request.request_id == self._request_id:
                logger.debug("Duplicate delivery of request %s ignored", request.request_id)
            else:
                logger.debug("Form %s already handled a submission", self.form_id)
            return self._result

        if self._state is LifecycleState.RENDERED:
            logger.warning("Form %s already rendered; submission ignored", self.form_id)
            return failure(op, "FORM_CLOSED", "Form was already rendered for this request")

        if not request.targets(self.form_id, self._config.method):
            return ServiceResult(
                ok=True,
                op=op,
                data=dump_validated(
                    NotSubmittedData, {"form_id": self.form_id, "state": str(self._state)}
                ),
            )

        if not self._authenticity(request):
            logger.warning("Authenticity check failed for %s", self.form_id)
            message = "The request could not be verified. Please reload and try again."
            self._errors[FORM_ERROR_KEY] = ValidationError(
                FORM_ERROR_KEY, "invalid_request", message
            )
            self._add_message("error", message)
            return failure(op, "AUTHENTICITY_FAILED", message)

        self._submitted = True
        self._request_id = request.request_id
        self._errors = {}
        self._transition(LifecycleState.SUBMITTED)
        self._result = self._run_submission(request)
        return self._result

    def _run_submission(self, request: FormRequest) -> ServiceResult:
        op = "submit"
        data = self._sanitize(request.payload)

        # --- validate ---
        try:
            data, verdicts, errors = self._validate(data, request)
        except HookError as exc:
            self._transition(LifecycleState.VALIDATED_FAILED)
            return self._fail_on_hook(op, exc, data)

        if errors:
            self._errors = errors
            self._transition(LifecycleState.VALIDATED_FAILED)
            message = self._config.messages.error
            self._add_message("error", message)
            self._emit_error(data, message)
            return failure(
                op,
                "VALIDATION_FAILED",
                message,
                detail={"errors": self.errors()},
                warnings=self._warnings,
                meta={"state": str(self._state)},
            )
        self._transition(LifecycleState.VALIDATED_OK)

        # --- persist ---
        payload = self._build_payload(data, verdicts)
        try:
            event = self._bus.emit(
                BeforeSave(self.form_id, data=data, payload=payload),
                self._config.get_hooks(LifecycleEvent.BEFORE_SAVE),
            )
            payload = event.payload
            saved = self._save(payload)
            self._bus.emit(
                AfterSave(self.form_id, data=data, result=saved),
                self._config.get_hooks(LifecycleEvent.AFTER_SAVE),
            )
        except HookError as exc:
            self._transition(LifecycleState.PERSISTED_FAILED)
            return self._fail_on_hook(op, exc, data)

        if not saved:
            self._transition(LifecycleState.PERSISTED_FAILED)
            message = self._config.messages.error
            self._add_message("error", message)
            self._emit_error(data, message)
            return failure(
                op,
                "PERSISTENCE_FAILED",
                message,
                warnings=self._warnings,
                meta={"state": str(self._state)},
            )

        self._transition(LifecycleState.PERSISTED_OK)
        self._apply_saved(payload)
        message = self._config.messages.success
        self._add_message("success", message)
        try:
            self._bus.emit(
                OnSuccess(self.form_id, data=data, message=message),
                self._config.get_hooks(LifecycleEvent.ON_SUCCESS),
            )
        except HookError as exc:
            # Data is already stored; only the outcome report flips.
            return self._fail_on_hook(op, exc, data)

        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                SubmitResultData,
                {
                    "form_id": self.form_id,
                    "state": str(self._state),
                    "message": message,
                    "saved": sorted(payload),
                },
            ),
            warnings=self._warnings,
        )

    def _sanitize(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Sanitized candidate data for every submittable field."""
        data: dict[str, Any] = {}
        for field_id, descriptor in self._config.fields.items():
            if descriptor.type in DISPLAY_ONLY_TYPES:
                continue
            raw = payload.get(field_id)
            if raw is None and descriptor.type in BOOLEAN_TYPES:
                # Unchecked boxes are simply absent from the submission.
                data[field_id] = False
                continue
            data[field_id] = None if raw is None else self._sanitizer.sanitize(raw, descriptor.type)
        # Keep unknown repeater keys so reconciliation can reject them.
        for base in self._config.repeaters:
            prefix = f"{base}___"
            for key, raw in payload.items():
                if key.startswith(prefix) and key not in self._config.fields:
                    data[key] = raw
        return data

    def _validate(
        self,
        data: dict[str, Any],
        request: FormRequest,
    ) -> tuple[dict[str, Any], dict[str, Verdict], dict[str, ValidationError]]:
        try:
            event = self._bus.emit(
                BeforeValidate(self.form_id, data=data),
                self._config.get_hooks(LifecycleEvent.BEFORE_VALIDATE),
            )
        except ValidationHalt as exc:
            message = str(exc) or self._config.messages.error
            logger.info("Validation halted for %s: %s", self.form_id, message)
            halted = {FORM_ERROR_KEY: ValidationError(FORM_ERROR_KEY, "validation_halted", message)}
            return data, {}, halted
        data = event.data

        verdicts = self._evaluator.evaluate(data, submitter=request.submitter)
        errors = self._validator.validate(self._config.fields, data, verdicts)
        for spec in self._config.repeaters.values():
            failure_ = self._check_repeater(spec, data, verdicts)
            if failure_ is not None:
                errors[spec.base_field_id] = failure_

        self._bus.emit(
            AfterValidate(self.form_id, data=data, errors=errors),
            self._config.get_hooks(LifecycleEvent.AFTER_VALIDATE),
        )
        return data, verdicts, errors

    @staticmethod
    def _check_repeater(
        spec: RepeaterSpec,
        data: dict[str, Any],
        verdicts: dict[str, Verdict],
    ) -> ValidationError | None:
        first_key = next(iter(spec.choices))
        owner = spec.base_field_id if spec.single_choice else spec.field_name(first_key)
        verdict = verdicts.get(owner)
        if verdict is not None and not verdict.visible:
            return None
        try:
            save_set(spec, collapse_submission(spec, data))
        except InvalidChoiceError as exc:
            logger.warning("Rejected repeater submission for %s: %s", spec.base_field_id, exc)
            return ValidationError(spec.base_field_id, "invalid_choice", str(exc))
        return None

    def _build_payload(self, data: dict[str, Any], verdicts: dict[str, Verdict]) -> dict[str, Any]:
        """Values to persist: visible plain fields plus collapsed repeater selections."""
        payload: dict[str, Any] = {}
        for field_id, descriptor in self._config.fields.items():
            if descriptor.type in DISPLAY_ONLY_TYPES:
                continue
            verdict = verdicts.get(field_id)
            if verdict is not None and not verdict.visible:
                continue
            spec = self._config.repeater_for(field_id)
            if spec is not None and not spec.single_choice:
                continue
            if spec is not None:
                payload[field_id] = save_set(spec, data.get(field_id))
            else:
                payload[field_id] = data.get(field_id)
        for base, spec in self._config.repeaters.items():
            if not spec.single_choice:
                payload[base] = save_set(spec, collapse_submission(spec, data))
        return payload

    def _save(self, payload: dict[str, Any]) -> bool:
        try:
            saved = self._get_adapter().save(self.form_id, payload)
        except PersistenceError as exc:
            # Detail stays in the log; the submitter only sees the configured message.
            logger.error("Persisting %s failed: %s", self.form_id, exc)
            return False
        if not saved:
            logger.error("Persistence adapter refused data for %s", self.form_id)
        return bool(saved)

    # ------------------------------------------------------------------
    # Failure reporting
    # ------------------------------------------------------------------

    def _fail_on_hook(self, op: str, exc: HookError, data: dict[str, Any]) -> ServiceResult:
        self._errors[FORM_ERROR_KEY] = ValidationError(FORM_ERROR_KEY, "hook_failed", str(exc))
        message = self._config.messages.error
        self._add_message("error", message)
        self._emit_error(data, message, cause=exc)
        return failure(
            op,
            "HOOK_FAILED",
            message,
            detail={"event": exc.event, "handler": exc.handler},
            warnings=self._warnings,
            meta={"state": str(self._state)},
        )

    def _emit_error(
        self,
        data: dict[str, Any],
        message: str,
        *,
        cause: BaseException | None = None,
    ) -> None:
        event = OnError(
            self.form_id, data=data, errors=dict(self._errors), message=message, cause=cause
        )
        try:
            self._bus.emit(event, self._config.get_hooks(LifecycleEvent.ON_ERROR))
        except HookError as exc:
            logger.warning("on_error handler failed for %s: %s", self.form_id, exc)
            self._warnings.append(str(exc))

    def _add_message(self, kind: str, text: str) -> None:
        self._messages.append({"type": kind, "text": text})

    # ------------------------------------------------------------------
    # Render
    # ------------------------------------------------------------------

    def render(self, renderer: Renderer | None = None) -> Any:
        """Publish the configuration and hand live state to the renderer.

        Returns the renderer's output, or the :class:`RenderContext` when
        no renderer is given and the layout has no custom renderer.
        """
        if self._state is LifecycleState.UNINITIALIZED:
            self.load()
        if self._state is not LifecycleState.RENDERED:
            self._transition(LifecycleState.RENDERED)

        if self._repository is not None:
            try:
                self._repository.put(self.form_id, self._config)
            except PersistenceError as exc:
                # Out-of-band evaluation goes stale; the page still renders.
                logger.warning("Could not publish %s: %s", self.form_id, exc)
                self._warnings.append(f"Form configuration not published: {exc}")

        verdicts = self._evaluator.evaluate(self._data)
        context = RenderContext(
            config=self._config,
            data=dict(self._data),
            verdicts=verdicts,
            errors=self.errors(),
            messages=self.messages(),
            state=str(self._state),
        )
        if renderer is not None:
            return renderer.render(context.config, context.data, context.verdicts, context.errors)
        if self._config.custom_renderer is not None:
            return self._config.custom_renderer(context)
        return context

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _transition(self, target: LifecycleState) -> None:
        if not is_valid_transition(self._state, target):
            msg = f"Invalid lifecycle transition for {self.form_id}: {self._state} -> {target}"
            raise RuntimeError(msg)
        logger.debug("Form %s: %s -> %s", self.form_id, self._state, target)
        self._state = target


def _with_persisted(spec: RepeaterSpec, raw: Any) -> RepeaterSpec:
    keys = normalize_persisted(raw)
    return spec.model_copy(
        update={"persisted_keys": frozenset(keys) if keys is not None else None}
    )
