"""Fluent builder DSL — ``create_form()``, FormBuilder, FieldBuilder.

Two typed builders split form scope from field scope:

- :class:`FormBuilder` carries form-level settings (layout, persistence,
  messages, hooks) plus the field-creating methods.
- :class:`FieldBuilder` carries field-level settings for the field it was
  created for, plus the same field-creating methods.

Creating a field implicitly closes the previously open one, so chains
need no explicit terminator::

    create_form("settings").text("api_key").required().email("from").required()

Form-level methods do not exist on :class:`FieldBuilder` (``build()`` aside);
``end()`` hands the chain back to the :class:`FormBuilder`. A :class:`FieldBuilder` whose
field is no longer the open one raises :class:`NoActiveFieldError`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Self

from formwright.domain.conditions import RuleMode, VisibilityRule, parse_condition
from formwright.domain.configuration import (
    FormConfiguration,
    Layout,
    Messages,
    PersistenceBackend,
    PersistenceSpec,
    SubmitSpec,
)
from formwright.domain.evaluator import check_cycles
from formwright.domain.fields import FieldDescriptor, FieldRegistry
from formwright.domain.lifecycle import LifecycleEvent
from formwright.domain.repeater import (
    RepeaterKind,
    RepeaterSpec,
    normalize_choices,
    render_set,
    selected_key,
)
from formwright.errors import BuilderMisuseError, ConditionCycleError, NoActiveFieldError

logger = logging.getLogger(__name__)

REPEATER_GROUP_LAYOUTS = ("horizontal", "vertical")


# ---------------------------------------------------------------------------
# Shared field-creating surface
# ---------------------------------------------------------------------------


class _FieldCreator:
    """Typed field shortcuts shared by both builder scopes."""

    def add_field(
        self,
        field_id: str,
        type_name: str = "text",
        label: str = "",
        **options: Any,
    ) -> FieldBuilder:
        raise NotImplementedError

    def repeater(
        self,
        field_id: str,
        choices: Mapping[Any, Any],
        persisted: Any = None,
    ) -> RepeaterBuilder:
        raise NotImplementedError

    def text(self, field_id: str, label: str = "") -> FieldBuilder:
        return self.add_field(field_id, "text", label)

    def email(self, field_id: str, label: str = "") -> FieldBuilder:
        return self.add_field(field_id, "email", label)

    def password(self, field_id: str, label: str = "") -> FieldBuilder:
        return self.add_field(field_id, "password", label)

    def url(self, field_id: str, label: str = "") -> FieldBuilder:
        return self.add_field(field_id, "url", label)

    def number(self, field_id: str, label: str = "") -> FieldBuilder:
        return self.add_field(field_id, "number", label)

    def textarea(self, field_id: str, label: str = "") -> FieldBuilder:
        return self.add_field(field_id, "textarea", label)

    def wysiwyg(self, field_id: str, label: str = "") -> FieldBuilder:
        return self.add_field(field_id, "wysiwyg", label)

    def select(self, field_id: str, label: str = "") -> FieldBuilder:
        return self.add_field(field_id, "select", label)

    def radio(self, field_id: str, label: str = "") -> FieldBuilder:
        return self.add_field(field_id, "radio", label)

    def checkbox(self, field_id: str, label: str = "") -> FieldBuilder:
        return self.add_field(field_id, "checkbox", label)

    def switch(self, field_id: str, label: str = "") -> FieldBuilder:
        return self.add_field(field_id, "switch", label)

    def file(self, field_id: str, label: str = "", accept: str | None = None) -> FieldBuilder:
        builder = self.add_field(field_id, "file", label)
        if accept:
            builder.attribute("accept", accept)
        return builder

    def date(self, field_id: str, label: str = "") -> FieldBuilder:
        return self.add_field(field_id, "date", label)

    def time(self, field_id: str, label: str = "") -> FieldBuilder:
        return self.add_field(field_id, "time", label)

    def datetime(self, field_id: str, label: str = "") -> FieldBuilder:
        return self.add_field(field_id, "datetime-local", label)

    def hidden(self, field_id: str, value: Any = "") -> FieldBuilder:
        return self.add_field(field_id, "hidden", "", default=value)

    def info(self, field_id: str, text: str = "") -> FieldBuilder:
        return self.add_field(field_id, "info", "", description=text)

    def encrypted(self, field_id: str, label: str = "") -> FieldBuilder:
        return self.add_field(field_id, "encrypted", label)


# ---------------------------------------------------------------------------
# Form scope
# ---------------------------------------------------------------------------


class FormBuilder(_FieldCreator):
    """Form-scope builder wrapping a :class:`FormConfiguration`."""

    def __init__(self, config: FormConfiguration, registry: FieldRegistry | None = None) -> None:
        self._config = config
        self._registry = registry or FieldRegistry()
        self._current: FieldBuilder | None = None

    @property
    def config(self) -> FormConfiguration:
        return self._config

    @property
    def registry(self) -> FieldRegistry:
        return self._registry

    # --- field scope tracking ---

    def _close_field(self) -> None:
        # The descriptor is already attached by reference; closing only drops the pointer.
        self._current = None

    def is_open(self, field_builder: FieldBuilder) -> bool:
        return self._current is field_builder

    def field(self) -> FieldBuilder:
        """Return the open field builder.

        Raises:
            NoActiveFieldError: If no field is open.
        """
        if self._current is None:
            raise NoActiveFieldError("field")
        return self._current

    def add_field(
        self,
        field_id: str,
        type_name: str = "text",
        label: str = "",
        **options: Any,
    ) -> FieldBuilder:
        """Append a new field and open it for field-level configuration."""
        self._close_field()
        descriptor = self._registry.create(type_name, field_id, label, **options)
        self._config.add_field(descriptor)
        self._current = FieldBuilder(self, descriptor)
        return self._current

    def repeater(
        self,
        field_id: str,
        choices: Mapping[Any, Any],
        persisted: Any = None,
    ) -> RepeaterBuilder:
        """Start a repeater over *choices*, reconciled against *persisted* keys."""
        self._close_field()
        return RepeaterBuilder(self, field_id, choices, persisted)

    # --- layout ---

    def layout(self, layout: Layout | str) -> Self:
        self._close_field()
        self._config.layout = Layout(layout)
        return self

    def table(self) -> Self:
        return self.layout(Layout.TABLE)

    def div(self) -> Self:
        return self.layout(Layout.DIV)

    def custom_layout(self, renderer: Callable[..., Any]) -> Self:
        self._close_field()
        self._config.layout = Layout.CUSTOM
        self._config.custom_renderer = renderer
        return self

    def method(self, method: str) -> Self:
        self._close_field()
        self._config.method = method.upper()
        return self

    def description(self, text: str) -> Self:
        self._close_field()
        self._config.description = text
        return self

    # --- persistence ---

    def persist_to(self, backend: PersistenceBackend | str, **options: Any) -> Self:
        self._close_field()
        self._config.persistence = PersistenceSpec(backend=PersistenceBackend(backend), **options)
        return self

    def save_to_options(self, prefix: str = "", suffix: str = "") -> Self:
        return self.persist_to(PersistenceBackend.OPTIONS, prefix=prefix, suffix=suffix)

    def save_to_records(self, record_id: str = "default") -> Self:
        return self.persist_to(PersistenceBackend.RECORDS, record_id=record_id)

    def save_to_custom(
        self,
        save: Callable[[str, dict[str, Any]], bool],
        load: Callable[[str], dict[str, Any]] | None = None,
    ) -> Self:
        return self.persist_to(PersistenceBackend.CUSTOM, save=save, load=load)

    # --- messages / submit ---

    def success(self, message: str) -> Self:
        self._close_field()
        self._config.messages = self._config.messages.model_copy(update={"success": message})
        return self

    def error(self, message: str) -> Self:
        self._close_field()
        self._config.messages = self._config.messages.model_copy(update={"error": message})
        return self

    def submit(self, label: str = "Save", kind: str = "primary") -> Self:
        self._close_field()
        self._config.submit = SubmitSpec(label=label, kind=kind)
        return self

    # --- hooks ---

    def on(self, event: LifecycleEvent | str, callback: Callable[..., Any]) -> Self:
        self._close_field()
        self._config.add_hook(event, callback)
        return self

    def before_validate(self, callback: Callable[..., Any]) -> Self:
        return self.on(LifecycleEvent.BEFORE_VALIDATE, callback)

    def after_validate(self, callback: Callable[..., Any]) -> Self:
        return self.on(LifecycleEvent.AFTER_VALIDATE, callback)

    def before_save(self, callback: Callable[..., Any]) -> Self:
        return self.on(LifecycleEvent.BEFORE_SAVE, callback)

    def after_save(self, callback: Callable[..., Any]) -> Self:
        return self.on(LifecycleEvent.AFTER_SAVE, callback)

    def on_success(self, callback: Callable[..., Any]) -> Self:
        return self.on(LifecycleEvent.ON_SUCCESS, callback)

    def on_error(self, callback: Callable[..., Any]) -> Self:
        return self.on(LifecycleEvent.ON_ERROR, callback)

    # --- finish ---

    def build(self) -> FormConfiguration:
        """Close any open field, check rule cycles, and return the configuration.

        Raises:
            ConditionCycleError: If field rules reference each other in a loop.
        """
        self._close_field()
        check_cycles(self._config.fields.values())
        return self._config


# ---------------------------------------------------------------------------
# Field scope
# ---------------------------------------------------------------------------


class FieldBuilder(_FieldCreator):
    """Field-scope builder for one :class:`FieldDescriptor`."""

    def __init__(self, form_builder: FormBuilder, descriptor: FieldDescriptor) -> None:
        self._form = form_builder
        self._descriptor = descriptor

    @property
    def descriptor(self) -> FieldDescriptor:
        return self._descriptor

    def _open(self, method: str) -> FieldDescriptor:
        if not self._form.is_open(self):
            raise NoActiveFieldError(method)
        return self._descriptor

    # --- chaining back to form scope ---

    def end(self) -> FormBuilder:
        """Close this field and return the form builder."""
        self._open("end")
        self._form._close_field()
        return self._form

    def build(self) -> FormConfiguration:
        """Close this field and finish the form (``end().build()``)."""
        return self.end().build()

    def add_field(
        self,
        field_id: str,
        type_name: str = "text",
        label: str = "",
        **options: Any,
    ) -> FieldBuilder:
        return self._form.add_field(field_id, type_name, label, **options)

    def repeater(
        self,
        field_id: str,
        choices: Mapping[Any, Any],
        persisted: Any = None,
    ) -> RepeaterBuilder:
        return self._form.repeater(field_id, choices, persisted)

    # --- basic metadata ---

    def label(self, label: str) -> Self:
        self._open("label").label = label
        return self

    def required(self, required: bool = True) -> Self:
        self._open("required").required = required
        return self

    def description(self, text: str) -> Self:
        self._open("description").description = text
        return self

    def placeholder(self, text: str) -> Self:
        self._open("placeholder").placeholder = text
        return self

    def default(self, value: Any) -> Self:
        self._open("default").default = value
        return self

    def options(self, options: Mapping[Any, Any]) -> Self:
        self._open("options").options = {str(k): str(v) for k, v in options.items()}
        return self

    def css_class(self, class_name: str) -> Self:
        descriptor = self._open("css_class")
        existing = str(descriptor.attributes.get("class") or "").split()
        if class_name not in existing:
            existing.append(class_name)
        descriptor.set_attribute("class", " ".join(existing))
        return self

    def attribute(self, key: str, value: str | int | float | bool | None) -> Self:
        self._open("attribute").set_attribute(key, value)
        return self

    def attributes(self, attributes: Mapping[str, str | int | float | bool | None]) -> Self:
        descriptor = self._open("attributes")
        descriptor.attributes = {**descriptor.attributes, **attributes}
        return self

    def rows(self, rows: int) -> Self:
        return self.attribute("rows", rows)

    def step(self, step: int | float) -> Self:
        return self.attribute("step", step)

    # --- validation ---

    def validation(self, rule: str, args: Any = None, message: str | None = None) -> Self:
        self._open("validation").add_rule(rule, args, message)
        return self

    def min_length(self, length: int) -> Self:
        return self.validation("min_length", length).attribute("minlength", length)

    def max_length(self, length: int) -> Self:
        return self.validation("max_length", length).attribute("maxlength", length)

    def min(self, minimum: int | float) -> Self:
        return self.validation("min", minimum).attribute("min", minimum)

    def max(self, maximum: int | float) -> Self:
        return self.validation("max", maximum).attribute("max", maximum)

    def range(self, minimum: int | float, maximum: int | float) -> Self:
        return self.min(minimum).max(maximum)

    def pattern(self, regex: str, message: str | None = None) -> Self:
        return self.validation("pattern", regex, message)

    def one_of(self, values: list[Any]) -> Self:
        return self.validation("in", list(values))

    def custom(self, check: Callable[[Any, FieldDescriptor], Any]) -> Self:
        return self.validation("custom", check)

    # --- conditional logic ---

    def show_when(self, condition: Any) -> Self:
        return self._set_rule(RuleMode.SHOW_WHEN, condition, "show_when")

    def hide_when(self, condition: Any) -> Self:
        return self._set_rule(RuleMode.HIDE_WHEN, condition, "hide_when")

    def required_when(self, condition: Any) -> Self:
        return self._set_rule(RuleMode.REQUIRED_WHEN, condition, "required_when")

    def _set_rule(self, mode: RuleMode, condition: Any, method: str) -> Self:
        descriptor = self._open(method)
        rule = VisibilityRule(mode=mode, condition=parse_condition(condition))
        if descriptor.id in rule.references():
            raise ConditionCycleError([descriptor.id, descriptor.id])
        descriptor.visibility = rule
        return self


# ---------------------------------------------------------------------------
# Repeater
# ---------------------------------------------------------------------------


class RepeaterBuilder:
    """Intermediate builder that expands a choice catalog into fields."""

    def __init__(
        self,
        form_builder: FormBuilder,
        field_id: str,
        choices: Mapping[Any, Any],
        persisted: Any = None,
    ) -> None:
        if not field_id:
            msg = "Repeater field id cannot be empty"
            raise BuilderMisuseError(msg)
        self._form = form_builder
        self._field_id = field_id
        self._choices = normalize_choices(choices)
        self._persisted = persisted
        self._default: str | None = None
        self._group_layout: str | None = None

    def default(self, key: str) -> Self:
        """Key checked when nothing has been persisted yet."""
        self._default = str(key)
        return self

    def group(self, layout: str = "horizontal") -> Self:
        """Render choices inline; forces the form onto the div layout."""
        self._group_layout = layout if layout in REPEATER_GROUP_LAYOUTS else "horizontal"
        self._form.div()
        return self

    def switch(self) -> FormBuilder:
        return self._create(RepeaterKind.SWITCH)

    def checkbox(self) -> FormBuilder:
        return self._create(RepeaterKind.CHECKBOX)

    def radio(self) -> FormBuilder:
        return self._create(RepeaterKind.RADIO)

    def select(self) -> FormBuilder:
        return self._create(RepeaterKind.SELECT)

    def _create(self, kind: RepeaterKind) -> FormBuilder:
        spec = RepeaterSpec(
            base_field_id=self._field_id,
            choices=self._choices,
            persisted_keys=self._persisted,
            default_key=self._default,
            rendered_as=kind,
        )
        if spec.single_choice:
            field = self._form.add_field(spec.base_field_id, kind, "")
            field.options(spec.choices).default(selected_key(spec))
            field.attribute("repeater", spec.base_field_id)
        else:
            for key, checked in render_set(spec).items():
                field = self._form.add_field(spec.field_name(key), kind, spec.choices[key])
                field.default(checked).attribute("repeater", spec.base_field_id)
                if self._group_layout is not None:
                    field.css_class("repeater-grouped")
                    field.css_class(f"repeater-{self._group_layout}")
        self._form.config.add_repeater(spec)
        self._form._close_field()
        logger.debug(
            "Repeater %s expanded as %s (%d choices)", spec.base_field_id, kind, len(spec.choices)
        )
        return self._form


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def create_form(
    form_id: str,
    initial_config: FormConfiguration | Mapping[str, Any] | None = None,
    *,
    registry: FieldRegistry | None = None,
) -> FormBuilder:
    """Start a builder chain for a new form.

    *initial_config* may be a :class:`FormConfiguration` or a mapping of
    its keys (``layout``, ``method``, ``messages``, ``persistence``, ...).
    """
    if isinstance(initial_config, FormConfiguration):
        config = initial_config
    else:
        raw = dict(initial_config or {})
        if "messages" in raw and isinstance(raw["messages"], Mapping):
            raw["messages"] = Messages(**raw["messages"])
        raw["form_id"] = form_id
        config = FormConfiguration.model_validate(raw)
    return FormBuilder(config, registry)
