"""DefinitionService — build forms from YAML definition files.

A definition mirrors the builder chain::

    form_id: integrations
    layout: table
    persistence: {backend: options, prefix: "acme_"}
    messages: {success: "Saved.", error: "Could not save."}
    fields:
      - {id: provider, type: select, options: {rest: REST, soap: SOAP}}
      - id: endpoint
        type: url
        required: true
        show_when: {field: provider, operator: equals, value: rest}
      - id: post_types
        type: repeater
        choices: {post: Posts, page: Pages}
        default: post
        as: switch

Every entry is replayed through :func:`create_form`, so definition files
hit exactly the same misuse and cycle checks as code.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from formwright.builder import FieldBuilder, FormBuilder, create_form
from formwright.domain.conditions import RuleMode, parse_rule
from formwright.domain.repeater import RepeaterKind
from formwright.errors import FormwrightError
from formwright.services.contracts import CheckResultData, dump_validated
from formwright.services.result import ServiceResult, failure

if TYPE_CHECKING:
    from formwright.config.models import FormsConfig
    from formwright.domain.configuration import FormConfiguration
    from formwright.domain.fields import FieldRegistry

logger = logging.getLogger(__name__)

_FORM_KEYS = ("layout", "method", "description")
_SCALAR_FIELD_KEYS = ("description", "placeholder", "default")


class DefinitionError(FormwrightError):
    """A definition file could not be read or has an invalid shape."""


def read_definition(path: Path) -> dict[str, Any]:
    """Parse a YAML definition into plain Python data."""
    try:
        raw = YAML(typ="safe").load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeError, YAMLError) as exc:
        msg = f"Cannot read form definition {path}: {exc}"
        raise DefinitionError(msg) from exc
    if not isinstance(raw, Mapping) or not raw.get("form_id"):
        msg = f"Form definition {path} must be a mapping with a 'form_id'"
        raise DefinitionError(msg)
    return dict(raw)


def build_from_definition(
    definition: Mapping[str, Any],
    *,
    registry: FieldRegistry | None = None,
    defaults: FormsConfig | None = None,
) -> FormConfiguration:
    """Replay a parsed definition through the builder and return the configuration."""
    initial: dict[str, Any] = {}
    if defaults is not None:
        initial = {
            "layout": defaults.default_layout,
            "method": defaults.default_method,
            "messages": {"success": defaults.success_message, "error": defaults.error_message},
            "submit": {"label": defaults.submit_label},
        }
    builder = create_form(str(definition["form_id"]), initial, registry=registry)

    for key in _FORM_KEYS:
        if definition.get(key):
            getattr(builder, key)(definition[key])

    persistence = definition.get("persistence")
    if isinstance(persistence, Mapping):
        options = dict(persistence)
        builder.persist_to(options.pop("backend", "options"), **options)

    messages = definition.get("messages") or {}
    if messages.get("success"):
        builder.success(messages["success"])
    if messages.get("error"):
        builder.error(messages["error"])
    submit = definition.get("submit")
    if isinstance(submit, Mapping):
        builder.submit(**submit)

    for entry in definition.get("fields") or []:
        if not isinstance(entry, Mapping) or not entry.get("id"):
            msg = f"Field entries need an 'id': {entry!r}"
            raise DefinitionError(msg)
        if entry.get("type") == "repeater":
            _add_repeater(builder, entry)
        else:
            _add_field(builder, entry)

    return builder.build()


def _add_field(builder: FormBuilder, entry: Mapping[str, Any]) -> None:
    field = builder.add_field(str(entry["id"]), entry.get("type", "text"), entry.get("label", ""))
    if entry.get("required"):
        field.required()
    for key in _SCALAR_FIELD_KEYS:
        if key in entry:
            getattr(field, key)(entry[key])
    if entry.get("options"):
        field.options(entry["options"])
    if entry.get("attributes"):
        field.attributes(entry["attributes"])
    for rule in entry.get("rules") or []:
        if not isinstance(rule, Mapping) or not rule.get("name"):
            msg = f"Rules on {entry['id']!r} need a 'name': {rule!r}"
            raise DefinitionError(msg)
        field.validation(rule["name"], rule.get("args"), rule.get("message"))
    _apply_visibility(field, entry)


def _apply_visibility(field: FieldBuilder, entry: Mapping[str, Any]) -> None:
    for mode in RuleMode:
        if mode.value in entry:
            getattr(field, mode.value)(entry[mode.value])
            return
    if isinstance(entry.get("visibility"), Mapping):
        rule = parse_rule(entry["visibility"])
        getattr(field, rule.mode.value)(rule.condition)


def _add_repeater(builder: FormBuilder, entry: Mapping[str, Any]) -> None:
    choices = entry.get("choices") or {}
    repeater = builder.repeater(str(entry["id"]), choices, entry.get("persisted"))
    if entry.get("default") is not None:
        repeater.default(entry["default"])
    if entry.get("group"):
        repeater.group(entry["group"])
    kind = RepeaterKind(entry.get("as", RepeaterKind.CHECKBOX))
    getattr(repeater, kind.value)()


class DefinitionService:
    """Load and check YAML form definitions."""

    def __init__(
        self,
        *,
        registry: FieldRegistry | None = None,
        defaults: FormsConfig | None = None,
    ) -> None:
        self._registry = registry
        self._defaults = defaults

    def load(self, path: Path) -> FormConfiguration:
        """Read and build *path*; errors propagate."""
        definition = read_definition(path)
        return build_from_definition(definition, registry=self._registry, defaults=self._defaults)

    def check(self, path: Path) -> ServiceResult:
        """Build *path* and report what it declares, or why it is broken."""
        op = "check"
        try:
            config = self.load(path)
        except DefinitionError as exc:
            return failure(op, "INVALID_DEFINITION", str(exc))
        except FormwrightError as exc:
            logger.debug("Definition %s failed to build", path, exc_info=True)
            return failure(
                op, "BUILD_FAILED", str(exc), detail={"error_type": type(exc).__name__}
            )
        except (ValueError, TypeError) as exc:
            return failure(op, "INVALID_DEFINITION", str(exc))

        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                CheckResultData,
                {
                    "form_id": config.form_id,
                    "field_count": len(config.fields),
                    "conditional_fields": [
                        fid for fid, d in config.fields.items() if d.visibility is not None
                    ],
                    "repeaters": list(config.repeaters),
                    "persistence": str(config.persistence.backend),
                },
            ),
        )
