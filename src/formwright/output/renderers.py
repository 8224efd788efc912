"""Rich renderers for check, evaluate and submit results.

:func:`render_result` picks a renderer by ``result.op``; failures share
one error layout, and ops without a renderer print their data as
key-value lines.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from formwright.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from formwright.services.result import ServiceResult

OpRenderer = Callable[["ServiceResult", "Console"], None]


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render *result* to text; *verbose* adds meta and error detail."""
    console = create_console()
    if not result.ok:
        _render_error(result, console, verbose=verbose)
    else:
        console.print(Text("OK", style="fw.ok"), Text(f"  {result.op}", style="fw.op"))
        _OP_RENDERERS.get(result.op, _render_data)(result, console)
        if verbose and result.meta:
            console.print()
            console.print(Text("  meta:", style="dim"))
            for key, value in result.meta.items():
                console.print(f"    {key}: {value}")
    return get_output(console).rstrip("\n")


def _line(console: Console, key: str, value: Any) -> None:
    if isinstance(value, (dict, list)):
        shown = Text(json.dumps(value, separators=(",", ":"), default=str))
    else:
        shown = Text(str(value), style="fw.id" if key == "form_id" else "")
    console.print(Text(f"  {key}: ", style="fw.key"), shown)


def _joined(console: Console, key: str, values: list[str] | None) -> None:
    if values:
        _line(console, key, ", ".join(values))


def _render_error(result: ServiceResult, console: Console, *, verbose: bool) -> None:
    err = result.error
    code = f" [{err.code}]" if err else ""
    console.print(
        Text("ERROR", style="fw.error"),
        Text(f"  {result.op}{code}", style="fw.op"),
        " - ",
        err.message if err else "Unknown error",
    )
    if err is None:
        return
    for field_id, message in (err.detail.get("errors") or {}).items():
        console.print(f"  [fw.error]{field_id}[/fw.error]: {message}")
    if verbose and err.detail:
        console.print(Text("  detail:", style="dim"))
        for key, value in err.detail.items():
            console.print(f"    {key}: {value}")


def _render_check(result: ServiceResult, console: Console) -> None:
    for key in ("form_id", "field_count", "persistence"):
        _line(console, key, result.data[key])
    _joined(console, "conditional_fields", result.data.get("conditional_fields"))
    _joined(console, "repeaters", result.data.get("repeaters"))


def _render_evaluate(result: ServiceResult, console: Console) -> None:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Field", style="fw.id")
    table.add_column("Visible")
    table.add_column("Required")
    for field_id, verdict in result.data.get("verdicts", {}).items():
        table.add_row(
            field_id,
            "yes" if verdict["visible"] else "[fw.hidden]no[/fw.hidden]",
            "[fw.required]yes[/fw.required]" if verdict["required"] else "no",
        )
    console.print(table)


def _render_submit(result: ServiceResult, console: Console) -> None:
    for key in ("form_id", "state", "message"):
        if key in result.data:
            _line(console, key, result.data[key])
    _joined(console, "saved", result.data.get("saved"))
    if result.data.get("submitted") is False:
        _line(console, "submitted", "no (request did not target this form)")


def _render_data(result: ServiceResult, console: Console) -> None:
    for key, value in result.data.items():
        _line(console, key, value)


_OP_RENDERERS: dict[str, OpRenderer] = {
    "check": _render_check,
    "evaluate": _render_evaluate,
    "submit": _render_submit,
}
