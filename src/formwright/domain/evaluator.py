"""Conditional evaluator — per-field visibility and requiredness verdicts.

Field references form a directed graph (``owner -> referenced``). The
graph is built with NetworkX and checked for cycles before any rule is
evaluated: a cycle is a configuration error, never partially evaluated.

Verdicts depend on live data, so they are memoized only for the lifetime
of one :class:`VerdictCache`, which a Form owns for a single request.

A referenced field's *value* counts even when that field is hidden
itself: visibility is data-driven, not visibility-of-dependency-driven.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

import networkx as nx

from formwright.domain.conditions import RuleMode
from formwright.errors import ConditionCycleError

if TYPE_CHECKING:
    from formwright.domain.configuration import FormConfiguration
    from formwright.domain.fields import FieldDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Verdict:
    """Evaluation result for one field in one pass."""

    visible: bool
    required: bool

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Dependency graph
# ---------------------------------------------------------------------------


def build_dependency_graph(fields: Iterable[FieldDescriptor]) -> nx.DiGraph:
    """Directed graph with an edge ``owner -> referenced`` per rule reference."""
    g: nx.DiGraph = nx.DiGraph()
    for descriptor in fields:
        g.add_node(descriptor.id)
        if descriptor.visibility is None:
            continue
        for ref in descriptor.visibility.references():
            g.add_edge(descriptor.id, ref)
    return g


def check_cycles(fields: Iterable[FieldDescriptor]) -> None:
    """Raise :class:`ConditionCycleError` if field rules reference each other in a loop."""
    g = build_dependency_graph(fields)
    try:
        cycle = nx.find_cycle(g)
    except nx.NetworkXNoCycle:
        return
    ids = [edge[0] for edge in cycle]
    ids.append(cycle[-1][1])
    raise ConditionCycleError(ids)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


def data_fingerprint(data: Mapping[str, Any]) -> str:
    """Stable hash of candidate data for cache keys."""
    raw = json.dumps(data, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@dataclass
class VerdictCache:
    """Request-scoped memo of verdict maps.

    Keyed by ``(form_id, submitter, data fingerprint)``. A new request must
    build a new cache; verdicts never outlive one submission/render pass.
    """

    _entries: dict[tuple[str, str, str], dict[str, Verdict]] = field(default_factory=dict)
    hits: int = 0
    misses: int = 0

    def get(self, key: tuple[str, str, str]) -> dict[str, Verdict] | None:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
        else:
            self.hits += 1
        return entry

    def put(self, key: tuple[str, str, str], verdicts: dict[str, Verdict]) -> None:
        self._entries[key] = verdicts

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class ConditionalEvaluator:
    """Compute ``field_id -> Verdict`` for a configuration and candidate data."""

    def __init__(
        self,
        config: FormConfiguration,
        *,
        cache: VerdictCache | None = None,
    ) -> None:
        self._config = config
        self._cache = cache if cache is not None else VerdictCache()

    @property
    def cache(self) -> VerdictCache:
        return self._cache

    def evaluate(
        self,
        data: Mapping[str, Any],
        *,
        submitter: str | None = None,
    ) -> dict[str, Verdict]:
        """Evaluate every field of the configuration against *data*.

        Raises:
            ConditionCycleError: If field rules reference each other in a loop.
        """
        key = (self._config.form_id, submitter or "", data_fingerprint(data))
        cached = self._cache.get(key)
        if cached is not None:
            return dict(cached)

        fields = list(self._config.fields.values())
        check_cycles(fields)

        verdicts = {descriptor.id: self._verdict_for(descriptor, data) for descriptor in fields}
        self._cache.put(key, verdicts)
        logger.debug(
            "Evaluated %d verdicts for %s (%d hidden)",
            len(verdicts),
            self._config.form_id,
            sum(1 for v in verdicts.values() if not v.visible),
        )
        return dict(verdicts)

    def is_visible(self, field_id: str, data: Mapping[str, Any]) -> bool:
        verdict = self.evaluate(data).get(field_id)
        return verdict.visible if verdict is not None else False

    def is_required(self, field_id: str, data: Mapping[str, Any]) -> bool:
        verdict = self.evaluate(data).get(field_id)
        return verdict.required if verdict is not None else False

    def visible_fields(self, data: Mapping[str, Any]) -> list[str]:
        return [fid for fid, verdict in self.evaluate(data).items() if verdict.visible]

    def conditional_fields(self) -> list[str]:
        """Ids of fields that carry a visibility rule."""
        return [fid for fid, d in self._config.fields.items() if d.visibility is not None]

    @staticmethod
    def _verdict_for(descriptor: FieldDescriptor, data: Mapping[str, Any]) -> Verdict:
        rule = descriptor.visibility
        if rule is None:
            return Verdict(visible=True, required=descriptor.required)

        holds = rule.condition.evaluate(data)
        match rule.mode:
            case RuleMode.SHOW_WHEN:
                visible, required = holds, descriptor.required
            case RuleMode.HIDE_WHEN:
                visible, required = not holds, descriptor.required
            case RuleMode.REQUIRED_WHEN:
                visible, required = True, holds
            case _:
                visible, required = True, descriptor.required
        return Verdict(visible=visible, required=required and visible)
