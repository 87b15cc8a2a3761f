"""Layout types shared across the oracle, the passes and the pipeline."""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any

from sankey_layout.errors import InvalidLayoutOptionError
from sankey_layout.graph import LegendDatum, Link, Node

# ─── Defaults ─────────────────────────────────────────────────────────────────

DEFAULT_WIDTH: float = 800
DEFAULT_HEIGHT: float = 600
DEFAULT_NODE_THICKNESS: float = 12
DEFAULT_NODE_SPACING: float = 12
DEFAULT_SPACING_INCREASE: float = 0
DEFAULT_NODE_INNER_PADDING: float = 0
DEFAULT_ITERATIONS: int = 6
DEFAULT_ALIGN = "center"
DEFAULT_SORT = "auto"
DEFAULT_COLORS = "nivo"
DEFAULT_LABEL = "id"

ALIGNMENTS = ("center", "justify", "start", "end", "left", "right")
SORT_MODES = ("auto", "input", "ascending", "descending")


class Orientation(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


# ─── Sort Policies ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AutomaticSort:
    """Nodes (or links) are reordered by position while the layout relaxes."""


@dataclass(frozen=True)
class InputOrderSort:
    """Input order is kept as is."""


@dataclass(frozen=True)
class CustomSort:
    """Order fixed once by ``comparator(a, b)`` (negative: ``a`` first)."""

    comparator: Callable[[Any, Any], float]


SortPolicy = AutomaticSort | InputOrderSort | CustomSort


def _ascending(a: Node, b: Node) -> float:
    return a.value - b.value


def _descending(a: Node, b: Node) -> float:
    return b.value - a.value


def sort_from_prop(sort: str | Callable[[Node, Node], float] | SortPolicy) -> SortPolicy:
    """Translate a ``sort`` option into a node sort policy."""
    if isinstance(sort, (AutomaticSort, InputOrderSort, CustomSort)):
        return sort
    if callable(sort):
        return CustomSort(sort)
    if sort == "auto":
        return AutomaticSort()
    if sort == "input":
        return InputOrderSort()
    if sort == "ascending":
        return CustomSort(_ascending)
    if sort == "descending":
        return CustomSort(_descending)
    raise InvalidLayoutOptionError(f"unknown sort mode: {sort!r} (expected one of {', '.join(SORT_MODES)})")


def link_sort_for(node_sort: SortPolicy) -> SortPolicy:
    """Link ordering that goes with a node sort: input order follows input order."""
    if isinstance(node_sort, InputOrderSort):
        return InputOrderSort()
    return AutomaticSort()


# ─── Options ──────────────────────────────────────────────────────────────────

_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def _non_negative(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
        raise InvalidLayoutOptionError(f"{name} must be a finite non-negative number, got {value!r}")
    return value


@dataclass
class SankeyOptions:
    """Layout parameters.

    ``align`` is a named alignment or a callable ``(node, layer_count, link_index)``
    returning a layer index. ``sort`` is ``auto``, ``input``, ``ascending``,
    ``descending``, a node comparator or a ``SortPolicy``. ``link_sort``
    overrides the link ordering derived from ``sort``.

    ``colors``, ``label`` and ``value_format`` configure the default enrichment
    strategies when the caller does not inject its own.
    """

    orientation: Orientation | str = Orientation.HORIZONTAL
    align: str | Callable[..., float] = DEFAULT_ALIGN
    sort: Any = DEFAULT_SORT
    link_sort: SortPolicy | Callable[[Link, Link], float] | None = None
    node_thickness: float = DEFAULT_NODE_THICKNESS
    node_spacing: float = DEFAULT_NODE_SPACING
    spacing_increase: float = DEFAULT_SPACING_INCREASE
    node_inner_padding: float = DEFAULT_NODE_INNER_PADDING
    width: float = DEFAULT_WIDTH
    height: float = DEFAULT_HEIGHT
    iterations: int = DEFAULT_ITERATIONS
    colors: Any = DEFAULT_COLORS
    label: str | Callable[[Node], str] = DEFAULT_LABEL
    value_format: str | Callable[[float], str] | None = None

    def __post_init__(self) -> None:
        from sankey_layout.layout.oracle import alignment_from_prop

        try:
            self.orientation = Orientation(self.orientation)
        except ValueError:
            raise InvalidLayoutOptionError(
                f"unknown orientation: {self.orientation!r} (expected horizontal or vertical)"
            ) from None
        # Fail early on bad alignments and sort modes; the oracle resolves both again.
        alignment_from_prop(self.align)
        sort_from_prop(self.sort)
        for name in ("node_thickness", "node_spacing", "spacing_increase", "node_inner_padding", "width", "height"):
            _non_negative(name, getattr(self, name))
        if isinstance(self.iterations, bool) or not isinstance(self.iterations, int) or self.iterations < 0:
            raise InvalidLayoutOptionError(f"iterations must be a non-negative integer, got {self.iterations!r}")

    @property
    def node_sort(self) -> SortPolicy:
        return sort_from_prop(self.sort)

    @property
    def link_sort_policy(self) -> SortPolicy:
        if self.link_sort is None:
            return link_sort_for(self.node_sort)
        if isinstance(self.link_sort, (AutomaticSort, InputOrderSort, CustomSort)):
            return self.link_sort
        return CustomSort(self.link_sort)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> SankeyOptions:
        """Build options from a mapping with camelCase or snake_case keys."""
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in raw.items():
            name = _CAMEL.sub("_", key).lower()
            if name == "layout":
                name = "orientation"
            if name not in known:
                raise InvalidLayoutOptionError(f"unknown layout option: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)


# ─── Result ───────────────────────────────────────────────────────────────────


@dataclass
class SankeyLayout:
    """Finalised layout. Consumers read it; they must not mutate it."""

    nodes: list[Node]
    links: list[Link]
    legend_data: list[LegendDatum]
    orientation: Orientation = Orientation.HORIZONTAL
    layer_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable view of the layout."""
        return {
            "orientation": self.orientation.value,
            "layer_count": self.layer_count,
            "nodes": [
                {
                    "id": n.id,
                    "label": n.label,
                    "color": n.color,
                    "value": n.value,
                    "formatted_value": n.formatted_value,
                    "layer": n.layer,
                    "depth": n.depth,
                    "x0": n.x0,
                    "x1": n.x1,
                    "y0": n.y0,
                    "y1": n.y1,
                    "gap": n.gap,
                    "x": n.x,
                    "y": n.y,
                    "width": n.width,
                    "height": n.height,
                    "data": n.data,
                }
                for n in self.nodes
            ],
            "links": [
                {
                    "source": lk.source,
                    "target": lk.target,
                    "value": lk.value,
                    "formatted_value": lk.formatted_value,
                    "color": lk.color,
                    "thickness": lk.thickness,
                    "pos0": lk.pos0,
                    "pos1": lk.pos1,
                    "data": lk.data,
                }
                for lk in self.links
            ],
            "legend": [{"id": d.id, "label": d.label, "color": d.color} for d in self.legend_data],
        }
