"""Working graph for the layout pipeline, and the normaliser that builds it.

The caller's data is never touched: ``normalize_graph`` reads it and builds a
fresh ``SankeyGraph`` that every pass is free to mutate in place. Links hold
node ids, not node objects; use ``SankeyGraph.node`` to resolve them.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from sankey_layout.errors import DuplicateNodeIdError, InvalidGraphError, UnknownNodeReferenceError

logger = logging.getLogger(__name__)

# Input keys consumed by the normaliser; everything else lands in ``data``.
_NODE_KEYS = ("id", "fixedValue", "fixed_value")
_LINK_KEYS = ("source", "target", "value", "color")


@dataclass
class Node:
    """A node of the working graph.

    ``x0/y0/x1/y1`` start as the layering oracle's box (depth axis along x,
    cross axis along y) and are expressed in the pixel frame once projected.
    ``x/y/width/height`` are the final geometry.
    """

    id: str
    index: int = 0
    value: float = 0.0
    fixed_value: float | None = None
    depth: int = 0
    height_rank: int = 0
    layer: int = 0
    x0: float = 0.0
    y0: float = 0.0
    x1: float = 0.0
    y1: float = 0.0
    gap: float = 0.0
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    color: str | None = None
    label: str | None = None
    formatted_value: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class LinkBand:
    """Band placement produced by the layering oracle (centre offsets + width)."""

    y0: float = 0.0
    y1: float = 0.0
    width: float = 0.0


@dataclass
class Link:
    """A weighted link between two nodes, referenced by id."""

    source: str
    target: str
    value: float
    index: int = 0
    thickness: float = 0.0
    pos0: float = 0.0
    pos1: float = 0.0
    color: str | None = None
    formatted_value: str | None = None
    band: LinkBand | None = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class LegendDatum:
    """Legend-facing projection of a node."""

    id: str
    label: str | None
    color: str | None


@dataclass
class SankeyGraph:
    """The ``{nodes, links}`` pair every pass works on."""

    nodes: list[Node] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._by_id: dict[str, Node] = {n.id: n for n in self.nodes}

    def node(self, node_id: str) -> Node:
        return self._by_id[node_id]

    def source_links(self, node_id: str) -> list[Link]:
        """Links leaving ``node_id``, in input order."""
        return [lk for lk in self.links if lk.source == node_id]

    def target_links(self, node_id: str) -> list[Link]:
        """Links entering ``node_id``, in input order."""
        return [lk for lk in self.links if lk.target == node_id]

    def layers(self) -> dict[int, list[Node]]:
        """Group nodes by layer, layers ascending, nodes in input order."""
        grouped: dict[int, list[Node]] = {}
        for node in sorted(self.nodes, key=lambda n: n.layer):
            grouped.setdefault(node.layer, []).append(node)
        return grouped

    @property
    def max_layer(self) -> int:
        return max((n.layer for n in self.nodes), default=0)


# ─── Normalisation ────────────────────────────────────────────────────────────


def _fields(item: Any) -> dict[str, Any]:
    """Read an input record (mapping, dataclass or plain object) as a dict."""
    if isinstance(item, Mapping):
        return dict(item)
    if dataclasses.is_dataclass(item) and not isinstance(item, type):
        return {f.name: getattr(item, f.name) for f in dataclasses.fields(item)}
    if hasattr(item, "__dict__"):
        return dict(vars(item))
    raise InvalidGraphError(f"unsupported record type: {type(item).__name__}")


def _section(data: Any, name: str) -> list[Any]:
    if isinstance(data, Mapping):
        items = data.get(name, [])
    else:
        items = getattr(data, name, [])
    if items is None:
        return []
    return list(items)


def _number(raw: Any, what: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float, Decimal)):
        raise InvalidGraphError(f"{what} must be a number, got {raw!r}")
    value = float(raw)
    if not math.isfinite(value) or value < 0:
        raise InvalidGraphError(f"{what} must be a finite non-negative number, got {raw!r}")
    return value


def _endpoint(raw: Any) -> str:
    # Links may name endpoints by id or carry a node record with an ``id``.
    if isinstance(raw, Mapping):
        return str(raw.get("id"))
    if hasattr(raw, "id"):
        return str(raw.id)
    return str(raw)


def normalize_graph(data: Any) -> SankeyGraph:
    """Build an owned working graph from caller data.

    ``data`` is a mapping (or object) with ``nodes`` and ``links``. Nodes need
    an ``id``; links need ``source``, ``target`` and ``value``. Extra fields
    are deep-copied into ``Node.data`` / ``Link.data``.

    Raises:
        DuplicateNodeIdError: two nodes share an id.
        UnknownNodeReferenceError: a link names an id absent from ``nodes``.
        InvalidGraphError: a node has no id or a link value is not a
            non-negative number.
    """
    nodes: list[Node] = []
    seen: set[str] = set()
    for index, raw_node in enumerate(_section(data, "nodes")):
        fields = _fields(raw_node)
        if fields.get("id") is None:
            raise InvalidGraphError(f"node {index} has no id")
        node_id = str(fields["id"])
        if node_id in seen:
            raise DuplicateNodeIdError(node_id)
        seen.add(node_id)

        fixed = fields.get("fixedValue", fields.get("fixed_value"))
        nodes.append(
            Node(
                id=node_id,
                index=index,
                fixed_value=None if fixed is None else _number(fixed, f"node {node_id!r} fixed value"),
                data=copy.deepcopy({k: v for k, v in fields.items() if k not in _NODE_KEYS}),
            )
        )

    links: list[Link] = []
    for index, raw_link in enumerate(_section(data, "links")):
        fields = _fields(raw_link)
        for key in ("source", "target"):
            if fields.get(key) is None:
                raise InvalidGraphError(f"link {index} has no {key}")
        source = _endpoint(fields["source"])
        target = _endpoint(fields["target"])
        if source not in seen:
            raise UnknownNodeReferenceError(source, index, "source")
        if target not in seen:
            raise UnknownNodeReferenceError(target, index, "target")
        if "value" not in fields:
            raise InvalidGraphError(f"link {index} has no value")

        links.append(
            Link(
                source=source,
                target=target,
                value=_number(fields["value"], f"link {index} value"),
                index=index,
                color=fields.get("color"),
                data=copy.deepcopy({k: v for k, v in fields.items() if k not in _LINK_KEYS}),
            )
        )

    logger.debug("normalized graph: %d nodes, %d links", len(nodes), len(links))
    return SankeyGraph(nodes=nodes, links=links)
