"""Base layering — assigns every node a layer and a provisional box.

Phases:
  1. Cycle check       (networkx; layering is only defined on a DAG)
  2. Node values       (max of inflow and outflow, or the fixed value)
  3. Depth / height    (longest path from a source / to a sink)
  4. Layer assignment  (alignment policy, clamped to the layer range)
  5. Breadths          (value-proportional extents, iterative relaxation)
  6. Link bands        (band centres stacked along each node)

The depth axis runs along x and the cross axis along y; the orientation
projector maps them onto pixels afterwards.
"""

from __future__ import annotations

import functools
import logging
import math
from collections.abc import Callable

import networkx as nx

from sankey_layout.errors import CyclicGraphError, InvalidLayoutOptionError
from sankey_layout.graph import Link, LinkBand, Node, SankeyGraph
from sankey_layout.layout.types import (
    AutomaticSort,
    CustomSort,
    Orientation,
    SankeyOptions,
    SortPolicy,
)

logger = logging.getLogger(__name__)

# Collision shifts below this are ignored.
_EPSILON: float = 1e-6


class LinkIndex:
    """Per-node outgoing/incoming link lists, in the order bands are stacked."""

    def __init__(self, graph: SankeyGraph, link_sort: SortPolicy) -> None:
        self.graph = graph
        self.outgoing: dict[str, list[Link]] = {n.id: [] for n in graph.nodes}
        self.incoming: dict[str, list[Link]] = {n.id: [] for n in graph.nodes}
        for link in graph.links:
            self.outgoing[link.source].append(link)
            self.incoming[link.target].append(link)

        if isinstance(link_sort, CustomSort):
            key = functools.cmp_to_key(link_sort.comparator)
            for links in (*self.outgoing.values(), *self.incoming.values()):
                links.sort(key=key)

    def node(self, node_id: str) -> Node:
        return self.graph.node(node_id)


# ─── Cycle Check ──────────────────────────────────────────────────────────────


def build_digraph(graph: SankeyGraph) -> nx.MultiDiGraph:
    """Build the networkx view of the graph (parallel links kept)."""
    g: nx.MultiDiGraph = nx.MultiDiGraph()
    for node in graph.nodes:
        g.add_node(node.id)
    for link in graph.links:
        g.add_edge(link.source, link.target, key=link.index)
    return g


def check_acyclic(digraph: nx.MultiDiGraph) -> None:
    """Raise ``CyclicGraphError`` naming one cycle if ``digraph`` has any."""
    if nx.is_directed_acyclic_graph(digraph):
        return
    try:
        cycle = nx.find_cycle(digraph)
    except nx.NetworkXNoCycle:
        cycle = []
    raise CyclicGraphError([(edge[0], edge[1]) for edge in cycle])


# ─── Values, Depths, Heights ──────────────────────────────────────────────────


def compute_node_values(graph: SankeyGraph, index: LinkIndex) -> None:
    for node in graph.nodes:
        if node.fixed_value is not None:
            node.value = node.fixed_value
            continue
        outflow = sum(lk.value for lk in index.outgoing[node.id])
        inflow = sum(lk.value for lk in index.incoming[node.id])
        node.value = max(outflow, inflow)


def compute_depths(graph: SankeyGraph) -> None:
    """Assign ``depth`` (longest path from a source) and ``height_rank``.

    Fixed-point iteration: for each link u→v, depth[v] = max(depth[v],
    depth[u] + 1), and symmetrically for heights. Terminates because the graph
    has already been checked for cycles.
    """
    depth: dict[str, int] = {n.id: 0 for n in graph.nodes}
    height: dict[str, int] = {n.id: 0 for n in graph.nodes}

    changed = True
    while changed:
        changed = False
        for link in graph.links:
            if depth[link.target] < depth[link.source] + 1:
                depth[link.target] = depth[link.source] + 1
                changed = True
            if height[link.source] < height[link.target] + 1:
                height[link.source] = height[link.target] + 1
                changed = True

    for node in graph.nodes:
        node.depth = depth[node.id]
        node.height_rank = height[node.id]


# ─── Alignment ────────────────────────────────────────────────────────────────

AlignFunction = Callable[[Node, int, LinkIndex], float]


def align_left(node: Node, layer_count: int, index: LinkIndex) -> float:
    return node.depth


def align_right(node: Node, layer_count: int, index: LinkIndex) -> float:
    return layer_count - 1 - node.height_rank


def align_justify(node: Node, layer_count: int, index: LinkIndex) -> float:
    """Like ``align_left``, but sinks move to the last layer."""
    return node.depth if index.outgoing[node.id] else layer_count - 1


def align_center(node: Node, layer_count: int, index: LinkIndex) -> float:
    """Like ``align_left``, but sources sit right before their nearest target."""
    if index.incoming[node.id]:
        return node.depth
    outgoing = index.outgoing[node.id]
    if outgoing:
        return min(index.node(lk.target).depth for lk in outgoing) - 1
    return 0


_ALIGNMENTS: dict[str, AlignFunction] = {
    "center": align_center,
    "justify": align_justify,
    "start": align_left,
    "left": align_left,
    "end": align_right,
    "right": align_right,
}


def alignment_from_prop(align: str | AlignFunction) -> AlignFunction:
    if callable(align):
        return align
    try:
        return _ALIGNMENTS[align]
    except KeyError:
        raise InvalidLayoutOptionError(
            f"unknown alignment: {align!r} (expected one of {', '.join(_ALIGNMENTS)})"
        ) from None


# ─── Layering Oracle ──────────────────────────────────────────────────────────


def _by_breadth(node: Node) -> float:
    return node.y0


class LayeringOracle:
    """Longest-path layering with value-proportional node and band sizes.

    ``run`` annotates the graph in place: nodes get ``value``, ``depth``,
    ``height_rank``, ``layer`` and ``x0/x1/y0/y1``; links get a ``band``.
    Returns the columns (nodes per layer, in cross-axis order).
    """

    def __init__(self, options: SankeyOptions) -> None:
        self.align = alignment_from_prop(options.align)
        self.sort = options.node_sort
        self.link_sort = options.link_sort_policy
        self.node_thickness = options.node_thickness
        self.node_spacing = options.node_spacing
        self.iterations = options.iterations
        if options.orientation is Orientation.HORIZONTAL:
            self.depth_extent, self.cross_extent = options.width, options.height
        else:
            self.depth_extent, self.cross_extent = options.height, options.width
        self.padding = self.node_spacing

    def run(self, graph: SankeyGraph) -> list[list[Node]]:
        check_acyclic(build_digraph(graph))

        index = LinkIndex(graph, self.link_sort)
        for link in graph.links:
            link.band = LinkBand()
        if not graph.nodes:
            return []

        compute_node_values(graph, index)
        compute_depths(graph)
        columns = self._compute_layers(graph, index)

        self.padding = self.node_spacing
        max_count = max(len(c) for c in columns)
        if max_count > 1:
            self.padding = min(self.node_spacing, self.cross_extent / (max_count - 1))

        self._initialize_breadths(columns, index)
        for i in range(self.iterations):
            alpha = 0.99**i
            beta = max(1 - alpha, (i + 1) / self.iterations)
            self._relax_right_to_left(columns, index, alpha, beta)
            self._relax_left_to_right(columns, index, alpha, beta)
        self._compute_link_breadths(graph, index)

        for node in graph.nodes:
            node.y = node.y0
        logger.debug(
            "layered %d nodes into %d layers (padding=%.3f)", len(graph.nodes), len(columns), self.padding
        )
        return columns

    # ── Layers ──

    def _compute_layers(self, graph: SankeyGraph, index: LinkIndex) -> list[list[Node]]:
        layer_count = max(n.depth for n in graph.nodes) + 1
        kx = (self.depth_extent - self.node_thickness) / (layer_count - 1) if layer_count > 1 else 0.0

        columns: list[list[Node]] = [[] for _ in range(layer_count)]
        for node in graph.nodes:
            i = max(0, min(layer_count - 1, math.floor(self.align(node, layer_count, index))))
            node.layer = i
            node.x0 = i * kx
            node.x1 = node.x0 + self.node_thickness
            columns[i].append(node)

        if isinstance(self.sort, CustomSort):
            key = functools.cmp_to_key(self.sort.comparator)
            for column in columns:
                column.sort(key=key)
        return columns

    # ── Breadths ──

    def _initialize_breadths(self, columns: list[list[Node]], index: LinkIndex) -> None:
        py = self.padding
        scales = [
            (self.cross_extent - (len(c) - 1) * py) / total
            for c in columns
            if (total := sum(n.value for n in c)) > 0
        ]
        ky = max(min(scales), 0.0) if scales else 0.0

        for column in columns:
            y = 0.0
            for node in column:
                node.y0 = y
                node.y1 = y + node.value * ky
                y = node.y1 + py
                for link in index.outgoing[node.id]:
                    link.band.width = link.value * ky
            spread = (self.cross_extent - y + py) / (len(column) + 1)
            for i, node in enumerate(column):
                node.y0 += spread * (i + 1)
                node.y1 += spread * (i + 1)
            self._reorder_links(column, index)
        logger.debug("node scale ky=%.6f", ky)

    def _relax_left_to_right(self, columns: list[list[Node]], index: LinkIndex, alpha: float, beta: float) -> None:
        """Move each node toward the weighted position of its incoming links."""
        for column in columns[1:]:
            for target in column:
                y = 0.0
                w = 0.0
                for link in index.incoming[target.id]:
                    source = index.node(link.source)
                    v = link.value * (target.layer - source.layer)
                    y += self._target_top(source, target, index) * v
                    w += v
                if not w > 0:
                    continue
                dy = (y / w - target.y0) * alpha
                target.y0 += dy
                target.y1 += dy
                self._reorder_node_links(target, index)
            if isinstance(self.sort, AutomaticSort):
                column.sort(key=_by_breadth)
            self._resolve_collisions(column, beta)

    def _relax_right_to_left(self, columns: list[list[Node]], index: LinkIndex, alpha: float, beta: float) -> None:
        """Move each node toward the weighted position of its outgoing links."""
        for column in reversed(columns[:-1]):
            for source in column:
                y = 0.0
                w = 0.0
                for link in index.outgoing[source.id]:
                    target = index.node(link.target)
                    v = link.value * (target.layer - source.layer)
                    y += self._source_top(source, target, index) * v
                    w += v
                if not w > 0:
                    continue
                dy = (y / w - source.y0) * alpha
                source.y0 += dy
                source.y1 += dy
                self._reorder_node_links(source, index)
            if isinstance(self.sort, AutomaticSort):
                column.sort(key=_by_breadth)
            self._resolve_collisions(column, beta)

    def _resolve_collisions(self, nodes: list[Node], alpha: float) -> None:
        if not nodes:
            return
        py = self.padding
        i = len(nodes) >> 1
        subject = nodes[i]
        self._push_up(nodes, subject.y0 - py, i - 1, alpha)
        self._push_down(nodes, subject.y1 + py, i + 1, alpha)
        self._push_up(nodes, self.cross_extent, len(nodes) - 1, alpha)
        self._push_down(nodes, 0.0, 0, alpha)

    def _push_down(self, nodes: list[Node], y: float, i: int, alpha: float) -> None:
        """Push overlapping nodes down, starting at ``nodes[i]``."""
        for node in nodes[i:]:
            dy = (y - node.y0) * alpha
            if dy > _EPSILON:
                node.y0 += dy
                node.y1 += dy
            y = node.y1 + self.padding

    def _push_up(self, nodes: list[Node], y: float, i: int, alpha: float) -> None:
        """Push overlapping nodes up, starting at ``nodes[i]`` and moving back."""
        for node in reversed(nodes[: i + 1]):
            dy = (node.y1 - y) * alpha
            if dy > _EPSILON:
                node.y0 -= dy
                node.y1 -= dy
            y = node.y0 - self.padding

    def _target_top(self, source: Node, target: Node, index: LinkIndex) -> float:
        """The ``target.y0`` that would give a straight band from ``source``."""
        outgoing = index.outgoing[source.id]
        y = source.y0 - (len(outgoing) - 1) * self.padding / 2
        for link in outgoing:
            if link.target == target.id:
                break
            y += link.band.width + self.padding
        for link in index.incoming[target.id]:
            if link.source == source.id:
                break
            y -= link.band.width
        return y

    def _source_top(self, source: Node, target: Node, index: LinkIndex) -> float:
        """The ``source.y0`` that would give a straight band to ``target``."""
        incoming = index.incoming[target.id]
        y = target.y0 - (len(incoming) - 1) * self.padding / 2
        for link in incoming:
            if link.source == source.id:
                break
            y += link.band.width + self.padding
        for link in index.outgoing[source.id]:
            if link.target == target.id:
                break
            y -= link.band.width
        return y

    # ── Link order ──

    def _reorder_node_links(self, node: Node, index: LinkIndex) -> None:
        if not isinstance(self.link_sort, AutomaticSort):
            return
        for link in index.incoming[node.id]:
            index.outgoing[link.source].sort(key=lambda lk: self._target_key(lk, index))
        for link in index.outgoing[node.id]:
            index.incoming[link.target].sort(key=lambda lk: self._source_key(lk, index))

    def _reorder_links(self, column: list[Node], index: LinkIndex) -> None:
        if not isinstance(self.link_sort, AutomaticSort):
            return
        for node in column:
            index.outgoing[node.id].sort(key=lambda lk: self._target_key(lk, index))
            index.incoming[node.id].sort(key=lambda lk: self._source_key(lk, index))

    @staticmethod
    def _target_key(link: Link, index: LinkIndex) -> tuple[float, int]:
        return (index.node(link.target).y0, link.index)

    @staticmethod
    def _source_key(link: Link, index: LinkIndex) -> tuple[float, int]:
        return (index.node(link.source).y0, link.index)

    # ── Bands ──

    def _compute_link_breadths(self, graph: SankeyGraph, index: LinkIndex) -> None:
        for node in graph.nodes:
            y0 = node.y0
            y1 = node.y0
            for link in index.outgoing[node.id]:
                link.band.y0 = y0 + link.band.width / 2
                y0 += link.band.width
            for link in index.incoming[node.id]:
                link.band.y1 = y1 + link.band.width / 2
                y1 += link.band.width


def layer_graph(graph: SankeyGraph, options: SankeyOptions) -> list[list[Node]]:
    """Run the layering oracle on ``graph`` with ``options``."""
    return LayeringOracle(options).run(graph)


