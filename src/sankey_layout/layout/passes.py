"""Coordinate passes run after the layering oracle.

Each pass mutates the working graph in place and is run exactly once, in
this order: centering, spacing amplification, orientation projection,
balance, link projection.
"""

from __future__ import annotations

import logging
import math

from sankey_layout.graph import Node, SankeyGraph
from sankey_layout.layout.types import Orientation

logger = logging.getLogger(__name__)


def _cross_order(nodes: list[Node], start: str) -> list[Node]:
    """Nodes sorted along the cross axis (ties keep input order)."""
    return sorted(nodes, key=lambda n: (getattr(n, start), n.index))


# ─── Centering ────────────────────────────────────────────────────────────────


def layer_offsets(graph: SankeyGraph) -> dict[int, float]:
    """Map every layer to the smallest ``y0`` among its nodes."""
    return {layer: min(n.y0 for n in nodes) for layer, nodes in graph.layers().items()}


def center_layers(graph: SankeyGraph) -> dict[int, float]:
    """Shift every layer so its topmost node starts at zero.

    Returns the per-layer offsets that were removed; link projection needs
    them to bring the oracle's band offsets into the same frame.
    """
    offsets = layer_offsets(graph)
    for node in graph.nodes:
        offset = offsets[node.layer]
        node.y -= offset
        node.y0 -= offset
        node.y1 -= offset
    return offsets


# ─── Spacing Amplification ────────────────────────────────────────────────────


def amplify_spacing(graph: SankeyGraph, spacing_increase: float) -> None:
    """Grow ``gap`` with the distance between a node's layer and the centre layer."""
    if not graph.nodes:
        return
    center_layer = math.floor(graph.max_layer / 2)
    for node in graph.nodes:
        node.gap += spacing_increase * abs(center_layer - node.layer)


# ─── Orientation Projection ───────────────────────────────────────────────────


def project_orientation(graph: SankeyGraph, orientation: Orientation, inner_padding: float) -> None:
    """Turn oracle boxes into pixel geometry.

    Within a layer, nodes are visited in cross-axis order and each one's
    margin is its predecessor's (already updated) gap plus its own gap, so
    margins accumulate down the layer.
    """
    for nodes in graph.layers().values():
        previous: Node | None = None
        for node in _cross_order(nodes, "y0"):
            margin = (previous.gap if previous is not None else 0.0) + node.gap
            node.gap = margin
            if orientation is Orientation.HORIZONTAL:
                node.x = node.x0 + inner_padding
                node.y = node.y0 + margin
                node.width = max(node.x1 - node.x0 - inner_padding * 2, 0)
                node.height = max(node.y1 - node.y0, 0)
            else:
                node.x = node.y0 + margin
                node.y = node.x0 + inner_padding + margin
                node.width = max(node.y1 - node.y0, 0)
                node.height = max(node.x1 - node.x0 - inner_padding * 2 - margin * 2, 0)
                node.x0, node.x1, node.y0, node.y1 = node.y0, node.y1, node.x0, node.x1
            previous = node


# ─── Balance ──────────────────────────────────────────────────────────────────

# (start, end, position, size) attribute names of the cross axis, per orientation.
_CROSS_AXIS: dict[Orientation, tuple[str, str, str, str]] = {
    Orientation.HORIZONTAL: ("y0", "y1", "y", "height"),
    Orientation.VERTICAL: ("x0", "x1", "x", "width"),
}


def balance_layers(graph: SankeyGraph, orientation: Orientation) -> None:
    """Centre shorter layers against the longest one along the cross axis.

    A layer's shortfall against the global maximum is spread over the gaps
    between its nodes. A layer with a single node gets the margin that
    centres its box; the predecessor and spacing terms are dropped from that
    margin, but the spacing gap already in its position is kept.
    """
    if not graph.nodes:
        return
    start, end, pos, size = _CROSS_AXIS[orientation]
    max_end = max(getattr(n, end) for n in graph.nodes)

    for nodes in graph.layers().values():
        if len(nodes) == 1:
            node = nodes[0]
            margin = max_end / 2 - (getattr(node, start) + getattr(node, size) / 2)
            setattr(node, pos, getattr(node, pos) + margin)
            node.gap += margin
            continue

        shortfall = max_end - max(getattr(n, end) for n in nodes)
        previous: Node | None = None
        for node in _cross_order(nodes, start):
            margin = (previous.gap if previous is not None else 0.0) + node.gap
            if previous is not None:
                margin += shortfall / (len(nodes) - 1)
            setattr(node, pos, getattr(node, pos) + margin)
            node.gap += margin
            previous = node
    logger.debug("balanced %d layers against cross extent %.3f", len(graph.layers()), max_end)


# ─── Link Projection ──────────────────────────────────────────────────────────


def project_links(graph: SankeyGraph, offsets: dict[int, float]) -> None:
    """Place band ends using the final node gaps and drop the oracle band."""
    for link in graph.links:
        band = link.band
        if band is None:
            continue
        source = graph.node(link.source)
        target = graph.node(link.target)
        link.pos0 = band.y0 + source.gap - offsets[source.layer]
        link.pos1 = band.y1 + target.gap - offsets[target.layer]
        link.thickness = band.width
        link.band = None
