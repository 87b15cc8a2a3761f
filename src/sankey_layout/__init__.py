"""sankey_layout — layout engine for flow (Sankey) diagrams."""

from sankey_layout.errors import (
    CyclicGraphError,
    DuplicateNodeIdError,
    InvalidGraphError,
    InvalidLayoutOptionError,
    SankeyLayoutError,
    UnknownNodeReferenceError,
)
from sankey_layout.graph import LegendDatum, Link, Node, SankeyGraph, normalize_graph
from sankey_layout.layout import Orientation, SankeyLayout, SankeyOptions, compute_sankey

__version__ = "0.1.0"

__all__ = [
    "CyclicGraphError",
    "DuplicateNodeIdError",
    "InvalidGraphError",
    "InvalidLayoutOptionError",
    "LegendDatum",
    "Link",
    "Node",
    "Orientation",
    "SankeyGraph",
    "SankeyLayout",
    "SankeyLayoutError",
    "SankeyOptions",
    "UnknownNodeReferenceError",
    "compute_sankey",
    "normalize_graph",
]
