"""Errors raised by the layout pipeline.

Every error is fatal and raised before any geometry is computed. The pipeline
is deterministic, so the same input fails the same way on every call.
"""

from __future__ import annotations


class SankeyLayoutError(ValueError):
    """Base class for all layout errors."""


class InvalidGraphError(SankeyLayoutError):
    """Raised when the input graph is malformed (missing ids, bad values)."""


class DuplicateNodeIdError(InvalidGraphError):
    """Raised when two input nodes share the same id."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"duplicate node id: {node_id!r}")
        self.node_id = node_id


class UnknownNodeReferenceError(InvalidGraphError):
    """Raised when a link names a source or target that is not a node."""

    def __init__(self, node_id: str, link_index: int, end: str) -> None:
        super().__init__(f"link {link_index} references unknown {end} node: {node_id!r}")
        self.node_id = node_id
        self.link_index = link_index
        self.end = end


class CyclicGraphError(SankeyLayoutError):
    """Raised when the graph contains a cycle; layering needs a DAG."""

    def __init__(self, cycle: list[tuple[str, str]]) -> None:
        path = " -> ".join([cycle[0][0], *(tgt for _, tgt in cycle)]) if cycle else "?"
        super().__init__(f"circular link: {path}")
        self.cycle = cycle


class InvalidLayoutOptionError(SankeyLayoutError):
    """Raised when a layout option has an unsupported value."""
