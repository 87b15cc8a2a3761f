"""JSON entry points: graph document in, layout dictionary out."""

from __future__ import annotations

import json
from typing import Any

from sankey_layout.errors import InvalidGraphError
from sankey_layout.layout import SankeyOptions, compute_sankey


def parse_graph(text: str) -> dict[str, Any]:
    """Parse a JSON graph document (``{"nodes": [...], "links": [...]}``)."""
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidGraphError(f"invalid JSON at line {exc.lineno}, column {exc.colno}: {exc.msg}") from exc
    if not isinstance(doc, dict):
        raise InvalidGraphError("graph document must be a JSON object with 'nodes' and 'links'")
    return doc


def layout_json(text: str, **options: Any) -> dict[str, Any]:
    """Lay out a JSON graph document and return the layout as a dict.

    An optional ``"options"`` object in the document (camelCase or
    snake_case keys) supplies layout options; keyword arguments win over it.
    """
    doc = parse_graph(text)
    merged = dict(doc.get("options") or {})
    merged.update(options)
    return compute_sankey(doc, SankeyOptions.from_mapping(merged)).to_dict()
