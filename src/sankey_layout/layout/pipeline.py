"""Full layout pipeline: caller data in, finalised ``SankeyLayout`` out."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from typing import Any

from sankey_layout.enrich import Enricher, OrdinalColorScale, PropertyAccessor, ValueFormatter, legend_data
from sankey_layout.graph import Node, normalize_graph
from sankey_layout.layout.oracle import layer_graph
from sankey_layout.layout.passes import (
    amplify_spacing,
    balance_layers,
    center_layers,
    project_links,
    project_orientation,
)
from sankey_layout.layout.types import SankeyLayout, SankeyOptions

logger = logging.getLogger(__name__)


def compute_sankey(
    data: Any,
    options: SankeyOptions | None = None,
    *,
    get_color: Callable[[Node], str] | None = None,
    get_label: Callable[[Node], str] | None = None,
    format_value: Callable[[float], str] | None = None,
    **overrides: Any,
) -> SankeyLayout:
    """Lay out a flow diagram.

    ``data`` holds ``nodes`` and ``links`` (see ``normalize_graph``); it is
    read, never modified. ``overrides`` replace individual ``options`` fields,
    e.g. ``compute_sankey(data, orientation="vertical")``. The enrichment
    strategies default to the ones described by ``options.colors``,
    ``options.label`` and ``options.value_format``.

    The result depends only on the arguments: calling twice with equal
    inputs gives equal layouts.
    """
    options = options or SankeyOptions()
    if overrides:
        options = dataclasses.replace(options, **overrides)

    graph = normalize_graph(data)
    columns = layer_graph(graph, options)
    offsets = center_layers(graph)
    amplify_spacing(graph, options.spacing_increase)
    project_orientation(graph, options.orientation, options.node_inner_padding)
    balance_layers(graph, options.orientation)
    project_links(graph, offsets)

    enricher = Enricher(
        get_color=get_color or OrdinalColorScale(options.colors, key="id"),
        get_label=get_label or PropertyAccessor(options.label),
        format_value=format_value or ValueFormatter(options.value_format),
    )
    enricher.enrich(graph)

    logger.debug(
        "sankey layout: %d nodes, %d links, %d layers (%s)",
        len(graph.nodes),
        len(graph.links),
        len(columns),
        options.orientation.value,
    )
    return SankeyLayout(
        nodes=graph.nodes,
        links=graph.links,
        legend_data=legend_data(graph.nodes),
        orientation=options.orientation,
        layer_count=len(columns),
    )
