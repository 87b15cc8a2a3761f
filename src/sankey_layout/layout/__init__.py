"""Layout engine: layering oracle, coordinate passes and the pipeline."""

from sankey_layout.layout.pipeline import compute_sankey
from sankey_layout.layout.types import (
    AutomaticSort,
    CustomSort,
    InputOrderSort,
    LegendDatum,
    Orientation,
    SankeyLayout,
    SankeyOptions,
)

__all__ = [
    "AutomaticSort",
    "CustomSort",
    "InputOrderSort",
    "LegendDatum",
    "Orientation",
    "SankeyLayout",
    "SankeyOptions",
    "compute_sankey",
]
