"""Display enrichment: colours, labels and formatted values.

Each concern is a small strategy object with one pure job:
``OrdinalColorScale`` (node -> colour), ``PropertyAccessor`` (node -> label)
and ``ValueFormatter`` (number -> string). ``Enricher`` applies them to a laid
out graph; running it twice with the same strategies changes nothing.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

from sankey_layout.colors import COLOR_SCHEMES
from sankey_layout.errors import InvalidLayoutOptionError
from sankey_layout.graph import LegendDatum, Node, SankeyGraph

_MISSING = object()

# A bare ``colors`` string that is not a scheme name must look like one of these.
_COLOR_PREFIXES = ("#", "rgb(", "rgba(", "hsl(", "hsla(")


def resolve_path(node: Node, path: str) -> Any:
    """Read ``path`` from a node: an attribute first, then ``node.data``.

    Dotted paths walk nested mappings, e.g. ``"meta.name"`` reads
    ``node.data["meta"]["name"]``. Returns ``None`` when nothing is found.
    """
    head, _, rest = path.partition(".")
    value = getattr(node, head, _MISSING) if head != "data" else node.data
    if value is None or value is _MISSING:
        value = node.data.get(head, _MISSING)
    for part in rest.split(".") if rest else ():
        if isinstance(value, Mapping):
            value = value.get(part, _MISSING)
        else:
            value = getattr(value, part, _MISSING)
    return None if value is _MISSING else value


class OrdinalColorScale:
    """Colour by key, assigning palette entries in order of first request.

    ``colors`` may be a scheme name (see ``COLOR_SCHEMES``), ``{"scheme":
    name}``, ``{"datum": path}`` (read the colour from each node), a list of
    colours, a single colour literal (``#rrggbb``, ``rgb(...)``, ``hsl(...)``)
    or a callable ``node -> colour``.
    """

    def __init__(self, colors: Any = "nivo", key: str = "id") -> None:
        self.key = key
        self._domain: dict[Any, str] = {}
        self._datum: str | None = None
        self._fn: Callable[[Node], str] | None = None
        self._palette: tuple[str, ...] = ()

        if callable(colors):
            self._fn = colors
        elif isinstance(colors, Mapping):
            if "datum" in colors:
                self._datum = str(colors["datum"])
            elif "scheme" in colors:
                self._palette = self._scheme(colors["scheme"])
            else:
                raise InvalidLayoutOptionError(f"unsupported colors mapping: {dict(colors)!r}")
        elif isinstance(colors, str):
            if colors in COLOR_SCHEMES:
                self._palette = COLOR_SCHEMES[colors]
            elif colors.startswith(_COLOR_PREFIXES):
                self._palette = (colors,)
            else:
                raise InvalidLayoutOptionError(f"unknown color scheme: {colors!r}")
        elif isinstance(colors, Sequence) and colors:
            self._palette = tuple(str(c) for c in colors)
        else:
            raise InvalidLayoutOptionError(f"unsupported colors: {colors!r}")

    @staticmethod
    def _scheme(name: Any) -> tuple[str, ...]:
        try:
            return COLOR_SCHEMES[name]
        except KeyError:
            raise InvalidLayoutOptionError(f"unknown color scheme: {name!r}") from None

    def __call__(self, node: Node) -> str:
        if self._fn is not None:
            return self._fn(node)
        if self._datum is not None:
            return str(resolve_path(node, self._datum))
        key = resolve_path(node, self.key)
        if key not in self._domain:
            self._domain[key] = self._palette[len(self._domain) % len(self._palette)]
        return self._domain[key]


class PropertyAccessor:
    """Read a label from a node by path or callable; falls back to the node id."""

    def __init__(self, accessor: str | Callable[[Node], Any] = "id") -> None:
        self.accessor = accessor

    def __call__(self, node: Node) -> str:
        if callable(self.accessor):
            value = self.accessor(node)
        else:
            value = resolve_path(node, self.accessor)
        return node.id if value is None else str(value)


def _default_format(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


class ValueFormatter:
    """Format numbers with a Python format spec, a ``{}`` template or a callable.

    >>> ValueFormatter(",.2f")(1234.5)
    '1,234.50'
    >>> ValueFormatter("{:.0f} kWh")(12.4)
    '12 kWh'
    """

    def __init__(self, spec: str | Callable[[float], str] | None = None) -> None:
        self.spec = spec

    def __call__(self, value: float) -> str:
        if self.spec is None:
            return _default_format(value)
        if callable(self.spec):
            return str(self.spec(value))
        if "{" in self.spec:
            return self.spec.format(value)
        return format(value, self.spec)


class Enricher:
    """Attach colour, label and formatted value to nodes and links."""

    def __init__(
        self,
        get_color: Callable[[Node], str],
        get_label: Callable[[Node], str],
        format_value: Callable[[float], str],
    ) -> None:
        self.get_color = get_color
        self.get_label = get_label
        self.format_value = format_value

    def enrich(self, graph: SankeyGraph) -> SankeyGraph:
        for node in graph.nodes:
            node.color = self.get_color(node)
            node.label = self.get_label(node)
            node.formatted_value = self.format_value(node.value)
        for link in graph.links:
            link.formatted_value = self.format_value(link.value)
            link.color = link.color or graph.node(link.source).color
        return graph


def legend_data(nodes: list[Node]) -> list[LegendDatum]:
    return [LegendDatum(id=n.id, label=n.label, color=n.color) for n in nodes]
