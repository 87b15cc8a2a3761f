"""Command-line interface: print the layout of a JSON graph as JSON."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Iterable
from pathlib import Path

from sankey_layout.api import layout_json
from sankey_layout.errors import SankeyLayoutError
from sankey_layout.layout.types import ALIGNMENTS, SORT_MODES

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sankey-layout",
        description="Compute node and link geometry for a flow (Sankey) diagram.",
    )
    parser.add_argument("input", nargs="?", help="Input JSON file ('-' for stdin)")
    parser.add_argument("--text", help="Raw JSON graph")
    parser.add_argument("--orientation", choices=["horizontal", "vertical"])
    parser.add_argument("--align", choices=list(ALIGNMENTS))
    parser.add_argument("--sort", choices=list(SORT_MODES))
    parser.add_argument("--width", type=float)
    parser.add_argument("--height", type=float)
    parser.add_argument("--node-thickness", type=float)
    parser.add_argument("--node-spacing", type=float)
    parser.add_argument("--spacing-increase", type=float)
    parser.add_argument("--node-inner-padding", type=float)
    parser.add_argument("--indent", type=int, default=2, help="JSON indent (0 for compact output)")
    parser.add_argument("--debug", action="store_true", help="Log pipeline stages to stderr")
    return parser


_OPTION_ARGS = (
    "orientation",
    "align",
    "sort",
    "width",
    "height",
    "node_thickness",
    "node_spacing",
    "spacing_increase",
    "node_inner_padding",
)


def _read_input(path: str | None, text: str | None) -> str:
    if text is not None:
        return text
    if path is None or path == "-":
        return sys.stdin.read()
    return Path(path).read_text()


def main(argv: Iterable[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.input is not None and args.text is not None:
        parser.error("--text cannot be combined with an input file")

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    options = {name: getattr(args, name) for name in _OPTION_ARGS if getattr(args, name) is not None}
    try:
        source = _read_input(args.input, args.text)
        result = layout_json(source, **options)
    except OSError as exc:
        print(f"error: cannot read input: {exc}", file=sys.stderr)
        return 1
    except SankeyLayoutError as exc:
        logger.debug("layout failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=args.indent or None))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
