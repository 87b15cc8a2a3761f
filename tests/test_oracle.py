"""Tests for layout/oracle.py — cycle check, layering, alignment and breadths."""

from __future__ import annotations

import networkx as nx
import pytest

from sankey_layout.errors import CyclicGraphError, InvalidLayoutOptionError
from sankey_layout.graph import Node, SankeyGraph, normalize_graph
from sankey_layout.layout.oracle import (
    LayeringOracle,
    LinkIndex,
    align_center,
    align_justify,
    align_left,
    align_right,
    alignment_from_prop,
    build_digraph,
    check_acyclic,
    compute_depths,
    compute_node_values,
    layer_graph,
)
from sankey_layout.layout.types import AutomaticSort, CustomSort, SankeyOptions

# ─── Helpers ──────────────────────────────────────────────────────────────────


def make_graph(*links: tuple[str, str, float], nodes: tuple[str, ...] = ()) -> SankeyGraph:
    """Build a normalised graph from (src, tgt, value) triples.

    Node order: explicit ``nodes`` first, then endpoints in order of appearance.
    """
    ids: list[str] = list(nodes)
    for src, tgt, _ in links:
        for nid in (src, tgt):
            if nid not in ids:
                ids.append(nid)
    return normalize_graph(
        {
            "nodes": [{"id": nid} for nid in ids],
            "links": [{"source": s, "target": t, "value": v} for s, t, v in links],
        }
    )


def layered(graph: SankeyGraph, **options) -> dict[str, Node]:
    """Run the oracle and return nodes by id."""
    layer_graph(graph, SankeyOptions(**options))
    return {n.id: n for n in graph.nodes}


# ─── Cycle Check Tests ────────────────────────────────────────────────────────


class TestCycleCheck:
    def test_dag_passes(self):
        """a → b → c has no cycle."""
        check_acyclic(build_digraph(make_graph(("a", "b", 1), ("b", "c", 1))))

    def test_two_cycle(self):
        """a → b → a is rejected, and the error names the cycle."""
        with pytest.raises(CyclicGraphError) as info:
            check_acyclic(build_digraph(make_graph(("a", "b", 1), ("b", "a", 1))))
        assert set(info.value.cycle) == {("a", "b"), ("b", "a")}
        assert "circular link" in str(info.value)

    def test_self_loop(self):
        """a → a is a cycle too."""
        with pytest.raises(CyclicGraphError):
            layer_graph(make_graph(("a", "a", 1)), SankeyOptions())

    def test_cycle_behind_dag_part(self):
        """A cycle anywhere in the graph is fatal."""
        graph = make_graph(("s", "a", 1), ("a", "b", 1), ("b", "c", 1), ("c", "a", 1))
        with pytest.raises(CyclicGraphError):
            layer_graph(graph, SankeyOptions())

    def test_parallel_links_kept(self):
        """Two links between the same pair are two edges of the multigraph."""
        g = build_digraph(make_graph(("a", "b", 1), ("a", "b", 2)))
        assert g.number_of_edges() == 2
        assert nx.is_directed_acyclic_graph(g)


# ─── Values and Depths Tests ──────────────────────────────────────────────────


class TestNodeValues:
    def test_max_of_inflow_and_outflow(self):
        """b receives 10 and sends 4 → value 10."""
        graph = make_graph(("a", "b", 10), ("b", "c", 4))
        compute_node_values(graph, LinkIndex(graph, AutomaticSort()))
        values = {n.id: n.value for n in graph.nodes}
        assert values == {"a": 10, "b": 10, "c": 4}

    def test_fixed_value_wins(self):
        graph = normalize_graph(
            {
                "nodes": [{"id": "a", "fixedValue": 50}, {"id": "b"}],
                "links": [{"source": "a", "target": "b", "value": 5}],
            }
        )
        compute_node_values(graph, LinkIndex(graph, AutomaticSort()))
        assert graph.node("a").value == 50
        assert graph.node("b").value == 5

    def test_isolated_node_has_zero_value(self):
        graph = make_graph(nodes=("lonely",))
        compute_node_values(graph, LinkIndex(graph, AutomaticSort()))
        assert graph.node("lonely").value == 0


class TestComputeDepths:
    def test_chain(self):
        graph = make_graph(("a", "b", 1), ("b", "c", 1))
        compute_depths(graph)
        assert [n.depth for n in graph.nodes] == [0, 1, 2]
        assert [n.height_rank for n in graph.nodes] == [2, 1, 0]

    def test_longest_path_wins(self):
        """a → c directly and a → b → c: c sits at depth 2."""
        graph = make_graph(("a", "c", 1), ("a", "b", 1), ("b", "c", 1))
        compute_depths(graph)
        assert graph.node("c").depth == 2
        assert graph.node("a").height_rank == 2


# ─── Alignment Tests ──────────────────────────────────────────────────────────


class TestAlignment:
    """Graph: a → b → c and a → d, plus e → c."""

    def graph(self) -> SankeyGraph:
        return make_graph(("a", "b", 1), ("b", "c", 1), ("a", "d", 1), ("e", "c", 1))

    def test_left(self):
        nodes = layered(self.graph(), align="start")
        assert {k: n.layer for k, n in nodes.items()} == {"a": 0, "b": 1, "c": 2, "d": 1, "e": 0}

    def test_justify_pushes_sinks_last(self):
        nodes = layered(self.graph(), align="justify")
        assert nodes["d"].layer == 2
        assert nodes["e"].layer == 0

    def test_right(self):
        nodes = layered(self.graph(), align="end")
        assert {k: n.layer for k, n in nodes.items()} == {"a": 0, "b": 1, "c": 2, "d": 2, "e": 1}

    def test_center_pulls_sources_forward(self):
        """e only feeds c (depth 2), so it moves to layer 1."""
        nodes = layered(self.graph(), align="center")
        assert nodes["e"].layer == 1
        assert nodes["d"].layer == 1

    def test_named_aliases(self):
        assert alignment_from_prop("left") is align_left
        assert alignment_from_prop("start") is align_left
        assert alignment_from_prop("right") is align_right
        assert alignment_from_prop("end") is align_right
        assert alignment_from_prop("justify") is align_justify
        assert alignment_from_prop("center") is align_center

    def test_unknown_alignment(self):
        with pytest.raises(InvalidLayoutOptionError):
            alignment_from_prop("diagonal")

    def test_custom_alignment_is_clamped(self):
        """A custom function returning out-of-range layers is clamped."""
        nodes = layered(self.graph(), align=lambda node, n, index: 99 if node.id == "c" else -5)
        assert nodes["c"].layer == 2
        assert nodes["a"].layer == 0

    @pytest.mark.parametrize("align", ["center", "justify", "start", "end"])
    def test_links_go_forward(self, align):
        """For every named alignment, source.layer < target.layer."""
        graph = self.graph()
        layer_graph(graph, SankeyOptions(align=align))
        for link in graph.links:
            assert graph.node(link.source).layer < graph.node(link.target).layer


# ─── Breadth Tests ────────────────────────────────────────────────────────────


class TestBreadths:
    def test_single_link(self):
        """a → b (10): one node per layer fills the cross extent."""
        nodes = layered(make_graph(("a", "b", 10)))
        a, b = nodes["a"], nodes["b"]
        assert (a.layer, b.layer) == (0, 1)
        assert a.x0 == 0 and a.x1 == 12
        assert b.x0 == pytest.approx(788) and b.x1 == pytest.approx(800)
        assert a.y1 - a.y0 == pytest.approx(600)

    def test_link_width_proportional_to_value(self):
        graph = make_graph(("a", "b", 10), ("a", "c", 30))
        layer_graph(graph, SankeyOptions())
        w10, w30 = (lk.band.width for lk in graph.links)
        assert w30 == pytest.approx(3 * w10)

    def test_initial_breadths_and_bands(self):
        """No relaxation: stacking, leftover spread and band centres."""
        graph = make_graph(("s", "x", 30), ("s", "y", 10))
        nodes = layered(graph, sort="input", iterations=0)
        # ky = (600 - 12) / 40 from layer 1.
        assert nodes["s"].y0 == pytest.approx(6)
        assert nodes["s"].y1 == pytest.approx(594)
        assert nodes["x"].y0 == pytest.approx(0)
        assert nodes["x"].y1 == pytest.approx(441)
        assert nodes["y"].y0 == pytest.approx(453)
        assert nodes["y"].y1 == pytest.approx(600)
        to_x, to_y = graph.links
        assert to_x.band.width == pytest.approx(441)
        assert to_y.band.width == pytest.approx(147)
        assert to_x.band.y0 == pytest.approx(226.5)
        assert to_y.band.y0 == pytest.approx(520.5)
        assert to_x.band.y1 == pytest.approx(220.5)
        assert to_y.band.y1 == pytest.approx(526.5)

    def test_ascending_sort(self):
        """sort='ascending' puts the smaller node first in its layer."""
        nodes = layered(make_graph(("s", "x", 30), ("s", "y", 10)), sort="ascending", iterations=0)
        assert nodes["y"].y0 < nodes["x"].y0

    def test_descending_sort(self):
        nodes = layered(make_graph(("s", "x", 10), ("s", "y", 30)), sort="descending", iterations=0)
        assert nodes["y"].y0 < nodes["x"].y0

    def test_custom_comparator(self):
        """A comparator callable is used as a CustomSort."""
        options = SankeyOptions(sort=lambda a, b: -1 if a.id > b.id else 1, iterations=0)
        assert isinstance(options.node_sort, CustomSort)
        graph = make_graph(("s", "a", 5), ("s", "b", 5))
        layer_graph(graph, options)
        assert graph.node("b").y0 < graph.node("a").y0

    def test_nodes_do_not_overlap(self):
        """After relaxation, nodes of one layer keep at least the padding apart."""
        graph = make_graph(("a", "b", 5), ("a", "c", 5), ("a", "e", 3), ("b", "d", 5), ("c", "d", 5))
        oracle = LayeringOracle(SankeyOptions())
        columns = oracle.run(graph)
        for column in columns:
            ordered = sorted(column, key=lambda n: n.y0)
            for upper, lower in zip(ordered, ordered[1:]):
                assert upper.y1 + oracle.padding <= lower.y0 + 1e-6

    def test_padding_shrinks_to_fit(self):
        """Three nodes in 10px of cross extent → padding 5."""
        graph = make_graph(("s", "a", 1), ("s", "b", 1), ("s", "c", 1))
        oracle = LayeringOracle(SankeyOptions(height=10))
        oracle.run(graph)
        assert oracle.padding == pytest.approx(5)

    def test_vertical_swaps_extents(self):
        """Vertical layouts use the height as depth extent."""
        nodes = layered(make_graph(("a", "b", 1)), orientation="vertical", width=300, height=500)
        assert nodes["b"].x1 == pytest.approx(500)
        assert nodes["a"].y1 - nodes["a"].y0 == pytest.approx(300)

    def test_bands_stack_inside_nodes(self):
        """Every band centre lies within its endpoint's cross range."""
        graph = make_graph(("a", "b", 5), ("a", "c", 5), ("b", "d", 5), ("c", "d", 5))
        layer_graph(graph, SankeyOptions())
        for link in graph.links:
            source, target = graph.node(link.source), graph.node(link.target)
            assert source.y0 - 1e-6 <= link.band.y0 <= source.y1 + 1e-6
            assert target.y0 - 1e-6 <= link.band.y1 <= target.y1 + 1e-6


# ─── Degenerate Input Tests ───────────────────────────────────────────────────


class TestDegenerate:
    def test_empty_graph(self):
        assert layer_graph(make_graph(), SankeyOptions()) == []

    def test_single_layer_no_division_error(self):
        """Isolated nodes: one layer, zero value, no crash."""
        graph = make_graph(nodes=("a", "b"))
        columns = layer_graph(graph, SankeyOptions())
        assert len(columns) == 1
        for node in graph.nodes:
            assert node.x0 == 0
            assert node.y1 - node.y0 == 0

    def test_zero_value_links(self):
        graph = make_graph(("a", "b", 0), ("a", "c", 0))
        layer_graph(graph, SankeyOptions())
        assert all(lk.band.width == 0 for lk in graph.links)
        assert all(n.y1 >= n.y0 for n in graph.nodes)

    def test_zero_height_canvas(self):
        graph = make_graph(("a", "b", 1), ("a", "c", 1))
        layer_graph(graph, SankeyOptions(height=0))
        assert all(n.y1 >= n.y0 for n in graph.nodes)
