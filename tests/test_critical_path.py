"""
Tests for topological ordering, earliest-finish propagation and candidate schedules.
"""

import math

import pytest

from schedulers.critical_path import (
    UNREACHABLE,
    build_flow_shop_edges,
    compute_earliest_finish,
    critical_chain,
    evaluate_job_order,
    expand_job_order,
    makespan,
    topological_order,
)
from schedulers.errors import InfeasibleGraphError, SchedulingError
from schedulers.graph_model import Edge, PrecedenceGraph


def _chain_graph():
    g = PrecedenceGraph()
    g.add_node("A", durations=[2])
    g.add_node("B", durations=[3])
    g.add_node("C", durations=[1])
    g.add_node("P1", is_product=True)
    g.add_edge("A", "B", 1)
    g.add_edge("B", "C", 0)
    g.add_edge("C", "P1", 0)
    return g


class TestTopologicalOrder:
    """Test Kahn ordering."""

    def test_dag_order_covers_every_node(self, canonical_graph):
        order = topological_order(canonical_graph)
        assert len(order) == len(canonical_graph)
        pos = {n.id: i for i, n in enumerate(order)}
        for e in canonical_graph.edges:
            assert pos[e.from_id] < pos[e.to_id]

    def test_fifo_insertion_order_among_ready_nodes(self):
        g = PrecedenceGraph()
        for nid in ("C", "A", "B"):
            g.add_node(nid)
        assert [n.id for n in topological_order(g)] == ["C", "A", "B"]

    def test_priority_key(self):
        g = PrecedenceGraph()
        for nid in ("C", "A", "B"):
            g.add_node(nid)
        order = topological_order(g, priority=lambda n: n.id)
        assert [n.id for n in order] == ["A", "B", "C"]

    def test_cycle_raises(self):
        g = PrecedenceGraph()
        for nid in ("A", "B", "C"):
            g.add_node(nid)
        g.add_edge("A", "B")
        g.add_edge("B", "C")
        g.add_edge("C", "B")
        with pytest.raises(InfeasibleGraphError) as exc:
            topological_order(g)
        assert sorted(exc.value.unresolved) == ["B", "C"]
        assert exc.value.ordered_count == 1
        assert isinstance(exc.value, SchedulingError)

    def test_dangling_edges_are_ignored(self):
        g = PrecedenceGraph()
        g.add_node("A")
        g.add_edge("GHOST", "A", allow_dangling=True)
        assert [n.id for n in topological_order(g)] == ["A"]


class TestEarliestFinish:
    """Test critical-path propagation and makespan."""

    def test_chain_finish_times(self):
        g = _chain_graph()
        res = compute_earliest_finish(g)
        assert res.start["A"] == 0
        assert res.finish["A"] == 2
        assert res.start["B"] == 3
        assert res.finish["C"] == 7
        assert makespan(g, res.finish) == 7

    def test_makespan_at_least_longest_node(self, canonical_graph):
        res = compute_earliest_finish(canonical_graph)
        longest = max(n.duration for n in canonical_graph.nodes)
        assert makespan(canonical_graph, res.finish) >= longest

    def test_makespan_monotone_in_costs_and_durations(self):
        base = _chain_graph()
        ms0 = makespan(base, compute_earliest_finish(base).finish)

        heavier = base.with_edges([Edge(e.from_id, e.to_id, e.cost + 2) for e in base.edges])
        assert makespan(heavier, compute_earliest_finish(heavier).finish) >= ms0

        slower = base.copy()
        slower.get("B").durations = (10.0,)
        assert makespan(slower, compute_earliest_finish(slower).finish) >= ms0

    def test_node_with_only_dangling_predecessor_is_unreachable(self):
        g = _chain_graph()
        g.add_node("P2", is_product=True)
        g.add_edge("GHOST", "P2", allow_dangling=True)
        res = compute_earliest_finish(g)
        assert res.finish["P2"] == UNREACHABLE
        assert not res.is_reached("p2")
        assert math.isinf(makespan(g, res.finish))

    def test_makespan_without_products_uses_sinks(self):
        g = PrecedenceGraph()
        g.add_node("A", durations=[2])
        g.add_node("B", durations=[5])
        g.add_edge("A", "B")
        assert makespan(g, compute_earliest_finish(g).finish) == 7

    def test_empty_graph(self):
        g = PrecedenceGraph()
        assert makespan(g, compute_earliest_finish(g).finish) == 0.0

    def test_critical_chain(self):
        g = _chain_graph()
        g.add_node("X", durations=[1])
        # C and P1 both finish at 7; the first one in topological order ends the chain
        assert [n.id for n in critical_chain(g)] == ["A", "B", "C"]


class TestCandidateSchedule:
    """Test flow-shop edge construction and evaluation."""

    def test_edges_for_job_order(self, canonical_graph):
        edges = build_flow_shop_edges(canonical_graph, ["J2", "J1"])
        assert Edge("J2_M1", "J2_M2") in edges
        assert Edge("J2_M1", "J1_M1") in edges
        assert Edge("J2_M2", "J1_M2") in edges
        assert Edge("J1_M2", "P1") in edges
        assert Edge("J2_M2", "P2") in edges
        assert all(e.cost == 0 for e in edges)

    def test_missing_nodes_are_skipped_unless_dangling_allowed(self, canonical_graph):
        assert all(canonical_graph.is_known_edge(e) for e in build_flow_shop_edges(canonical_graph, ["J1", "J9"]))
        dangling = build_flow_shop_edges(canonical_graph, ["J1", "J9"], allow_dangling=True)
        assert any(not canonical_graph.is_known_edge(e) for e in dangling)

    def test_evaluate_does_not_mutate_graph(self, canonical_graph):
        before = list(canonical_graph.edges)
        cand = evaluate_job_order(canonical_graph, ["J2", "J3", "J1"])
        assert cand.makespan == 12
        assert canonical_graph.edges == before

    def test_expand_excludes_products_and_zero_durations(self, canonical_graph):
        cand = evaluate_job_order(canonical_graph, ["J2", "J3", "J1"])
        schedule = expand_job_order(cand, "test", note="x")
        assert all(not n.is_product for n in schedule.nodes)
        assert len(schedule.nodes) == 6
        assert schedule.makespan == 12
        assert schedule.metadata["note"] == "x"
        rows = {r["id"]: r for r in schedule.metadata["timeline"]}
        assert rows["J1_M2"]["finish"] == 12
        assert rows["J1_M2"]["machine"] == 2
