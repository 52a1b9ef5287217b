"""
Tests for the critical-chain solver and the path explorer.
"""

from algorithms.critical_chain import CriticalPathScheduler, ExplorerConfig, PathExplorerScheduler
from core.scenario import build_demo_graph
from schedulers.graph_model import PrecedenceGraph


class TestCriticalPathScheduler:
    """Test longest-chain extraction on the demo recipe."""

    def test_demo_chain(self):
        schedule = CriticalPathScheduler().search(build_demo_graph())
        # J2: 20 + 20 (edge) + 40 + 40 (edge) = 120, reached first among the ties
        assert schedule.makespan == 120
        assert schedule.node_ids == ["J2_M1", "J2_M2", "P2"]

    def test_empty_graph(self):
        schedule = CriticalPathScheduler().search(PrecedenceGraph())
        assert schedule.is_empty()
        assert schedule.makespan == 0.0


class TestPathExplorer:
    """Test exhaustive path exploration with an explicit stack."""

    def test_demo_best_path(self):
        schedule = PathExplorerScheduler().search(build_demo_graph())
        assert schedule.metadata["path_cost"] == 60
        assert schedule.node_ids == ["J2_M1", "J2_M2", "P2"]

    def test_prefers_heavier_branch(self):
        g = PrecedenceGraph()
        for nid in ("S", "A", "B", "T"):
            g.add_node(nid)
        g.add_edge("S", "A", 1)
        g.add_edge("S", "B", 5)
        g.add_edge("A", "T", 1)
        g.add_edge("B", "T", 1)
        schedule = PathExplorerScheduler().search(g)
        assert schedule.node_ids == ["S", "B", "T"]
        assert schedule.metadata["path_cost"] == 6

    def test_cycle_does_not_loop_forever(self):
        g = PrecedenceGraph()
        for nid in ("S", "A", "B"):
            g.add_node(nid)
        g.add_edge("S", "A", 1)
        g.add_edge("A", "B", 1)
        g.add_edge("B", "A", 1)
        schedule = PathExplorerScheduler().search(g)
        assert schedule.node_ids == ["S", "A", "B"]

    def test_expansion_cap(self):
        schedule = PathExplorerScheduler(ExplorerConfig(max_expansions=1)).search(build_demo_graph())
        assert schedule.metadata["truncated"] is True
        assert schedule.metadata["expansions"] == 1
