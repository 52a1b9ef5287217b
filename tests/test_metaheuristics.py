"""
Tests for the permutation fitness, the genetic algorithm and simulated annealing.
"""

from algorithms.meta_ga import GAConfig, GeneticAlgorithmScheduler
from algorithms.meta_sa import SAConfig, SimulatedAnnealingScheduler, filter_satisfied_prefix
from algorithms.objectives import PermutationFitness
from core.scenario import build_demo_graph
from schedulers.evaluation_metrics import compute_evaluation_metrics
from schedulers.graph_model import PrecedenceGraph


def _non_decreasing(values):
    return all(b >= a for a, b in zip(values, values[1:]))


def _abc_graph():
    g = PrecedenceGraph()
    for nid in ("A", "B", "C"):
        g.add_node(nid, durations=[1])
    g.add_edge("A", "B", 5)
    g.add_edge("B", "C", 2)
    return g


class TestPermutationFitness:
    """Test forward cost and reverse penalty."""

    def test_forward_pairs_sum_costs(self):
        g = _abc_graph()
        f = PermutationFitness(g)
        assert f([g.node("A"), g.node("B"), g.node("C")]) == 7

    def test_reverse_pair_is_penalised(self):
        g = _abc_graph()
        f = PermutationFitness(g, penalty=1000)
        b = f.breakdown([g.node("B"), g.node("A"), g.node("C")])
        assert b.reverse_pairs == 1
        assert b.forward_cost == 0
        assert b.value == -1000

    def test_parallel_edges_add_up(self):
        g = _abc_graph()
        g.add_edge("A", "B", 1)
        assert PermutationFitness(g)([g.node("A"), g.node("B")]) == 6


class TestGeneticAlgorithm:
    """Test GA search."""

    def test_best_history_non_decreasing(self):
        cfg = GAConfig(population_size=20, generations=30, seed=42)
        schedule = GeneticAlgorithmScheduler(cfg).search(build_demo_graph())
        history = schedule.metadata["best_history"]
        assert len(history) == 30
        assert _non_decreasing(history)
        assert history[-1] == schedule.metadata["best_fitness"]

    def test_result_is_a_permutation_of_all_nodes(self):
        g = build_demo_graph()
        schedule = GeneticAlgorithmScheduler(GAConfig(population_size=10, generations=5, seed=1)).search(g)
        assert sorted(schedule.node_ids) == sorted(g.node_ids)

    def test_fixed_seed_is_reproducible(self):
        g = build_demo_graph()
        a = GeneticAlgorithmScheduler(GAConfig(generations=10, seed=3)).search(g)
        b = GeneticAlgorithmScheduler(GAConfig(generations=10, seed=3)).search(g)
        assert a.node_ids == b.node_ids
        assert a.metadata["best_history"] == b.metadata["best_history"]

    def test_finds_the_chain_on_a_small_graph(self):
        schedule = GeneticAlgorithmScheduler(GAConfig(population_size=30, generations=40, seed=5)).search(_abc_graph())
        assert schedule.node_ids == ["A", "B", "C"]

    def test_trivial_inputs(self):
        g = PrecedenceGraph()
        assert GeneticAlgorithmScheduler().search(g).is_empty()
        g.add_node("ONLY")
        assert GeneticAlgorithmScheduler().search(g).node_ids == ["ONLY"]


class TestSimulatedAnnealing:
    """Test SA search and the post-filter."""

    def test_best_history_non_decreasing(self):
        schedule = SimulatedAnnealingScheduler(SAConfig(seed=9)).search(build_demo_graph())
        history = schedule.metadata["best_history"]
        assert history
        assert _non_decreasing(history)

    def test_stops_at_temperature_floor(self):
        cfg = SAConfig(initial_temperature=1.0, cooling_rate=0.5, max_iterations=500, seed=1)
        schedule = SimulatedAnnealingScheduler(cfg).search(build_demo_graph())
        # 1.0, 0.5, 0.25, 0.125 are above the 0.1 floor
        assert len(schedule.metadata["best_history"]) == 4

    def test_post_filter_keeps_precedence(self):
        g = build_demo_graph()
        for seed in range(5):
            schedule = SimulatedAnnealingScheduler(SAConfig(seed=seed, max_iterations=50)).search(g)
            metrics = compute_evaluation_metrics(g, schedule, runtime_seconds=0.0)
            assert metrics.precedence_violations == 0
            assert metrics.missing_predecessors == 0
            assert schedule.metadata["dropped"] == len(g) - len(schedule.nodes)

    def test_filter_drops_nodes_with_unsatisfied_predecessors(self):
        g = _abc_graph()
        perm = [g.node("B"), g.node("A"), g.node("C")]
        assert [n.id for n in filter_satisfied_prefix(g, perm)] == ["A"]

    def test_trivial_inputs(self):
        g = PrecedenceGraph()
        g.add_node("ONLY")
        assert SimulatedAnnealingScheduler().search(g).node_ids == ["ONLY"]
