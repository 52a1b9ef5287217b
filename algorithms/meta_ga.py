# algorithms/meta_ga.py
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import List, Optional

from schedulers.critical_path import Schedule
from schedulers.graph_model import Node, PrecedenceGraph, node_key
from schedulers.tracing import resolve_tracer

from algorithms.objectives import DEFAULT_REVERSE_PENALTY, PermutationFitness
from algorithms.random_utils import make_rng, shuffled, swap_two


@dataclass
class GAConfig:
    population_size: int = 50
    generations: int = 100
    mutation_rate: float = 0.2
    parent_ratio: float = 0.2
    penalty: float = DEFAULT_REVERSE_PENALTY
    seed: Optional[int] = None


class GeneticAlgorithmScheduler:
    name = "ga"

    def __init__(self, cfg: Optional[GAConfig] = None) -> None:
        self.cfg = cfg or GAConfig()

    def _crossover(self, a: List[Node], b: List[Node], rng: random.Random) -> List[Node]:
        # 前缀取自 a，其余节点按 b 中的顺序补齐
        cut = rng.randint(1, len(a) - 1)
        head = a[:cut]
        taken = {node_key(n.id) for n in head}
        return head + [n for n in b if node_key(n.id) not in taken]

    def search(self, graph: PrecedenceGraph, tracer: Optional[logging.Logger] = None) -> Schedule:
        log = resolve_tracer(tracer)
        nodes = graph.nodes
        if len(nodes) <= 1:
            return Schedule(nodes=list(nodes), metadata={"solver": self.name, "best_history": []})

        rng = make_rng(self.cfg.seed)
        fitness = PermutationFitness(graph, self.cfg.penalty)
        pop_size = max(1, int(self.cfg.population_size))
        n_parents = max(1, int(pop_size * self.cfg.parent_ratio))

        pop = [shuffled(nodes, rng) for _ in range(pop_size)]
        best: List[Node] = pop[0][:]
        best_fit = -math.inf
        history: List[float] = []

        for gen in range(max(0, int(self.cfg.generations))):
            scored = sorted(((fitness(p), p) for p in pop), key=lambda t: t[0], reverse=True)
            if scored[0][0] > best_fit:
                best_fit = scored[0][0]
                best = scored[0][1][:]
            history.append(best_fit)
            log.debug("[GA] gen=%d best=%g", gen, best_fit)

            parents = [p for _, p in scored[:n_parents]]
            new_pop = [p[:] for p in parents]
            while len(new_pop) < pop_size:
                child = self._crossover(rng.choice(parents), rng.choice(parents), rng)
                if rng.random() < self.cfg.mutation_rate:
                    swap_two(child, rng)
                new_pop.append(child)
            pop = new_pop

        if not history:
            best_fit = fitness(best)
        log.info("[GA] best fitness=%g after %d generations", best_fit, len(history))
        return Schedule(
            nodes=best,
            metadata={
                "solver": self.name,
                "best_fitness": best_fit,
                "best_history": history,
                "reverse_pairs": fitness.breakdown(best).reverse_pairs,
            },
        )
