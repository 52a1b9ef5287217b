# algorithms/meta_sa.py
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from schedulers.critical_path import Schedule
from schedulers.graph_model import Node, PrecedenceGraph, node_key
from schedulers.tracing import resolve_tracer

from algorithms.objectives import DEFAULT_REVERSE_PENALTY, PermutationFitness
from algorithms.random_utils import make_rng, swap_two


@dataclass
class SAConfig:
    initial_temperature: float = 1000.0
    cooling_rate: float = 0.995
    max_iterations: int = 500
    min_temperature: float = 0.1
    penalty: float = DEFAULT_REVERSE_PENALTY
    seed: Optional[int] = None


def filter_satisfied_prefix(graph: PrecedenceGraph, perm: List[Node]) -> List[Node]:
    """依次扫描，只保留所有前驱都已被保留的节点，其余丢弃。"""
    _, in_edges = graph.adjacency()
    kept: List[Node] = []
    kept_keys = set()
    for n in perm:
        k = node_key(n.id)
        if all(node_key(e.from_id) in kept_keys for e in in_edges[k]):
            kept.append(n)
            kept_keys.add(k)
    return kept


class SimulatedAnnealingScheduler:
    name = "sa"

    def __init__(self, cfg: Optional[SAConfig] = None) -> None:
        self.cfg = cfg or SAConfig()

    def search(self, graph: PrecedenceGraph, tracer: Optional[logging.Logger] = None) -> Schedule:
        log = resolve_tracer(tracer)
        nodes = graph.nodes
        if len(nodes) <= 1:
            return Schedule(nodes=list(nodes), metadata={"solver": self.name, "best_history": []})

        rng = make_rng(self.cfg.seed)
        fitness = PermutationFitness(graph, self.cfg.penalty)

        cur = list(nodes)
        cur_f = fitness(cur)
        best, best_f = cur[:], cur_f
        history: List[float] = []

        T = float(self.cfg.initial_temperature)
        for it in range(max(0, int(self.cfg.max_iterations))):
            if T < self.cfg.min_temperature:
                break
            cand = cur[:]
            swap_two(cand, rng)
            cand_f = fitness(cand)
            d = cand_f - cur_f
            if d > 0 or rng.random() < math.exp(d / T):
                cur, cur_f = cand, cand_f
                if cur_f > best_f:
                    best, best_f = cur[:], cur_f
            history.append(best_f)
            T *= self.cfg.cooling_rate

        # 后处理：前驱未满足的节点被丢弃（返回的路径可能比节点数短）
        path = filter_satisfied_prefix(graph, best)
        if len(path) < len(best):
            log.warning("[SA] post-filter dropped %d node(s)", len(best) - len(path))
        log.info("[SA] best fitness=%g after %d iterations, T=%g", best_f, len(history), T)
        return Schedule(
            nodes=path,
            metadata={
                "solver": self.name,
                "best_fitness": best_f,
                "best_history": history,
                "dropped": len(best) - len(path),
                "final_temperature": T,
            },
        )
