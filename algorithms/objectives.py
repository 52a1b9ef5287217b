# algorithms/objectives.py
# -*- coding: utf-8 -*-
"""
排列适应度（GA / SA 共用）：

- fitness(perm) = sum(cost(a->b)) - penalty * #reverse
  其中 (a, b) 遍历排列中的相邻节点对：
  - cost(a->b)：a 到 b 的所有正向边的 cost 之和；
  - reverse   ：存在 b->a 边的相邻对（违反先后约束），每对扣一次 penalty。

penalty 默认 1000，相当于“不可行”。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

from schedulers.graph_model import Node, PrecedenceGraph, node_key

DEFAULT_REVERSE_PENALTY = 1000.0


@dataclass(frozen=True)
class FitnessBreakdown:
    forward_cost: float
    reverse_pairs: int
    penalty: float

    @property
    def value(self) -> float:
        return self.forward_cost - self.penalty * self.reverse_pairs


class PermutationFitness:
    def __init__(self, graph: PrecedenceGraph, penalty: float = DEFAULT_REVERSE_PENALTY) -> None:
        self.penalty = float(penalty)
        # (from, to) -> 累计 cost；只统计两端都存在的边
        self._pair_cost: Dict[Tuple[str, str], float] = {}
        for e in graph.edges:
            if not graph.is_known_edge(e):
                continue
            k = (node_key(e.from_id), node_key(e.to_id))
            self._pair_cost[k] = self._pair_cost.get(k, 0.0) + e.cost

    def breakdown(self, perm: Sequence[Node]) -> FitnessBreakdown:
        fwd = 0.0
        rev = 0
        for a, b in zip(perm, perm[1:]):
            ka, kb = node_key(a.id), node_key(b.id)
            c = self._pair_cost.get((ka, kb))
            if c is not None:
                fwd += c
            if (kb, ka) in self._pair_cost:
                rev += 1
        return FitnessBreakdown(forward_cost=fwd, reverse_pairs=rev, penalty=self.penalty)

    def score(self, perm: Sequence[Node]) -> float:
        return self.breakdown(perm).value

    __call__ = score
