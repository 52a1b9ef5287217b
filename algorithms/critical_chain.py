# -*- coding: utf-8 -*-
"""
algorithms/critical_chain.py
关键链求解器与路径穷举器 / Critical-chain solver and path explorer

- CriticalPathScheduler：按拓扑序传播最早完成时间，返回决定 makespan 的最长依赖链；
  / CriticalPathScheduler: propagate earliest finish in topological order and return the
  / longest dependent chain;
- PathExplorerScheduler：从每个源点出发，用显式栈做深度优先搜索（路径内节点不重复），
  记录边 cost 之和最大的路径（覆盖全部节点或走到尽头时结算）。
  / PathExplorerScheduler: explicit-stack DFS from every source (no node repeated on a path),
  / keeping the path with the largest total edge cost (settled when it covers every node or
  / reaches a dead end).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from schedulers.critical_path import Schedule, build_timeline, compute_earliest_finish, critical_chain
from schedulers.graph_model import PrecedenceGraph, node_key
from schedulers.tracing import resolve_tracer


class CriticalPathScheduler:
    name = "cpm"

    def search(self, graph: PrecedenceGraph, tracer: Optional[logging.Logger] = None) -> Schedule:
        log = resolve_tracer(tracer)
        result = compute_earliest_finish(graph)
        chain = critical_chain(graph, result)
        length = result.finish[chain[-1].id] if chain else 0.0
        log.info("[CPM] chain of %d nodes, length=%g", len(chain), length)
        return Schedule(
            nodes=chain,
            makespan=length,
            metadata={"solver": self.name, "timeline": build_timeline(chain, result)},
        )


@dataclass
class ExplorerConfig:
    # 最多出栈次数；None 表示穷举
    max_expansions: Optional[int] = None


class PathExplorerScheduler:
    name = "explore"

    def __init__(self, cfg: Optional[ExplorerConfig] = None) -> None:
        self.cfg = cfg or ExplorerConfig()

    def search(self, graph: PrecedenceGraph, tracer: Optional[logging.Logger] = None) -> Schedule:
        log = resolve_tracer(tracer)
        out_edges, in_edges = graph.adjacency()
        total = len(graph)

        best_path: Tuple[str, ...] = ()
        best_cost = -math.inf
        expansions = 0
        truncated = False
        cap = self.cfg.max_expansions

        sources = [node_key(n.id) for n in graph.nodes if not in_edges[node_key(n.id)]]
        stack: List[Tuple[Tuple[str, ...], float]] = [((s,), 0.0) for s in reversed(sources)]

        while stack:
            if cap is not None and expansions >= cap:
                truncated = True
                log.warning("[Explore] expansion cap %d reached", cap)
                break
            path, cost = stack.pop()
            expansions += 1

            on_path = set(path)
            nexts = [e for e in out_edges[path[-1]] if node_key(e.to_id) not in on_path]
            if len(path) == total or not nexts:
                if cost > best_cost:
                    best_cost, best_path = cost, path
                    log.debug("[Explore] new best cost=%g len=%d", cost, len(path))
                continue

            for e in reversed(nexts):
                stack.append((path + (node_key(e.to_id),), cost + e.cost))

        nodes = [graph.node(k) for k in best_path]
        log.info("[Explore] best path cost=%g over %d nodes (%d expansions)",
                 best_cost if nodes else 0.0, len(nodes), expansions)
        return Schedule(
            nodes=nodes,
            metadata={
                "solver": self.name,
                "path_cost": best_cost if nodes else 0.0,
                "expansions": expansions,
                "truncated": truncated,
            },
        )
