# -*- coding: utf-8 -*-
"""
algorithms/list_scheduling.py
列表调度启发式 / List-scheduling heuristic

流程 / Workflow
----
1) 只含工艺边（同一作业的机器间转移 + 末道工序 -> 产品）的图上做拓扑排序；
   就绪节点按作业在虚拟两机问题（分割点 ceil(m/2)）中的 Johnson 位次优先；
   / Topologically sort the technological edge set; ready nodes are prioritised by their
   / job's Johnson rank on the virtual two-machine problem split at ceil(m/2);
2) 取其中时长 > 0 的 "_M1" 节点得到作业顺序；
   / The positive-duration "_M1" nodes of that order give the job order;
3) 重建流水车间边集，重新计算最早完成时间；makespan = 汇点最大完成时间。
   / Rebuild the flow-shop edge set, recompute earliest finish; makespan = latest sink finish.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional

from schedulers.critical_path import Schedule, evaluate_job_order, expand_job_order, topological_order
from schedulers.critical_path import build_flow_shop_edges
from schedulers.graph_model import Edge, Node, PrecedenceGraph, node_key, split_machine_id
from schedulers.tracing import resolve_tracer

from algorithms.cds import virtual_two_machine_jobs
from algorithms.johnson import johnson_rank


def technological_edges(graph: PrecedenceGraph) -> List[Edge]:
    edges: List[Edge] = []
    for b in graph.base_job_ids():
        edges.extend(build_flow_shop_edges(graph, [b]))
    return edges


def job_rank_priority(graph: PrecedenceGraph) -> Callable[[Node], int]:
    machines = graph.machine_count()
    if machines < 2:
        return lambda n: 0
    split = math.ceil(machines / 2)
    rank = johnson_rank(virtual_two_machine_jobs(graph, split, machines))
    worst = len(rank)

    def priority(n: Node) -> int:
        parts = split_machine_id(n.id)
        if parts is None:
            return worst
        return rank.get(node_key(parts[0]), worst)

    return priority


class ListScheduler:
    name = "ls"

    def search(self, graph: PrecedenceGraph, tracer: Optional[logging.Logger] = None) -> Schedule:
        log = resolve_tracer(tracer)
        priority = job_rank_priority(graph)

        tech = graph.with_edges(technological_edges(graph))
        base_order: List[str] = []
        for n in topological_order(tech, priority):
            parts = split_machine_id(n.id)
            if parts is not None and parts[1] == 1 and n.duration > 0:
                base_order.append(parts[0])
        log.info("[LS] base order: %s", " ".join(base_order))

        cand = evaluate_job_order(graph, base_order, tracer=log)
        sinks = cand.graph.sink_nodes()
        ms = max((cand.result.finish[n.id] for n in sinks), default=0.0)
        log.info("[LS] makespan=%g", ms)

        schedule = expand_job_order(cand, self.name, priority=priority)
        schedule.makespan = ms
        return schedule
