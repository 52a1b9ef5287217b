# -*- coding: utf-8 -*-
"""
critical_path.py
拓扑排序、关键路径（最早完成时间）传播与候选调度 / Topological ordering, critical-path
(earliest-finish) propagation and candidate schedules

本文件在整个项目中的角色 / Role of this file in the entire project
--------------------------------
1. topological_order：Kahn 算法；只统计两端都存在的边的入度（悬挂边被忽略）；
   存在环时抛出 InfeasibleGraphError。
   / topological_order: Kahn's algorithm; in-degree only counts edges whose endpoints both
   / exist (dangling edges are ignored); a cycle raises InfeasibleGraphError.

2. compute_earliest_finish：按拓扑序松弛
       start(v) = max(start(v), start(u) + dur(u) + cost(u, v))
   未到达节点的 start 为 -1，finish 为 UNREACHABLE (= inf)。
   / compute_earliest_finish: relax in topological order; unreached nodes keep start -1
   / and get finish UNREACHABLE (= inf).

3. makespan：产品节点最大完成时间（无产品节点时取汇点）。
   / makespan: latest finish over product nodes (over sinks when there is no product node).

4. 候选调度：由作业顺序生成流水车间边集（不修改原图），在 graph.with_edges(...) 上求值，
   再展开为 Schedule。
   / Candidate schedules: build a flow-shop edge set from a job order (the canonical graph
   / is left untouched), evaluate it on graph.with_edges(...), expand it into a Schedule.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from .errors import InfeasibleGraphError
from .graph_model import Edge, Node, PrecedenceGraph, machine_node_id, node_key, split_machine_id

UNREACHABLE = math.inf
START_UNREACHED = -1.0


# ==============================
# 1. 调度结果 / Schedule value type
# ==============================

@dataclass
class Schedule:
    """
    求解器输出：有序节点序列 + 作业顺序 + makespan + 元数据。
    / Solver output: ordered node sequence + job order + makespan + metadata.

    makespan 为 None 表示该求解器不计算 makespan；inf 表示不可行（存在未到达的产品节点）。
    / makespan None means the solver does not compute one; inf means infeasible.
    """
    nodes: List[Node] = field(default_factory=list)
    job_order: List[str] = field(default_factory=list)
    makespan: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def node_ids(self) -> List[str]:
        return [n.id for n in self.nodes]

    def is_empty(self) -> bool:
        return not self.nodes

    def is_feasible(self) -> bool:
        return self.makespan is None or math.isfinite(self.makespan)


# ==============================
# 2. 拓扑排序 / Topological ordering
# ==============================

def topological_order(
    graph: PrecedenceGraph,
    priority: Optional[Callable[[Node], Any]] = None,
) -> List[Node]:
    """
    Kahn 拓扑排序。默认就绪节点按插入顺序 FIFO 出队；给定 priority 时改为稳定优先队列
    （键小者先出，键相同按进入队列的先后）。
    / Kahn's topological sort. Ready nodes are served FIFO in insertion order by default;
    / with a priority key the queue becomes a stable priority queue (smallest key first).
    """
    out_edges, in_edges = graph.adjacency()
    indeg = {k: len(v) for k, v in in_edges.items()}
    nodes = {node_key(n.id): n for n in graph.nodes}

    order: List[Node] = []
    if priority is None:
        ready = deque(k for k in nodes if indeg[k] == 0)
        while ready:
            k = ready.popleft()
            order.append(nodes[k])
            for e in out_edges[k]:
                tk = node_key(e.to_id)
                indeg[tk] -= 1
                if indeg[tk] == 0:
                    ready.append(tk)
    else:
        counter = itertools.count()
        heap = [(priority(nodes[k]), next(counter), k) for k in nodes if indeg[k] == 0]
        heapq.heapify(heap)
        while heap:
            _, _, k = heapq.heappop(heap)
            order.append(nodes[k])
            for e in out_edges[k]:
                tk = node_key(e.to_id)
                indeg[tk] -= 1
                if indeg[tk] == 0:
                    heapq.heappush(heap, (priority(nodes[tk]), next(counter), tk))

    if len(order) < len(nodes):
        unresolved = [nodes[k].id for k in nodes if indeg[k] > 0]
        raise InfeasibleGraphError(len(order), len(nodes), unresolved)
    return order


# ==============================
# 3. 最早完成时间 / Earliest finish propagation
# ==============================

@dataclass
class CriticalPathResult:
    """start/finish 以节点 ID 为键；via 记录确定某节点开始时间的入边。
       / start/finish keyed by node ID; via holds the incoming edge that fixed each start."""
    order: List[Node]
    start: Dict[str, float]
    finish: Dict[str, float]
    via: Dict[str, Optional[Edge]]

    def finish_of(self, node_id: str) -> float:
        for k, v in self.finish.items():
            if node_key(k) == node_key(node_id):
                return v
        raise KeyError(node_id)

    def is_reached(self, node_id: str) -> bool:
        return math.isfinite(self.finish_of(node_id))


def compute_earliest_finish(
    graph: PrecedenceGraph,
    order: Optional[Sequence[Node]] = None,
) -> CriticalPathResult:
    if order is None:
        order = topological_order(graph)
    out_edges, _ = graph.adjacency()

    # 悬挂入边也算“有入边”：这样的节点不会被当作起点
    has_incoming = {node_key(e.to_id) for e in graph.edges}

    start: Dict[str, float] = {}
    via: Dict[str, Optional[Edge]] = {}
    for n in order:
        start[n.id] = 0.0 if node_key(n.id) not in has_incoming else START_UNREACHED
        via[n.id] = None

    ids = {node_key(n.id): n.id for n in order}
    for u in order:
        su = start[u.id]
        if su < 0:
            continue
        base = su + u.duration
        for e in out_edges[node_key(u.id)]:
            vid = ids[node_key(e.to_id)]
            cand = base + e.cost
            if cand > start[vid]:
                start[vid] = cand
                via[vid] = e

    finish: Dict[str, float] = {}
    for n in order:
        s = start[n.id]
        finish[n.id] = s + n.duration if s >= 0 else UNREACHABLE

    return CriticalPathResult(order=list(order), start=start, finish=finish, via=via)


def makespan(graph: PrecedenceGraph, finish: Dict[str, float]) -> float:
    """
    产品节点中的最大完成时间；任一产品节点未到达则为 inf；没有节点时为 0。
    / Latest finish over product nodes; inf if any product is unreachable; 0 for an empty graph.
    """
    if len(graph) == 0:
        return 0.0
    targets = graph.product_nodes() or graph.sink_nodes()
    if not targets:
        return 0.0
    return max(finish.get(n.id, UNREACHABLE) for n in targets)


def critical_chain(graph: PrecedenceGraph, result: Optional[CriticalPathResult] = None) -> List[Node]:
    """
    最长依赖链：从完成时间最大的节点沿 via 边回溯。
    / Longest dependent chain: walk back along the via edges from the latest-finishing node.
    """
    if result is None:
        result = compute_earliest_finish(graph)

    end: Optional[Node] = None
    best = -math.inf
    for n in result.order:
        f = result.finish[n.id]
        if math.isfinite(f) and f > best:
            best, end = f, n
    if end is None:
        return []

    chain = [end]
    cur = end
    while result.via[cur.id] is not None:
        cur = graph.node(result.via[cur.id].from_id)
        chain.append(cur)
    chain.reverse()
    return chain


def build_timeline(nodes: Sequence[Node], result: CriticalPathResult) -> List[Dict[str, Any]]:
    """节点的开始/完成时间表（供 JSON/甘特图使用）。 / Start/finish rows for reports and Gantt charts."""
    rows: List[Dict[str, Any]] = []
    for n in nodes:
        parts = split_machine_id(n.id)
        rows.append({
            "id": n.id,
            "job": parts[0] if parts else n.id,
            "machine": parts[1] if parts else 0,
            "start": result.start.get(n.id, START_UNREACHED),
            "finish": result.finish.get(n.id, UNREACHABLE),
        })
    return rows


# ==============================
# 4. 候选调度 / Candidate schedules
# ==============================

@dataclass
class CandidateSchedule:
    job_order: List[str]
    edges: List[Edge]
    graph: PrecedenceGraph
    result: CriticalPathResult
    makespan: float


def _last_machine(graph: PrecedenceGraph, job_id: str, machines: int) -> int:
    for m in range(machines, 0, -1):
        if graph.machine_node(job_id, m) is not None:
            return m
    return 0


def build_flow_shop_edges(
    graph: PrecedenceGraph,
    job_order: Sequence[str],
    allow_dangling: bool = False,
    tracer: Optional[logging.Logger] = None,
) -> List[Edge]:
    """
    按作业顺序生成流水车间边集（全部 cost=0）：
      (a) 同一作业跨机器：b_Mm -> b_M(m+1)
      (b) 同一机器上相邻作业：a_Mm -> b_Mm
      (c) 作业最后一台机器 -> 该作业的产品节点
    / Flow-shop edge set for a job order, all with cost 0:
    / (a) technological edges, (b) per-machine sequencing edges, (c) terminating edges.
    """
    machines = graph.machine_count()
    scratch = graph.with_edges([])

    def link(a: str, b: str) -> None:
        scratch.add_edge(a, b, 0.0, allow_dangling=allow_dangling, tracer=tracer)

    for job in job_order:
        for m in range(1, machines):
            link(machine_node_id(job, m), machine_node_id(job, m + 1))

    for m in range(1, machines + 1):
        for a, b in zip(job_order, job_order[1:]):
            link(machine_node_id(a, m), machine_node_id(b, m))

    for job in job_order:
        last = _last_machine(graph, job, machines)
        product = graph.product_for(job)
        if last and product is not None:
            link(machine_node_id(job, last), product.id)

    return scratch.edges


def evaluate_job_order(
    graph: PrecedenceGraph,
    job_order: Sequence[str],
    allow_dangling: bool = False,
    tracer: Optional[logging.Logger] = None,
) -> CandidateSchedule:
    edges = build_flow_shop_edges(graph, job_order, allow_dangling=allow_dangling, tracer=tracer)
    cand = graph.with_edges(edges)
    result = compute_earliest_finish(cand)
    return CandidateSchedule(
        job_order=list(job_order),
        edges=edges,
        graph=cand,
        result=result,
        makespan=makespan(cand, result.finish),
    )


def scheduled_nodes(order: Sequence[Node]) -> List[Node]:
    """去掉产品节点与时长为 0 的节点。 / Drop product nodes and zero-duration nodes."""
    return [n for n in order if not n.is_product and n.duration > 0]


def expand_job_order(
    candidate: CandidateSchedule,
    solver: str,
    priority: Optional[Callable[[Node], Any]] = None,
    **extra: Any,
) -> Schedule:
    order = candidate.result.order if priority is None else topological_order(candidate.graph, priority)
    nodes = scheduled_nodes(order)
    metadata: Dict[str, Any] = {
        "solver": solver,
        "timeline": build_timeline(nodes, candidate.result),
    }
    metadata.update(extra)
    return Schedule(
        nodes=nodes,
        job_order=list(candidate.job_order),
        makespan=candidate.makespan,
        metadata=metadata,
    )
