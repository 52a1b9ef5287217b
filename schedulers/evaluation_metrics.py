# -*- coding: utf-8 -*-
"""
evaluation_metrics.py
调度方案评价指标计算模块 / Schedule evaluation metrics

本文件在整个项目中的角色 / Role of this file in the entire project
--------------------------------
1. 根据调度结果 Schedule 与原图 PrecedenceGraph 计算评价指标，用于不同求解器的公平对比：
   / Compute evaluation metrics from a Schedule and its PrecedenceGraph for a fair comparison
   of the solvers:

   - MS  : Makespan（inf 表示存在未到达的产品节点 / inf flags an unreachable product node）
   - COV : Coverage（已调度节点 / 可调度节点 / scheduled nodes over schedulable nodes）
   - PV  : Precedence Violations（序列中后继排在前驱之前的边数 / edges whose successor precedes its predecessor）
   - MP  : Missing Predecessors（节点已调度但其前驱未调度的边数 / edges whose successor is scheduled without its predecessor）
   - RT  : Runtime（秒 / seconds）
   - RV  : Robustness Variance（多次运行 makespan 的样本方差，可选 / sample variance of makespans, optional）

2. 该模块不依赖具体算法，仅依赖 graph_model 与 critical_path.Schedule。
   / This module does not depend on specific algorithms.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional

from .critical_path import Schedule
from .graph_model import PrecedenceGraph, node_key


@dataclass
class EvaluationMetrics:
    """
    调度指标结果数据结构
    / Data structure for scheduling metric results
    """
    makespan: Optional[float]          # MS
    feasible: bool                     # makespan 有限（或未计算）/ finite makespan (or not computed)
    coverage: float                    # COV
    precedence_violations: int         # PV
    missing_predecessors: int          # MP
    runtime_sec: float                 # RT (秒 / seconds)
    robustness_variance: Optional[float] = None  # RV，可选 / RV, optional


def _schedulable_keys(graph: PrecedenceGraph) -> List[str]:
    keys = [node_key(n.id) for n in graph.nodes if not n.is_product and n.duration > 0]
    return keys or [node_key(n.id) for n in graph.nodes]


def _compute_coverage(graph: PrecedenceGraph, schedule: Schedule) -> float:
    """
    COV = |已调度 ∩ 可调度| / |可调度|（可调度 = 非产品且时长 > 0；若为空则取全部节点）
    """
    pool = _schedulable_keys(graph)
    if not pool:
        return 0.0
    scheduled = {node_key(i) for i in schedule.node_ids}
    return sum(1 for k in pool if k in scheduled) / float(len(pool))


def _compute_precedence(graph: PrecedenceGraph, schedule: Schedule) -> tuple:
    pos = {}
    for i, nid in enumerate(schedule.node_ids):
        pos.setdefault(node_key(nid), i)

    violations = 0
    missing = 0
    for e in graph.edges:
        if not graph.is_known_edge(e):
            continue
        u, v = node_key(e.from_id), node_key(e.to_id)
        if v not in pos:
            continue
        if u not in pos:
            missing += 1
        elif pos[v] < pos[u]:
            violations += 1
    return violations, missing


def _compute_robustness_variance(samples: List[float]) -> Optional[float]:
    """
    RV = 1/(k-1) * sum((MS_i - mean)^2)，仅当 k >= 2 且全部有限时返回。
    / Returned only for k >= 2 finite samples.
    """
    k = len(samples)
    if k < 2 or not all(math.isfinite(x) for x in samples):
        return None
    mean = sum(samples) / float(k)
    return sum((x - mean) ** 2 for x in samples) / float(k - 1)


def compute_evaluation_metrics(
    graph: PrecedenceGraph,
    schedule: Schedule,
    runtime_seconds: Optional[float] = None,
    robustness_samples: Optional[List[float]] = None,
) -> EvaluationMetrics:
    """
    综合计算各项指标；runtime 未显式传入时读取 schedule.metadata["runtime_s"]。
    / Compute all metrics; runtime falls back to schedule.metadata["runtime_s"].
    """
    violations, missing = _compute_precedence(graph, schedule)
    if runtime_seconds is None:
        runtime_seconds = float(schedule.metadata.get("runtime_s", 0.0))

    return EvaluationMetrics(
        makespan=schedule.makespan,
        feasible=schedule.is_feasible(),
        coverage=_compute_coverage(graph, schedule),
        precedence_violations=violations,
        missing_predecessors=missing,
        runtime_sec=float(runtime_seconds),
        robustness_variance=_compute_robustness_variance(robustness_samples) if robustness_samples else None,
    )
