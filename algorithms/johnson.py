# -*- coding: utf-8 -*-
"""
algorithms/johnson.py
两机流水车间 Johnson 规则 / Johnson's rule for the two-machine flow shop

规则 / Rule
----
- A 集合：M1 <= M2 的作业，按 M1 升序；
  / Set A: jobs with M1 <= M2, ascending by M1;
- B 集合：其余作业，按 M2 降序；
  / Set B: the other jobs, descending by M2;
- 顺序 = A + B（两次排序都是稳定排序，相同键保持输入顺序）。
  / Order = A + B (both sorts are stable, equal keys keep input order).

该顺序对两机流水车间的 makespan 最优，不做任何搜索。
/ The order minimises the two-machine flow-shop makespan; no search is performed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from schedulers.critical_path import Schedule, evaluate_job_order, expand_job_order
from schedulers.graph_model import PrecedenceGraph, node_key
from schedulers.tracing import resolve_tracer


@dataclass(frozen=True)
class TwoMachineJob:
    job_id: str
    m1: float
    m2: float


def extract_two_machine_jobs(graph: PrecedenceGraph) -> List[TwoMachineJob]:
    """基础作业的 (M1, M2) 时长；两者都为 0 的作业被丢弃。
       / (M1, M2) durations of the base jobs; jobs with both at 0 are dropped."""
    jobs: List[TwoMachineJob] = []
    for b in graph.base_job_ids():
        m1 = graph.machine_time(b, 1)
        m2 = graph.machine_time(b, 2)
        if m1 <= 0 and m2 <= 0:
            continue
        jobs.append(TwoMachineJob(b, m1, m2))
    return jobs


def johnson_order(jobs: Sequence[TwoMachineJob]) -> List[TwoMachineJob]:
    set_a = sorted((j for j in jobs if j.m1 <= j.m2), key=lambda j: j.m1)
    set_b = sorted((j for j in jobs if j.m1 > j.m2), key=lambda j: j.m2, reverse=True)
    return set_a + set_b


def johnson_rank(jobs: Sequence[TwoMachineJob]) -> Dict[str, int]:
    """作业 ID（规范键）-> 在 Johnson 顺序中的位置。 / Canonical job key -> position in Johnson order."""
    return {node_key(j.job_id): i for i, j in enumerate(johnson_order(jobs))}


def simulate_two_machine(seq: Sequence[TwoMachineJob], c1: float = 0.0, c2: float = 0.0) -> Tuple[float, float]:
    """依次加工 seq，返回最后一个作业在 M1/M2 上的完成时间。
       / Process seq in order; return the completion times (C1, C2) of its last job."""
    for j in seq:
        c1 += j.m1
        c2 = max(c2, c1) + j.m2
    return c1, c2


def two_machine_makespan(seq: Sequence[TwoMachineJob]) -> float:
    return simulate_two_machine(seq)[1]


class JohnsonScheduler:
    """Johnson 规则求解器（两台机器）。 / Johnson's rule solver (two machines)."""

    name = "johnson"

    def search(self, graph: PrecedenceGraph, tracer: Optional[logging.Logger] = None) -> Schedule:
        log = resolve_tracer(tracer)
        jobs = extract_two_machine_jobs(graph)
        if not jobs:
            log.error("[Johnson] no jobs with M1/M2 durations found")
            return Schedule(metadata={"solver": self.name, "error": "no two-machine jobs"})

        order = johnson_order(jobs)
        ids = [j.job_id for j in order]
        log.info("[Johnson] order: %s", " ".join(ids))

        cand = evaluate_job_order(graph, ids, tracer=log)
        log.info("[Johnson] makespan=%g (two-machine simulation=%g)", cand.makespan, two_machine_makespan(order))
        return expand_job_order(cand, self.name, two_machine_makespan=two_machine_makespan(order))
