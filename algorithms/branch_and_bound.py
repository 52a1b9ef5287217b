# -*- coding: utf-8 -*-
"""
algorithms/branch_and_bound.py
两机流水车间的最优先分支定界 / Best-first branch-and-bound for the two-machine flow shop

状态 / State
----
(部分作业序列, 下界)；堆按下界出队，下界相同按入堆先后（FIFO）。
/ (partial job sequence, lower bound); the heap pops the smallest bound, FIFO among ties.

下界 / Lower bound
----
模拟部分序列得到 (C1, C2)，未排作业在 M1/M2 上的时长和为 rem1/rem2，min2 为未排作业最小 M2：
    LB = max(C1 + rem1 + min2, C2 + rem2)
/ Simulate the partial sequence for (C1, C2); rem1/rem2 are the summed durations of the
/ unscheduled jobs and min2 their smallest M2 duration.

上界 / Upper bound
----
以 Johnson 顺序的 makespan 作为初始 C_UB 与初始最优解；若为 inf 则直接报不可行。
/ Seeded with the makespan of the Johnson order, which is also the initial incumbent;
/ an unbounded seed is reported as infeasible.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from schedulers.critical_path import Schedule, evaluate_job_order, expand_job_order
from schedulers.errors import InfeasibleScheduleError
from schedulers.graph_model import PrecedenceGraph
from schedulers.tracing import resolve_tracer

from algorithms.johnson import (
    TwoMachineJob,
    extract_two_machine_jobs,
    johnson_order,
    simulate_two_machine,
    two_machine_makespan,
)

BRUTE_FORCE_MAX_JOBS = 8


@dataclass
class BnBConfig:
    # 扩展节点上限；None 表示不限（达到上限时返回当前最优解）
    max_nodes: Optional[int] = None


def lower_bound(seq: Sequence[TwoMachineJob], remaining: Sequence[TwoMachineJob]) -> float:
    c1, c2 = simulate_two_machine(seq)
    if not remaining:
        return max(c1, c2)
    rem1 = sum(j.m1 for j in remaining)
    rem2 = sum(j.m2 for j in remaining)
    min2 = min(j.m2 for j in remaining)
    return max(c1 + rem1 + min2, c2 + rem2)


def brute_force_order(
    jobs: Sequence[TwoMachineJob],
    max_jobs: int = BRUTE_FORCE_MAX_JOBS,
) -> Tuple[List[TwoMachineJob], float]:
    """穷举所有排列（仅用于小规模参考）。 / Exhaustive reference over all permutations (small inputs only)."""
    if len(jobs) > max_jobs:
        raise ValueError(f"brute force is limited to {max_jobs} jobs, got {len(jobs)}")
    best: List[TwoMachineJob] = list(jobs)
    best_ms = two_machine_makespan(best)
    for perm in itertools.permutations(jobs):
        ms = two_machine_makespan(perm)
        if ms < best_ms:
            best, best_ms = list(perm), ms
    return best, best_ms


class BranchAndBoundScheduler:
    name = "bnb"

    def __init__(self, cfg: Optional[BnBConfig] = None) -> None:
        self.cfg = cfg or BnBConfig()

    def search(self, graph: PrecedenceGraph, tracer: Optional[logging.Logger] = None) -> Schedule:
        log = resolve_tracer(tracer)
        jobs = extract_two_machine_jobs(graph)
        if not jobs:
            log.error("[BnB] no jobs with M1/M2 durations found")
            return Schedule(metadata={"solver": self.name, "error": "no two-machine jobs"})

        seed = evaluate_job_order(graph, [j.job_id for j in johnson_order(jobs)], tracer=log)
        if not math.isfinite(seed.makespan):
            raise InfeasibleScheduleError(self.name, "seed makespan from Johnson order is unbounded")

        c_ub = seed.makespan
        best = seed
        log.info("[BnB] seed C_UB=%g", c_ub)

        n = len(jobs)
        counter = itertools.count()
        heap: List[Tuple[float, int, Tuple[int, ...]]] = [(lower_bound([], jobs), next(counter), ())]
        expanded = pruned = improvements = 0
        truncated = False
        cap = self.cfg.max_nodes

        while heap:
            if cap is not None and expanded >= cap:
                truncated = True
                log.warning("[BnB] expansion cap %d reached, returning incumbent", cap)
                break

            lb, _, seq = heapq.heappop(heap)
            if lb >= c_ub:
                pruned += 1
                continue
            expanded += 1

            used = set(seq)
            for i in range(n):
                if i in used:
                    continue
                new_seq = seq + (i,)
                rest = [jobs[r] for r in range(n) if r != i and r not in used]
                bound = lower_bound([jobs[s] for s in new_seq], rest)
                if bound >= c_ub:
                    pruned += 1
                    continue

                if len(new_seq) == n:
                    cand = evaluate_job_order(graph, [jobs[s].job_id for s in new_seq], tracer=log)
                    if cand.makespan < c_ub:
                        c_ub = cand.makespan
                        best = cand
                        improvements += 1
                        log.info("[BnB] improved C_UB=%g", c_ub)
                else:
                    heapq.heappush(heap, (bound, next(counter), new_seq))

        log.info("[BnB] done: makespan=%g expanded=%d pruned=%d", c_ub, expanded, pruned)
        return expand_job_order(
            best,
            self.name,
            seed_makespan=seed.makespan,
            expanded=expanded,
            pruned=pruned,
            improvements=improvements,
            truncated=truncated,
        )
