# -*- coding: utf-8 -*-
"""
algorithms/cds.py
CDS（Campbell–Dudek–Smith）多机启发式 / CDS multi-machine heuristic

对 k = 1..m-1 构造虚拟两机问题：
    虚拟 M1 = 机器 1..k 的时长之和
    虚拟 M2 = 机器 m-k+1..m 的时长之和
用 Johnson 规则排序，重建流水车间边集并用关键路径求 makespan，保留最好的一个（并列取较小的 k）。
/ For k = 1..m-1 build a virtual two-machine problem, order it with Johnson's rule, rebuild
/ the flow-shop edge set, evaluate its makespan by critical path and keep the best
/ (ties go to the smaller k).
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

from schedulers.critical_path import CandidateSchedule, Schedule, evaluate_job_order, expand_job_order
from schedulers.graph_model import PrecedenceGraph
from schedulers.tracing import resolve_tracer

from algorithms.johnson import TwoMachineJob, johnson_order


def virtual_two_machine_jobs(graph: PrecedenceGraph, k: int, machines: int) -> List[TwoMachineJob]:
    jobs: List[TwoMachineJob] = []
    for b in graph.base_job_ids():
        v1 = sum(graph.machine_time(b, m) for m in range(1, k + 1))
        v2 = sum(graph.machine_time(b, m) for m in range(machines - k + 1, machines + 1))
        if v1 <= 0 and v2 <= 0:
            continue
        jobs.append(TwoMachineJob(b, v1, v2))
    return jobs


class CDSScheduler:
    name = "cds"

    def search(self, graph: PrecedenceGraph, tracer: Optional[logging.Logger] = None) -> Schedule:
        log = resolve_tracer(tracer)
        machines = graph.machine_count()
        if machines < 2:
            log.error("[CDS] at least two machines are required, found %d", machines)
            return Schedule(metadata={"solver": self.name, "error": "insufficient machines"})

        best: Optional[CandidateSchedule] = None
        best_k = 0
        candidates: List[Dict[str, Any]] = []

        for k in range(1, machines):
            jobs = virtual_two_machine_jobs(graph, k, machines)
            ids = [j.job_id for j in johnson_order(jobs)]
            cand = evaluate_job_order(graph, ids, allow_dangling=True, tracer=log)
            candidates.append({"k": k, "order": ids, "makespan": cand.makespan})
            log.info("[CDS] k=%d order=%s makespan=%g", k, " ".join(ids), cand.makespan)

            if not math.isfinite(cand.makespan):
                continue
            if best is None or cand.makespan < best.makespan:
                best, best_k = cand, k

        if best is None:
            log.error("[CDS] no split produced a finite makespan")
            return Schedule(metadata={"solver": self.name, "error": "no feasible split", "candidates": candidates})

        log.info("[CDS] best k=%d makespan=%g", best_k, best.makespan)
        return expand_job_order(best, self.name, best_k=best_k, candidates=candidates)
