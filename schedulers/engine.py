# -*- coding: utf-8 -*-
"""
schedulers/engine.py
调度引擎与算法接口 / Scheduling Engine and Algorithm Interface

说明 / Description
----
- BaseSchedulerAlgorithm：算法统一接口（Protocol），一个方法 search(graph, tracer) -> Schedule
  / Unified algorithm interface (Protocol) with a single search(graph, tracer) -> Schedule;
- SchedulingEngine：统一的“复制图 -> 调用算法 -> 返回结果”流程；每次求解都在图的副本上进行，
  因此同一张图可以被多个求解器先后（或并发）使用。
  / Unified "copy graph -> call algorithm -> return result" workflow; every solve works on a
  / copy, so one graph can be handed to several solvers.
"""

from __future__ import annotations

import logging
import time
from typing import Optional, Protocol

from .critical_path import Schedule
from .graph_model import PrecedenceGraph
from .tracing import resolve_tracer


class BaseSchedulerAlgorithm(Protocol):
    """
    调度算法的基本接口协议。
    Basic interface protocol for scheduling algorithms.
    """
    def search(
        self,
        graph: PrecedenceGraph,
        tracer: Optional[logging.Logger] = None,
    ) -> Schedule:
        """
        由图生成有序节点序列并返回调度方案；tracer 为诊断输出（None 表示不输出）。
        Produce an ordered node sequence from the graph; tracer receives diagnostics (None = silent).
        """
        ...


class SchedulingEngine:
    """
    调度引擎，负责协调图与具体算法。
    Scheduling engine coordinating the graph and a specific algorithm.
    """
    def __init__(
        self,
        graph: PrecedenceGraph,
        algorithm: BaseSchedulerAlgorithm,
        tracer: Optional[logging.Logger] = None,
    ) -> None:
        self.graph = graph
        self.algorithm = algorithm
        self.tracer = resolve_tracer(tracer)
        self.last_runtime_s: float = 0.0

    def run(self) -> Schedule:
        """
        运行调度流程：复制图，交由算法搜索，记录耗时。
        Run the scheduling workflow: copy the graph, hand it to the algorithm, record the runtime.
        """
        working = self.graph.copy()
        t0 = time.perf_counter()
        schedule = self.algorithm.search(working, tracer=self.tracer)
        self.last_runtime_s = time.perf_counter() - t0
        schedule.metadata.setdefault("runtime_s", self.last_runtime_s)
        return schedule
