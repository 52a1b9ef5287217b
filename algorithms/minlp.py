# algorithms/minlp.py
# -*- coding: utf-8 -*-
"""
开始时间模型（MINLP 桥接）/ Start-time model (MINLP bridge)

变量 / Variables
----
- t_<id> ∈ [0, 1000]：每个节点的开始时间；
- T ∈ [0, 10000]    ：makespan；目标 min T。

约束 / Constraints
----
- 每条边：t_to - t_from >= cost
- 每个节点：T - t_i >= dur_i（makespan 覆盖节点自身的加工时长）

两种后端 / Two backends
----
- "bonmin"：写出 OSiL 模型，调用 `<exe> -osil <model> -solution <sol>`，读取解文件；
- "pulp"  ：同一线性模型交给 PuLP/CBC 在进程内求解。
"""

from __future__ import annotations

import logging
import math
import os
import shutil
import tempfile
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from schedulers.critical_path import Schedule
from schedulers.errors import EmptySolutionError, InfeasibleScheduleError, SolverUnavailableError
from schedulers.graph_model import PrecedenceGraph, split_machine_id
from schedulers.tracing import resolve_tracer

from algorithms.external import DEFAULT_TIMEOUT_S, run_solver_process

OSIL_NAMESPACE = "os.optimizationservices.org"
START_UPPER = 1000.0
MAKESPAN_UPPER = 10000.0


@dataclass
class MINLPConfig:
    backend: str = "bonmin"  # bonmin / pulp
    executable: str = "bonmin"
    timeout_s: float = DEFAULT_TIMEOUT_S
    # 保留临时模型/解文件（调试用）
    keep_files: bool = False
    verbose: bool = False


def _fmt(v: float) -> str:
    return f"{float(v):g}"


def build_osil(graph: PrecedenceGraph) -> str:
    """生成 OSiL 文档；约束矩阵按行存储（start/colIdx/value）。"""
    nodes = graph.nodes
    index = {n.id: i for i, n in enumerate(nodes)}
    t_idx = len(nodes)
    edges = [e for e in graph.edges if graph.is_known_edge(e)]

    root = ET.Element("osil", {"xmlns": OSIL_NAMESPACE})
    header = ET.SubElement(root, "instanceHeader")
    ET.SubElement(header, "name").text = "SGraphSchedule"
    data = ET.SubElement(root, "instanceData")

    variables = ET.SubElement(data, "variables", {"numberOfVariables": str(len(nodes) + 1)})
    for n in nodes:
        ET.SubElement(variables, "var", {"name": f"t_{n.id}", "type": "C", "lb": "0", "ub": _fmt(START_UPPER)})
    ET.SubElement(variables, "var", {"name": "T", "type": "C", "lb": "0", "ub": _fmt(MAKESPAN_UPPER)})

    objectives = ET.SubElement(data, "objectives", {"numberOfObjectives": "1"})
    obj = ET.SubElement(objectives, "obj", {"maxOrMin": "min", "name": "Makespan", "numberOfObjCoef": "1"})
    ET.SubElement(obj, "coef", {"idx": str(t_idx)}).text = "1"

    constraints = ET.SubElement(data, "constraints", {"numberOfConstraints": str(len(edges) + len(nodes))})
    starts: List[int] = [0]
    cols: List[int] = []
    vals: List[float] = []

    for ci, e in enumerate(edges):
        ET.SubElement(constraints, "con", {"name": f"Prec_{ci}", "lb": _fmt(e.cost)})
        cols += [index[graph.node(e.to_id).id], index[graph.node(e.from_id).id]]
        vals += [1.0, -1.0]
        starts.append(len(cols))

    for n in nodes:
        ET.SubElement(constraints, "con", {"name": f"Makespan_{n.id}", "lb": _fmt(n.duration)})
        cols += [t_idx, index[n.id]]
        vals += [1.0, -1.0]
        starts.append(len(cols))

    lcc = ET.SubElement(data, "linearConstraintCoefficients", {"numberOfValues": str(len(vals))})
    for tag, seq in (("start", starts), ("colIdx", cols), ("value", vals)):
        holder = ET.SubElement(lcc, tag)
        for v in seq:
            ET.SubElement(holder, "el").text = _fmt(v)

    ET.indent(root)
    return ET.tostring(root, encoding="unicode") + "\n"


def parse_solution(text: str) -> Dict[str, float]:
    """
    解析 "<变量名> <值>" 行；只取 t_ 前缀（不区分大小写）的变量，去掉前缀得到节点 ID。
    值无法解析的行跳过。
    """
    res: Dict[str, float] = {}
    for raw in text.splitlines():
        parts = raw.split()
        if len(parts) < 2 or not parts[0].lower().startswith("t_"):
            continue
        try:
            value = float(parts[1])
        except ValueError:
            continue
        if math.isnan(value):
            continue
        res[parts[0][2:]] = value
    return res


def sorted_task_starts(starts: Dict[str, float]) -> List[Tuple[str, float]]:
    return sorted(starts.items(), key=lambda kv: kv[1])


class MINLPScheduler:
    name = "minlp"

    def __init__(self, cfg: Optional[MINLPConfig] = None) -> None:
        self.cfg = cfg or MINLPConfig()

    # ---------------- bonmin ----------------

    def _solve_external(self, graph: PrecedenceGraph, log: logging.Logger) -> Dict[str, float]:
        workdir = tempfile.mkdtemp(prefix="sgraph_minlp_")
        model_path = os.path.join(workdir, "model.osil")
        sol_path = os.path.join(workdir, "model.sol")
        try:
            with open(model_path, "w", encoding="utf-8") as f:
                f.write(build_osil(graph))
            run_solver_process(
                [self.cfg.executable, "-osil", model_path, "-solution", sol_path],
                timeout_s=self.cfg.timeout_s,
                tracer=log,
            )
            if not os.path.exists(sol_path):
                raise EmptySolutionError(self.cfg.executable, sol_path)
            with open(sol_path, "r", encoding="utf-8", errors="ignore") as f:
                text = f.read()
            if not text.strip():
                raise EmptySolutionError(self.cfg.executable, sol_path)
            return parse_solution(text)
        finally:
            if self.cfg.keep_files:
                log.info("[MINLP] model kept at %s", model_path)
            else:
                shutil.rmtree(workdir, ignore_errors=True)

    # ---------------- pulp ----------------

    def _solve_pulp(self, graph: PrecedenceGraph, log: logging.Logger) -> Dict[str, float]:
        try:
            import pulp  # type: ignore
        except ImportError as e:
            raise SolverUnavailableError("pulp", "pulp is not installed: pip install pulp") from e

        model = pulp.LpProblem("SGraphSchedule", pulp.LpMinimize)
        t: Dict[str, "pulp.LpVariable"] = {
            n.id: pulp.LpVariable(f"t_{i}", lowBound=0, upBound=START_UPPER) for i, n in enumerate(graph.nodes)
        }
        T = pulp.LpVariable("T", lowBound=0, upBound=MAKESPAN_UPPER)
        model += T

        for e in graph.edges:
            if graph.is_known_edge(e):
                model += t[graph.node(e.to_id).id] - t[graph.node(e.from_id).id] >= e.cost
        for n in graph.nodes:
            model += T - t[n.id] >= n.duration

        solver = pulp.PULP_CBC_CMD(msg=self.cfg.verbose, timeLimit=int(math.ceil(self.cfg.timeout_s)))
        model.solve(solver)
        status = pulp.LpStatus[model.status]
        log.info("[MINLP] pulp status=%s objective=%s", status, pulp.value(model.objective))
        if status != "Optimal":
            raise InfeasibleScheduleError(self.name, f"PuLP/CBC finished with status {status}")
        return {nid: float(var.value() or 0.0) for nid, var in t.items()}

    def search(self, graph: PrecedenceGraph, tracer: Optional[logging.Logger] = None) -> Schedule:
        log = resolve_tracer(tracer)
        backend = (self.cfg.backend or "bonmin").lower().strip()
        log.info("[MINLP] backend=%s nodes=%d edges=%d", backend, len(graph), len(graph.edges))

        if backend == "pulp":
            starts = self._solve_pulp(graph, log)
        else:
            starts = self._solve_external(graph, log)

        ordered = []
        timeline = []
        for nid, s in sorted_task_starts(starts):
            n = graph.get(nid)
            if n is None:
                log.warning("[MINLP] solution refers to unknown node %s", nid)
                continue
            ordered.append(n)
            parts = split_machine_id(n.id)
            timeline.append({
                "id": n.id,
                "job": parts[0] if parts else n.id,
                "machine": parts[1] if parts else 0,
                "start": s,
                "finish": s + n.duration,
            })

        ms = max((row["finish"] for row in timeline), default=0.0)
        return Schedule(
            nodes=ordered,
            makespan=ms,
            metadata={"solver": self.name, "backend": backend, "timeline": timeline},
        )
