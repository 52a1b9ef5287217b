# -*- coding: utf-8 -*-
"""core/scenario.py

场景构建（S-Graph 配方） / Scenario building (S-Graph recipes)

三类来源 / Three sources
--------
1) **演示配方**：3 个作业 × 2 台机器 + 3 个产品节点（Johnson 规则的典型例子），
   在没有输入文件时使用；
   / Demo recipe: 3 jobs x 2 machines + 3 product nodes (a textbook Johnson example),
   used when no input file is given;
2) **BatchML 主配方**：每个不同的 Step（ID + RecipeElementID）生成一个两机作业，
   M1/M2 时长取自 Extension 中的 TimeM1/TimeM2；
   / BatchML master recipe: every distinct Step (ID + RecipeElementID) becomes a two-machine
   job whose M1/M2 durations come from the TimeM1/TimeM2 extension elements;
3) **随机流水车间**：按 FlowShopSpec 随机生成 m 台机器、n 个作业的配方，
   用于对比不同求解器。
   / Random flow shop: an n-job, m-machine recipe drawn from a FlowShopSpec, used to
   compare the solvers.

节点命名遵循 "J<k>_M<m>" / "P<k>" 约定；机器节点的时长向量只有第 m 位非零。
/ Nodes follow the "J<k>_M<m>" / "P<k>" convention; a machine node's duration vector is
non-zero only at position m.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from algorithms.random_utils import make_rng
from schedulers.errors import RecipeFormatError
from schedulers.graph_model import PrecedenceGraph, machine_node_id
from schedulers.tracing import resolve_tracer

BATCHML_NS = "http://www.wbf.org/xml/BatchML-V02"
RECIPE_EXT_NS = "http://lipx05.y0kai.com/batchml/custom"

# (M1, M2, 描述 / description)
DEMO_JOBS: Dict[str, Tuple[float, float, str]] = {
    "J1": (10.0, 30.0, "Job 1 (M1 <= M2)"),
    "J2": (20.0, 40.0, "Job 2 (M1 <= M2)"),
    "J3": (50.0, 10.0, "Job 3 (M1 > M2)"),
}


def _duration_vector(machine: int, machines: int, value: float) -> List[float]:
    vec = [0.0] * machines
    vec[machine - 1] = value
    return vec


def _product_id(job_id: str) -> str:
    return f"P{int(job_id.lstrip('Jj'))}"


def _add_two_machine_job(
    g: PrecedenceGraph,
    job: str,
    t1: float,
    t2: float,
    descriptions: Tuple[str, str, str],
) -> None:
    """
    M1 -> M2 的工艺边 cost 为 M1 时长，M2 -> 产品 的 cost 为 M2 时长。
    / The M1 -> M2 edge costs the M1 duration, the M2 -> product edge the M2 duration.
    """
    d1, d2, dp = descriptions
    g.add_node(machine_node_id(job, 1), d1, [t1, 0.0])
    g.add_node(machine_node_id(job, 2), d2, [0.0, t2])
    g.add_edge(machine_node_id(job, 1), machine_node_id(job, 2), t1)

    pid = _product_id(job)
    g.add_node(pid, dp, is_product=True)
    g.add_edge(machine_node_id(job, 2), pid, t2)


def build_demo_graph() -> PrecedenceGraph:
    g = PrecedenceGraph()
    for job, (t1, t2, desc) in DEMO_JOBS.items():
        _add_two_machine_job(g, job, t1, t2, (f"M1: {desc}", f"M2: {desc}", f"Product {_product_id(job)}"))
    return g


# ==============================
# BatchML 主配方 / BatchML master recipe
# ==============================

def _child_text(el: Optional[ET.Element], tag: str) -> str:
    if el is None:
        return ""
    child = el.find(tag)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def _step_time(step: ET.Element, tag: str) -> float:
    """TimeM1/TimeM2；缺失、非整数或负数按 0 处理。 / Missing, non-integer or negative -> 0."""
    ext = step.find(f"{{{BATCHML_NS}}}Extension")
    raw = _child_text(ext, f"{{{RECIPE_EXT_NS}}}{tag}")
    try:
        value = int(raw)
    except ValueError:
        return 0.0
    return float(max(value, 0))


def load_batchml(path: str | Path, tracer: Optional[logging.Logger] = None) -> PrecedenceGraph:
    """
    从 BatchML 主配方构建两机流水车间 S-Graph。
    / Build a two-machine flow-shop S-Graph from a BatchML master recipe.

    - 取第一个 MasterRecipe 元素下的全部 Step；ID 或 RecipeElementID 为空的 Step 跳过；
      同一 ID 只取第一次出现；
      / All Steps under the first MasterRecipe; Steps without ID or RecipeElementID are
      / skipped; only the first Step of each ID is used;
    - 作业 ID 必须是 "J<k>" 形式，对应产品节点 "P<k>"。
      / Job IDs must read "J<k>"; the product node is "P<k>".
    """
    log = resolve_tracer(tracer)
    path = Path(path)
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        raise RecipeFormatError(str(path), f"not well-formed XML ({e})") from e

    recipe = root if root.tag == f"{{{BATCHML_NS}}}MasterRecipe" else root.find(f".//{{{BATCHML_NS}}}MasterRecipe")
    if recipe is None:
        raise RecipeFormatError(str(path), "no MasterRecipe element")

    g = PrecedenceGraph()
    seen = set()
    for step in recipe.iter(f"{{{BATCHML_NS}}}Step"):
        job = _child_text(step, f"{{{BATCHML_NS}}}ID")
        desc = _child_text(step, f"{{{BATCHML_NS}}}RecipeElementID")
        if not job or not desc or job in seen:
            continue
        seen.add(job)
        try:
            pid = _product_id(job)
        except ValueError as e:
            raise RecipeFormatError(str(path), f"step ID {job!r} does not follow the J<k> convention") from e

        t1, t2 = _step_time(step, "TimeM1"), _step_time(step, "TimeM2")
        _add_two_machine_job(
            g, job, t1, t2, (machine_node_id(job, 1), machine_node_id(job, 2), f"Product_{pid[1:]}")
        )
        log.debug("[BatchML] step %s (%s): M1=%g M2=%g", job, desc, t1, t2)

    if not seen:
        raise RecipeFormatError(str(path), "no valid steps")
    log.info("[BatchML] %d job(s) loaded from %s", len(seen), path)
    return g


# ==============================
# 随机流水车间 / Random flow shop
# ==============================

@dataclass
class FlowShopSpec:
    jobs: int = 5
    machines: int = 2
    min_duration: int = 1
    max_duration: int = 20
    # 工艺边的转移时间上限（0 表示无转移时间）
    max_transfer: int = 0
    seed: Optional[int] = None


def generate_flow_shop(spec: Optional[FlowShopSpec] = None) -> PrecedenceGraph:
    spec = spec or FlowShopSpec()
    if spec.jobs < 1 or spec.machines < 1:
        raise ValueError("jobs and machines must be positive")
    if spec.min_duration < 0 or spec.max_duration < spec.min_duration:
        raise ValueError("invalid duration range")

    rng = make_rng(spec.seed)
    g = PrecedenceGraph()
    for k in range(1, spec.jobs + 1):
        job = f"J{k}"
        for m in range(1, spec.machines + 1):
            d = float(rng.randint(spec.min_duration, spec.max_duration))
            g.add_node(machine_node_id(job, m), f"{job}_on_M{m}", _duration_vector(m, spec.machines, d))
        for m in range(1, spec.machines):
            cost = float(rng.randint(0, spec.max_transfer)) if spec.max_transfer > 0 else 0.0
            g.add_edge(machine_node_id(job, m), machine_node_id(job, m + 1), cost)

        pid = f"P{k}"
        g.add_node(pid, f"Product_{k}", is_product=True)
        g.add_edge(machine_node_id(job, spec.machines), pid, 0.0)
    return g
