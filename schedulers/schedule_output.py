# -*- coding: utf-8 -*-
"""
schedule_output.py
调度结果输出与可视化模块 / Schedule output and visualization module

本文件在整个项目中的角色 / Role of this file in the entire project
--------------------------------
1. 调度输出协议：按调度顺序每个节点一行 "NODE <id>"；
   / Schedule output protocol: one "NODE <id>" line per scheduled node, in order;
2. 将调度结果 Schedule 按统一格式导出到 JSON 文件（报告用途，不会被读回）；
   / Export the Schedule to a JSON report (never read back);
3. 使用 matplotlib 绘制 Gantt 图：纵轴为机器，横轴为时间，每个节点画在其机器行上，
   并输出为 PNG 图片；
   / Draw a Gantt chart with matplotlib: machines on the Y-axis, time on the X-axis, each
   node on its machine row, saved as PNG;
4. 同时在 JSON 与图中展示评价指标数据（MS, COV, PV, RT, RV）。
   / Show the evaluation metrics (MS, COV, PV, RT, RV) in both the JSON and the chart.

特别说明： / Special Notes:
----------
- JSON 中的 inf（不可行 makespan 或未到达节点）写为 null，并附带 feasible 字段。
  / Infinite values (infeasible makespan, unreached nodes) are written as null next to a
  / feasible flag, keeping the file strict JSON.
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from .critical_path import Schedule
from .evaluation_metrics import EvaluationMetrics

# 设置中文字体，避免图中中文乱码
# / Set Chinese font to avoid garbled Chinese characters in the plot
matplotlib.rcParams["font.sans-serif"] = ["SimHei", "Microsoft YaHei", "Arial Unicode MS", "DejaVu Sans"]
matplotlib.rcParams["axes.unicode_minus"] = False


def _finite_or_none(v: Optional[float]) -> Optional[float]:
    if v is None or not math.isfinite(v):
        return None
    return float(v)


# ==============================
# 1. 文本输出协议 / 1. Text output protocol
# ==============================

def format_node_lines(schedule: Schedule) -> List[str]:
    return [f"NODE {n.id}" for n in schedule.nodes]


def write_node_lines(schedule: Schedule, stream: TextIO) -> None:
    for line in format_node_lines(schedule):
        stream.write(line + "\n")
    stream.flush()


# ==============================
# 2. JSON 输出 / 2. JSON Output
# ==============================

def schedule_to_dict(schedule: Schedule, metrics: Optional[EvaluationMetrics] = None) -> Dict[str, Any]:
    """
    JSON 顶层结构示例： / JSON top-level structure example:

    {
      "solver": "johnson",
      "nodes": ["J2_M1", "J2_M2", ...],
      "job_order": ["J2", "J1"],
      "makespan": 7.0,
      "feasible": true,
      "timeline": [{"id": ..., "job": ..., "machine": ..., "start": ..., "finish": ...}],
      "metrics": {"MS": ..., "COV": ..., "PV": ..., "MP": ..., "RT": ..., "RV": ...}
    }
    """
    timeline = []
    for row in schedule.metadata.get("timeline", []):
        item = dict(row)
        item["start"] = _finite_or_none(item.get("start"))
        if item["start"] is not None and item["start"] < 0:
            item["start"] = None
        item["finish"] = _finite_or_none(item.get("finish"))
        timeline.append(item)

    result: Dict[str, Any] = {
        "solver": schedule.metadata.get("solver", ""),
        "nodes": schedule.node_ids,
        "job_order": list(schedule.job_order),
        "makespan": _finite_or_none(schedule.makespan),
        "feasible": schedule.is_feasible(),
        "timeline": timeline,
    }

    stats = {
        k: v for k, v in schedule.metadata.items()
        if k not in ("solver", "timeline") and isinstance(v, (int, float, str, bool))
    }
    if stats:
        result["stats"] = {k: (_finite_or_none(v) if isinstance(v, float) else v) for k, v in stats.items()}

    # 指标部分 / Metrics section
    if metrics is not None:
        result["metrics"] = {
            "MS": _finite_or_none(metrics.makespan),
            "COV": metrics.coverage,
            "PV": metrics.precedence_violations,
            "MP": metrics.missing_predecessors,
            "RT": metrics.runtime_sec,
            "RV": metrics.robustness_variance,
        }
    return result


def save_schedule_to_json(
    schedule: Schedule,
    output_path: str | Path,
    metrics: Optional[EvaluationMetrics] = None,
) -> None:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(schedule_to_dict(schedule, metrics), f, ensure_ascii=False, indent=2)


# ==============================
# 3. Gantt 可视化 / 3. Gantt Visualization
# ==============================

def plot_schedule_gantt(
    schedule: Schedule,
    output_path: str | Path,
    metrics: Optional[EvaluationMetrics] = None,
    title: str = "",
) -> bool:
    """
    绘制 Gantt 图；没有可画的时间条目（无 timeline 或全部未到达）时不画图，返回 False。
    / Draw the Gantt chart; returns False without drawing when there is nothing to plot.
    """
    rows = [
        r for r in schedule.metadata.get("timeline", [])
        if r.get("start", -1) is not None and r.get("start", -1) >= 0
        and r.get("finish") is not None and math.isfinite(r["finish"])
    ]
    if not rows:
        return False

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    machines = sorted({int(r.get("machine", 0)) for r in rows})
    m_index = {m: i for i, m in enumerate(machines)}

    fig, ax = plt.subplots(figsize=(12, 1.2 + 0.8 * len(machines)))

    for r in rows:
        idx = m_index[int(r.get("machine", 0))]
        width = r["finish"] - r["start"]
        ax.barh(y=idx, width=width, left=r["start"], height=0.4, align="center", edgecolor="black")
        ax.text(r["start"] + width / 2, idx, str(r.get("job", r["id"])), va="center", ha="center", fontsize=8)

    ax.set_yticks(list(range(len(machines))))
    ax.set_yticklabels([f"M{m}" if m > 0 else "-" for m in machines])
    ax.invert_yaxis()
    ax.set_xlabel("时间 / Time")
    ax.set_ylabel("机器 / Machine")
    solver = schedule.metadata.get("solver", "")
    ax.set_title(title or f"调度结果 Gantt 图 / Schedule Gantt Chart - {solver}")
    ax.grid(True, axis="x", linestyle="--", linewidth=0.5)

    # 在图中展示指标
    # / Display metrics in the chart
    if metrics is not None:
        ms = metrics.makespan
        lines = [
            f"MS  (完工时间 / Makespan): {ms:.3f}" if ms is not None else "MS  (完工时间 / Makespan): -",
            f"COV (覆盖率 / Coverage)  : {metrics.coverage:.3f}",
            f"PV  (先后冲突 / Violations): {metrics.precedence_violations}",
            f"RT  (运行时间 / Runtime): {metrics.runtime_sec:.3f} s",
        ]
        if metrics.robustness_variance is not None:
            lines.append(f"RV  (鲁棒性 / Robustness): {metrics.robustness_variance:.3f}")

        ax.text(
            0.99,
            0.99,
            "\n".join(lines),
            transform=ax.transAxes,
            ha="right",
            va="top",
            fontsize=9,
            bbox=dict(boxstyle="round,pad=0.4", facecolor="white", alpha=0.7),
        )

    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    return True
