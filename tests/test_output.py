"""
Tests for evaluation metrics and the schedule output formats.
"""

import io
import json
import math

import pytest

from algorithms.johnson import JohnsonScheduler
from core.scenario import build_demo_graph
from schedulers.critical_path import Schedule
from schedulers.evaluation_metrics import compute_evaluation_metrics
from schedulers.graph_model import PrecedenceGraph
from schedulers.schedule_output import (
    format_node_lines,
    plot_schedule_gantt,
    save_schedule_to_json,
    schedule_to_dict,
    write_node_lines,
)


def _chain_graph():
    g = PrecedenceGraph()
    for nid in ("A", "B", "C"):
        g.add_node(nid, durations=[1])
    g.add_edge("A", "B")
    g.add_edge("B", "C")
    return g


class TestEvaluationMetrics:
    """Test coverage and precedence counters."""

    def test_full_ordered_schedule(self):
        g = _chain_graph()
        schedule = Schedule(nodes=g.nodes, makespan=3.0)
        m = compute_evaluation_metrics(g, schedule, runtime_seconds=0.25)
        assert m.coverage == 1.0
        assert m.precedence_violations == 0
        assert m.missing_predecessors == 0
        assert m.runtime_sec == 0.25
        assert m.feasible is True

    def test_reversed_and_partial_schedule(self):
        g = _chain_graph()
        schedule = Schedule(nodes=[g.node("C"), g.node("B")])
        m = compute_evaluation_metrics(g, schedule, runtime_seconds=0.0)
        assert m.coverage == pytest.approx(2 / 3)
        assert m.precedence_violations == 1
        assert m.missing_predecessors == 1

    def test_products_are_not_counted_for_coverage(self):
        g = build_demo_graph()
        schedule = JohnsonScheduler().search(g)
        m = compute_evaluation_metrics(g, schedule, runtime_seconds=0.0)
        assert m.coverage == 1.0

    def test_runtime_falls_back_to_metadata(self):
        g = _chain_graph()
        m = compute_evaluation_metrics(g, Schedule(metadata={"runtime_s": 1.5}))
        assert m.runtime_sec == 1.5

    def test_robustness_variance(self):
        g = _chain_graph()
        m = compute_evaluation_metrics(g, Schedule(), runtime_seconds=0.0, robustness_samples=[10.0, 12.0, 14.0])
        assert m.robustness_variance == pytest.approx(4.0)
        m = compute_evaluation_metrics(g, Schedule(), runtime_seconds=0.0, robustness_samples=[10.0])
        assert m.robustness_variance is None


class TestTextOutput:
    """Test the NODE line protocol."""

    def test_node_lines(self):
        g = _chain_graph()
        schedule = Schedule(nodes=g.nodes)
        assert format_node_lines(schedule) == ["NODE A", "NODE B", "NODE C"]
        buf = io.StringIO()
        write_node_lines(schedule, buf)
        assert buf.getvalue() == "NODE A\nNODE B\nNODE C\n"

    def test_empty_schedule_writes_nothing(self):
        buf = io.StringIO()
        write_node_lines(Schedule(), buf)
        assert buf.getvalue() == ""


class TestJsonOutput:
    """Test the JSON report."""

    def test_infinite_values_become_null(self, tmp_path):
        g = _chain_graph()
        schedule = Schedule(
            nodes=[g.node("A")],
            makespan=math.inf,
            metadata={
                "solver": "x",
                "timeline": [{"id": "A", "job": "A", "machine": 0, "start": -1.0, "finish": math.inf}],
                "expanded": 3,
            },
        )
        metrics = compute_evaluation_metrics(g, schedule, runtime_seconds=0.0)
        path = tmp_path / "out" / "report.json"
        save_schedule_to_json(schedule, path, metrics)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["makespan"] is None
        assert data["feasible"] is False
        assert data["timeline"][0]["start"] is None
        assert data["timeline"][0]["finish"] is None
        assert data["stats"] == {"expanded": 3}
        assert data["metrics"]["MS"] is None
        assert data["metrics"]["PV"] == 0

    def test_johnson_report(self):
        schedule = JohnsonScheduler().search(build_demo_graph())
        data = schedule_to_dict(schedule)
        assert data["solver"] == "johnson"
        assert data["job_order"] == ["J1", "J2", "J3"]
        assert data["nodes"] == schedule.node_ids
        assert "metrics" not in data


class TestGantt:
    """Test the Gantt chart renderer."""

    def test_png_is_written(self, tmp_path):
        g = build_demo_graph()
        schedule = JohnsonScheduler().search(g)
        metrics = compute_evaluation_metrics(g, schedule, runtime_seconds=0.01)
        path = tmp_path / "gantt.png"
        assert plot_schedule_gantt(schedule, path, metrics) is True
        assert path.exists() and path.stat().st_size > 0

    def test_nothing_to_draw(self, tmp_path):
        path = tmp_path / "empty.png"
        assert plot_schedule_gantt(Schedule(), path) is False
        assert not path.exists()
