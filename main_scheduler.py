# -*- coding: utf-8 -*-
"""main_scheduler.py
说明 / Description
----
命令行前端：读取 S-Graph（文本协议文件 / BatchML 主配方 / 标准输入 / 演示配方 / 随机流水车间），
调用一个求解器，并按调度输出协议逐行打印 "NODE <id>"（静默模式 -s 下不打印）。
/ Command-line front-end: read an S-Graph (text-protocol file / BatchML master recipe / stdin /
demo recipe / random flow shop), run one solver and print the schedule as "NODE <id>" lines
(not in silent mode -s).

算法 / Algorithms
----
- johnson / cds / ls          : 构造式启发式 / constructive heuristics
- bnb                         : 两机分支定界 / two-machine branch-and-bound
- ga / sa                     : 排列元启发式 / permutation meta-heuristics
- cpm / explore               : 关键链 / 路径穷举 / critical chain / path explorer
- minlp / external            : 外部求解器桥接 / external solver bridges

位置参数 / Positional parameters
----
- sa      : T0 cool_rate iterations
- ga      : population generations mutation_rate
- bnb     : max_nodes
- explore : max_expansions
- external: 原样传给外部求解器 / passed through to the external solver
无法解析或缺省的参数使用默认值。 / Missing or unparsable values fall back to defaults.

示例 / Examples
----
    python main_scheduler.py johnson --demo
    python main_scheduler.py bnb --batchml recipe.xml
    python main_scheduler.py sa 500 0.99 1000 --input recipe.txt --seed 7
    python main_scheduler.py cds --random-jobs 8 --machines 4 --json out/cds.json --gantt out/cds.png
    python main_scheduler.py minlp --exec /opt/bonmin/bin/bonmin --timeout 60 < recipe.txt
"""

from __future__ import annotations

import argparse
import logging
import math
import sys
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from algorithms.factory import ALGORITHM_NAMES, create_algorithm
from core.scenario import FlowShopSpec, build_demo_graph, generate_flow_shop, load_batchml
from schedulers.engine import SchedulingEngine
from schedulers.errors import SchedulingError
from schedulers.evaluation_metrics import compute_evaluation_metrics
from schedulers.graph_model import PrecedenceGraph, load_graph_from_text, read_graph
from schedulers.schedule_output import plot_schedule_gantt, save_schedule_to_json, write_node_lines

LOGGER_NAME = "sgraph"

# 算法 -> 位置参数（配置字段名, 类型）
POSITIONAL_PARAMS: Dict[str, List[Tuple[str, Callable[[str], Any]]]] = {
    "sa": [("initial_temperature", float), ("cooling_rate", float), ("max_iterations", int)],
    "ga": [("population_size", int), ("generations", int), ("mutation_rate", float)],
    "bnb": [("max_nodes", int)],
    "explore": [("max_expansions", int)],
}


def parse_positional_params(algo: str, params: Sequence[str]) -> Dict[str, Any]:
    """把位置参数映射为配置覆盖项；无法解析的值被忽略（保留默认值）。"""
    out: Dict[str, Any] = {}
    for (field_name, conv), raw in zip(POSITIONAL_PARAMS.get(algo, []), params):
        try:
            value = conv(raw)
        except ValueError:
            continue
        if isinstance(value, float) and not math.isfinite(value):
            continue
        out[field_name] = value
    return out


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="S-Graph batch recipe scheduler")
    parser.add_argument("algorithm", type=str, help=f"solver name: {', '.join(ALGORITHM_NAMES)}")
    parser.add_argument("params", nargs="*", help="solver-specific numeric parameters")
    parser.add_argument("-s", "--silent_mode", action="store_true", help="suppress diagnostics and the NODE output")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug-level diagnostics")

    # 输入来源（默认读标准输入） / Input source (stdin by default)
    parser.add_argument("--input", type=str, default=None, help="graph file in the NODE/EDGE text protocol")
    parser.add_argument("--batchml", type=str, default=None, help="BatchML master recipe (two-machine flow shop)")
    parser.add_argument("--demo", action="store_true", help="use the built-in 3-job demo recipe")
    parser.add_argument("--random-jobs", type=int, default=0, help="generate a random flow shop with this many jobs")
    parser.add_argument("--machines", type=int, default=2, help="machine count of the random flow shop")

    parser.add_argument("--seed", type=int, default=None, help="random seed (GA/SA and the random flow shop)")
    parser.add_argument("--json", type=str, default=None, help="write a JSON report to this path")
    parser.add_argument("--gantt", type=str, default=None, help="write a Gantt chart PNG to this path")

    # 外部求解器 / External solvers
    parser.add_argument("--exec", dest="executable", type=str, default=None, help="external solver executable")
    parser.add_argument("--timeout", type=float, default=None, help="external solver timeout in seconds")
    parser.add_argument("--backend", type=str, default=None, help="minlp backend: bonmin or pulp")
    return parser


def load_input_graph(args: argparse.Namespace, tracer: Optional[logging.Logger]) -> PrecedenceGraph:
    if args.input:
        return load_graph_from_text(args.input, tracer=tracer)
    if args.batchml:
        return load_batchml(args.batchml, tracer=tracer)
    if args.demo:
        return build_demo_graph()
    if args.random_jobs > 0:
        return generate_flow_shop(FlowShopSpec(jobs=args.random_jobs, machines=args.machines, seed=args.seed))
    return read_graph(sys.stdin, tracer=tracer)


def build_overrides(args: argparse.Namespace, algo: str) -> Dict[str, Any]:
    overrides = parse_positional_params(algo, args.params)
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.executable:
        overrides["executable"] = args.executable
    if args.timeout is not None and args.timeout > 0:
        overrides["timeout_s"] = args.timeout
    if args.backend:
        overrides["backend"] = args.backend
    if algo in ("external", "custom"):
        overrides["params"] = list(args.params)
    return overrides


def _configure_logging(args: argparse.Namespace) -> Optional[logging.Logger]:
    if args.silent_mode:
        return None
    logging.basicConfig(stream=sys.stderr, format="%(levelname)s %(message)s")
    logger = logging.getLogger(LOGGER_NAME)
    # basicConfig 在根 logger 已有 handler 时不生效，级别单独设置
    logger.setLevel(logging.DEBUG if args.verbose else logging.INFO)
    return logger


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    algo = args.algorithm.lower().strip()
    tracer = _configure_logging(args)

    try:
        algorithm = create_algorithm(algo, build_overrides(args, algo))
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2

    try:
        graph = load_input_graph(args, tracer)
        if tracer is not None:
            tracer.info("[Graph] %d nodes, %d edges, %d machine(s)",
                        len(graph), len(graph.edges), graph.machine_count())

        engine = SchedulingEngine(graph, algorithm, tracer=tracer)
        schedule = engine.run()
    except SchedulingError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    if not args.silent_mode:
        write_node_lines(schedule, sys.stdout)

    metrics = compute_evaluation_metrics(graph, schedule, runtime_seconds=engine.last_runtime_s)
    if tracer is not None:
        if "error" in schedule.metadata:
            tracer.error("[RESULT] %s returned no schedule: %s", algo, schedule.metadata["error"])
        ms = "-" if metrics.makespan is None else f"{metrics.makespan:g}"
        tracer.info(
            "[RESULT] algo=%s nodes=%d makespan=%s coverage=%.3f violations=%d runtime=%.3fs",
            algo, len(schedule.nodes), ms, metrics.coverage, metrics.precedence_violations, metrics.runtime_sec,
        )

    if args.json:
        save_schedule_to_json(schedule, args.json, metrics)
    if args.gantt:
        drawn = plot_schedule_gantt(schedule, args.gantt, metrics)
        if not drawn and tracer is not None:
            tracer.warning("[RESULT] nothing to draw for %s, Gantt chart skipped", algo)

    return 0


if __name__ == "__main__":
    sys.exit(main())
