# -*- coding: utf-8 -*-
"""
algorithms/factory.py
统一算法创建入口（接口统一、模块化）

设计目标
--------
- 上层只关心 algo_name + config dict；
- 所有算法都遵循 BaseSchedulerAlgorithm.search(graph, tracer) 接口（由 schedulers.engine 约定）；
- 元启发式默认 seed=None：每次运行自动随机，避免“每次都一样”；
- 未知的配置键被安全忽略。
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Optional

# exact / constructive
from algorithms.johnson import JohnsonScheduler
from algorithms.cds import CDSScheduler
from algorithms.list_scheduling import ListScheduler
from algorithms.branch_and_bound import BranchAndBoundScheduler, BnBConfig
from algorithms.critical_chain import CriticalPathScheduler, PathExplorerScheduler, ExplorerConfig

# meta
from algorithms.meta_sa import SimulatedAnnealingScheduler, SAConfig
from algorithms.meta_ga import GeneticAlgorithmScheduler, GAConfig

# external
from algorithms.minlp import MINLPScheduler, MINLPConfig
from algorithms.external import ExternalProcessScheduler, ExternalConfig

ALGORITHM_NAMES = ("johnson", "cds", "ls", "bnb", "ga", "sa", "cpm", "explore", "minlp", "external")


def create_algorithm(algo_name: str, cfg_overrides: Optional[Dict[str, Any]] = None):
    """创建调度算法实例。"""
    name = (algo_name or "").lower().strip()
    o = cfg_overrides or {}

    # ------------- Constructive -------------
    if name in ("johnson", "two_machine"):
        return JohnsonScheduler()

    if name in ("cds", "multi_machine"):
        return CDSScheduler()

    if name in ("ls", "list", "list_scheduling"):
        return ListScheduler()

    if name in ("bnb", "branch_and_bound"):
        cfg = _apply_overrides(BnBConfig(), o)
        return BranchAndBoundScheduler(cfg=cfg)

    if name in ("cpm", "critical_path", "longest_path"):
        return CriticalPathScheduler()

    if name in ("explore", "path_explorer"):
        cfg = _apply_overrides(ExplorerConfig(), o)
        return PathExplorerScheduler(cfg=cfg)

    # ------------ Meta-heuristics ---------
    if name in ("sa", "simulated_annealing"):
        # 注意：seed 默认 None => 每次运行不同
        cfg = _apply_overrides(SAConfig(), o)
        return SimulatedAnnealingScheduler(cfg=cfg)

    if name in ("ga", "genetic", "genetic_algorithm"):
        cfg = _apply_overrides(GAConfig(), o)
        return GeneticAlgorithmScheduler(cfg=cfg)

    # ---------------- External ----------------
    if name in ("minlp", "bonmin"):
        cfg = _apply_overrides(MINLPConfig(), o)
        return MINLPScheduler(cfg=cfg)

    if name in ("external", "custom"):
        cfg = _apply_overrides(ExternalConfig(), o)
        return ExternalProcessScheduler(cfg=cfg)

    raise ValueError(f"未知算法: {algo_name}. 支持: {', '.join(ALGORITHM_NAMES)}")


def _apply_overrides(cfg_obj, overrides: Dict[str, Any]):
    """把 overrides 中同名字段写入 dataclass（安全忽略未知键）。"""
    if not overrides:
        return cfg_obj
    for k, v in overrides.items():
        if hasattr(cfg_obj, k):
            setattr(cfg_obj, k, v)
    return cfg_obj


def config_to_dict(cfg_obj) -> Dict[str, Any]:
    return asdict(cfg_obj)
