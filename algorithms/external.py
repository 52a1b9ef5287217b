# -*- coding: utf-8 -*-
"""
algorithms/external.py
外部求解器进程 / External solver processes

- run_solver_process：启动外部可执行文件，带墙钟超时；超时后用 psutil 杀掉整棵进程树，
  再抛出 SolverTimeoutError。找不到可执行文件 -> SolverUnavailableError；
  非零退出码 -> SolverExitError。
  / run_solver_process: launch an executable with a wall-clock timeout; on timeout the whole
  / process tree is killed through psutil before SolverTimeoutError is raised. Missing
  / executable -> SolverUnavailableError; non-zero exit -> SolverExitError.

- ExternalProcessScheduler：把图按文本协议写入外部求解器的 stdin，
  从 stdout 读取 "NODE <id>" 行作为调度顺序。
  / ExternalProcessScheduler: pipe the graph in the text protocol to the solver's stdin and
  / read the schedule back from its "NODE <id>" stdout lines.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import psutil

from schedulers.critical_path import Schedule
from schedulers.errors import SolverExitError, SolverTimeoutError, SolverUnavailableError
from schedulers.graph_model import Node, PrecedenceGraph, dump_graph_text
from schedulers.tracing import resolve_tracer

DEFAULT_TIMEOUT_S = 120.0


@dataclass
class ProcessResult:
    returncode: int
    stdout: str
    stderr: str
    elapsed_s: float


def kill_process_tree(pid: int, wait_s: float = 5.0) -> None:
    """杀掉 pid 及其全部子孙进程。 / Kill pid together with all of its descendants."""
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return
    procs = parent.children(recursive=True) + [parent]
    for p in procs:
        try:
            p.kill()
        except psutil.NoSuchProcess:
            pass
    psutil.wait_procs(procs, timeout=wait_s)


def run_solver_process(
    cmd: Sequence[str],
    timeout_s: float = DEFAULT_TIMEOUT_S,
    input_text: Optional[str] = None,
    cwd: Optional[str] = None,
    tracer: Optional[logging.Logger] = None,
) -> ProcessResult:
    log = resolve_tracer(tracer)
    if not cmd or not cmd[0]:
        raise SolverUnavailableError("", "no solver executable configured")
    exe = str(cmd[0])
    if shutil.which(exe) is None:
        raise SolverUnavailableError(exe)

    log.info("[Process] running: %s (timeout=%gs)", " ".join(str(c) for c in cmd), timeout_s)
    t0 = time.perf_counter()
    try:
        proc = subprocess.Popen(
            [str(c) for c in cmd],
            stdin=subprocess.PIPE if input_text is not None else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            cwd=cwd,
        )
    except OSError as e:
        raise SolverUnavailableError(exe, str(e)) from e

    try:
        out, err = proc.communicate(input=input_text, timeout=timeout_s)
    except subprocess.TimeoutExpired:
        log.error("[Process] %s exceeded %gs, killing process tree", exe, timeout_s)
        kill_process_tree(proc.pid)
        proc.communicate()
        raise SolverTimeoutError(exe, timeout_s)

    elapsed = time.perf_counter() - t0
    if proc.returncode != 0:
        raise SolverExitError(exe, proc.returncode, err)
    if err and err.strip():
        log.debug("[Process] stderr: %s", err.strip())
    log.info("[Process] finished in %.3fs", elapsed)
    return ProcessResult(returncode=proc.returncode, stdout=out or "", stderr=err or "", elapsed_s=elapsed)


def parse_node_lines(text: str, graph: PrecedenceGraph, tracer: Optional[logging.Logger] = None) -> List[Node]:
    log = resolve_tracer(tracer)
    nodes: List[Node] = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 2 or parts[0] != "NODE":
            continue
        n = graph.get(parts[1])
        if n is None:
            log.warning("[External] solver returned unknown node %s", parts[1])
            continue
        nodes.append(n)
    return nodes


@dataclass
class ExternalConfig:
    executable: str = ""
    params: List[str] = field(default_factory=list)
    timeout_s: float = DEFAULT_TIMEOUT_S


class ExternalProcessScheduler:
    name = "external"

    def __init__(self, cfg: Optional[ExternalConfig] = None) -> None:
        self.cfg = cfg or ExternalConfig()

    def build_command(self) -> List[str]:
        # 不传 -s：前端在静默模式下不输出 NODE 行，而 stdout 正是结果通道
        return [self.cfg.executable] + [str(p) for p in self.cfg.params]

    def search(self, graph: PrecedenceGraph, tracer: Optional[logging.Logger] = None) -> Schedule:
        log = resolve_tracer(tracer)
        res = run_solver_process(
            self.build_command(),
            timeout_s=self.cfg.timeout_s,
            input_text=dump_graph_text(graph),
            tracer=log,
        )
        nodes = parse_node_lines(res.stdout, graph, tracer=log)
        log.info("[External] %d node(s) scheduled", len(nodes))
        return Schedule(
            nodes=nodes,
            metadata={"solver": self.name, "executable": self.cfg.executable, "elapsed_s": res.elapsed_s},
        )
