# -*- coding: utf-8 -*-
"""
schedulers/errors.py
调度引擎异常层级 / Exception hierarchy of the scheduling engine

所有异常都继承 SchedulingError，调用方可以用一个 except 子句统一捕获。
/ Every error derives from SchedulingError so callers can catch them with one clause.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class SchedulingError(Exception):
    """Base exception for all scheduling errors.

    Attributes:
        message: Human-readable error description.
        details: Additional context for debugging.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message


class InfeasibleGraphError(SchedulingError):
    """Raised when the precedence graph contains a cycle.

    Topological ordering could not place every node, so no earliest-finish
    or bound computation is meaningful on this graph.

    Attributes:
        ordered_count: Number of nodes placed before the queue ran dry.
        node_count: Number of nodes in the graph.
        unresolved: IDs of the nodes left with a positive in-degree.
    """

    def __init__(self, ordered_count: int, node_count: int, unresolved: List[str]) -> None:
        self.ordered_count = ordered_count
        self.node_count = node_count
        self.unresolved = list(unresolved)

        message = (
            "Graph has at least one cycle; topological sort not possible "
            f"({ordered_count}/{node_count} nodes ordered)"
        )
        details: Dict[str, Any] = {"unresolved": len(self.unresolved)}
        if self.unresolved:
            details["first"] = self.unresolved[0]
        super().__init__(message, details)


class InfeasibleScheduleError(SchedulingError):
    """Raised when a solver cannot obtain any finite schedule to start from.

    Attributes:
        solver: Name of the solver that gave up.
        reason: Explanation of why scheduling was infeasible.
    """

    def __init__(self, solver: str, reason: str) -> None:
        self.solver = solver
        self.reason = reason
        super().__init__(f"{solver}: {reason}", {"solver": solver})


class RecipeFormatError(SchedulingError):
    """Raised when a master recipe file cannot be turned into an S-Graph.

    Attributes:
        path: File the recipe was read from.
        reason: What was missing or malformed.
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid master recipe: {reason}", {"path": path})


# ==============================
# 外部求解器 / External solvers
# ==============================

class ExternalSolverError(SchedulingError):
    """Base class for failures of an external solver process."""

    def __init__(self, message: str, executable: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.executable = executable
        merged = {"executable": executable}
        merged.update(details or {})
        super().__init__(message, merged)


class SolverUnavailableError(ExternalSolverError):
    """Raised when the solver executable does not exist or cannot be started."""

    def __init__(self, executable: str, reason: str = "executable not found") -> None:
        self.reason = reason
        super().__init__(f"Solver not available: {reason}", executable)


class SolverExitError(ExternalSolverError):
    """Raised when the solver process finishes with a non-zero exit code.

    Attributes:
        returncode: Exit code reported by the process.
        stderr: Captured standard error (may be empty).
    """

    def __init__(self, executable: str, returncode: int, stderr: str = "") -> None:
        self.returncode = returncode
        self.stderr = stderr or ""
        if self.stderr.strip():
            message = f"Solver failed with code {returncode}! Error: {self.stderr.strip()}"
        else:
            message = f"Solver exited with code {returncode} (no STDERR output)."
        super().__init__(message, executable, {"returncode": returncode})


class EmptySolutionError(ExternalSolverError):
    """Raised when the solver ran successfully but produced no usable solution."""

    def __init__(self, executable: str, path: str = "") -> None:
        self.path = path
        super().__init__("Solver returned an empty solution!", executable, {"path": path} if path else None)


class SolverTimeoutError(ExternalSolverError):
    """Raised after the solver process tree was killed for exceeding its time limit.

    Attributes:
        timeout_s: Wall-clock limit that was exceeded (seconds).
    """

    def __init__(self, executable: str, timeout_s: float) -> None:
        self.timeout_s = float(timeout_s)
        super().__init__(
            f"Solver exceeded the {self.timeout_s:g}s timeout!",
            executable,
            {"timeout_s": self.timeout_s},
        )
