"""
Tests for the external process runner and the text-protocol solver bridge.
"""

import os
import sys

import psutil
import pytest

from algorithms.external import (
    ExternalConfig,
    ExternalProcessScheduler,
    kill_process_tree,
    parse_node_lines,
    run_solver_process,
)
from core.scenario import build_demo_graph
from schedulers.errors import (
    ExternalSolverError,
    SolverExitError,
    SolverTimeoutError,
    SolverUnavailableError,
)

pytestmark = pytest.mark.skipif(os.name == "nt", reason="fake solvers are POSIX shebang scripts")


def _is_gone(pid):
    try:
        return psutil.Process(pid).status() == psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return True


class TestRunSolverProcess:
    """Test the error taxonomy of the process runner."""

    def test_success_captures_stdout(self):
        res = run_solver_process([sys.executable, "-c", "print('hello')"], timeout_s=30)
        assert res.returncode == 0
        assert res.stdout.strip() == "hello"

    def test_stdin_is_forwarded(self):
        res = run_solver_process(
            [sys.executable, "-c", "import sys; print(sys.stdin.read().upper())"],
            timeout_s=30,
            input_text="abc",
        )
        assert res.stdout.strip() == "ABC"

    def test_missing_executable(self, tmp_path):
        with pytest.raises(SolverUnavailableError) as exc:
            run_solver_process([str(tmp_path / "no-such-solver")], timeout_s=5)
        assert isinstance(exc.value, ExternalSolverError)

    def test_empty_command(self):
        with pytest.raises(SolverUnavailableError):
            run_solver_process([], timeout_s=5)

    def test_non_zero_exit(self):
        with pytest.raises(SolverExitError) as exc:
            run_solver_process(
                [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"],
                timeout_s=30,
            )
        assert exc.value.returncode == 3
        assert "boom" in str(exc.value)

    def test_timeout_kills_process(self):
        with pytest.raises(SolverTimeoutError) as exc:
            run_solver_process([sys.executable, "-c", "import time; time.sleep(30)"], timeout_s=0.5)
        assert exc.value.timeout_s == 0.5

    def test_timeout_kills_grandchildren(self, make_script, tmp_path):
        pid_file = tmp_path / "child.pid"
        script = make_script("spawner.py", f"""
            import subprocess, sys, time
            child = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
            with open({str(pid_file)!r}, "w") as f:
                f.write(str(child.pid))
            time.sleep(60)
        """)
        with pytest.raises(SolverTimeoutError):
            run_solver_process([script], timeout_s=2)
        assert _is_gone(int(pid_file.read_text()))

    def test_kill_unknown_pid_is_noop(self):
        proc = psutil.Popen([sys.executable, "-c", "pass"])
        proc.wait()
        kill_process_tree(proc.pid)


class TestExternalProcessScheduler:
    """Test the stdin/stdout text protocol bridge."""

    def test_reverses_nodes(self, make_script):
        script = make_script("reverse.py", """
            import sys
            ids = [line.split()[1] for line in sys.stdin if line.startswith("NODE ")]
            if "-s" not in sys.argv:
                print("diagnostics on")
            for nid in reversed(ids):
                print("NODE " + nid)
        """)
        g = build_demo_graph()
        schedule = ExternalProcessScheduler(ExternalConfig(executable=script)).search(g)
        assert schedule.node_ids == list(reversed(g.node_ids))

    def test_command_line(self):
        sched = ExternalProcessScheduler(ExternalConfig(executable="solver", params=["10", "0.5"]))
        assert sched.build_command() == ["solver", "10", "0.5"]

    def test_front_end_that_goes_quiet_under_silent_flag(self, make_script):
        script = make_script("quiet.py", """
            import sys
            ids = [line.split()[1] for line in sys.stdin if line.startswith("NODE ")]
            if "-s" not in sys.argv:
                for nid in ids:
                    print("NODE " + nid)
        """)
        g = build_demo_graph()
        schedule = ExternalProcessScheduler(ExternalConfig(executable=script)).search(g)
        assert schedule.node_ids == g.node_ids

    def test_unknown_ids_are_skipped(self):
        g = build_demo_graph()
        nodes = parse_node_lines("NODE J1_M1\nNODE NOPE\nnoise\nNODE p1\n", g)
        assert [n.id for n in nodes] == ["J1_M1", "P1"]

    def test_missing_executable(self):
        with pytest.raises(SolverUnavailableError):
            ExternalProcessScheduler(ExternalConfig(executable="")).search(build_demo_graph())
