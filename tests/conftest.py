"""
Shared fixtures for the scheduler tests.

Graphs follow the "J<k>_M<m>" / "P<k>" naming convention: each machine node
carries a duration vector that is non-zero only at its own machine position.
"""

import stat
import sys
import textwrap

import pytest

from schedulers.graph_model import PrecedenceGraph


def build_flow_shop(jobs, tech_edges=True):
    """Build a flow-shop graph from {job_id: (t_M1, t_M2, ...)}."""
    g = PrecedenceGraph()
    for job, times in jobs.items():
        count = len(times)
        for m, t in enumerate(times, start=1):
            vec = [0.0] * count
            vec[m - 1] = float(t)
            g.add_node(f"{job}_M{m}", f"{job}_on_M{m}", vec)
        pid = "P" + job[1:]
        g.add_node(pid, f"Product_{job[1:]}", is_product=True)
        if tech_edges:
            for m in range(1, count):
                g.add_edge(f"{job}_M{m}", f"{job}_M{m + 1}")
            g.add_edge(f"{job}_M{count}", pid)
    return g


@pytest.fixture
def flow_shop():
    """Factory fixture building flow-shop graphs."""
    return build_flow_shop


@pytest.fixture
def canonical_jobs():
    """Textbook two-machine example: optimum order J2, J3, J1 with makespan 12."""
    return {"J1": (5, 2), "J2": (1, 6), "J3": (4, 3)}


@pytest.fixture
def canonical_graph(canonical_jobs):
    return build_flow_shop(canonical_jobs)


@pytest.fixture
def ls_scenario_graph():
    """J1_M1(3), J1_M2(2), J2_M1(1), J2_M2(4), P1, P2 with technological edges only."""
    return build_flow_shop({"J1": (3, 2), "J2": (1, 4)})


@pytest.fixture
def make_script(tmp_path):
    """Write an executable Python script and return its path."""
    def _make(name, body):
        path = tmp_path / name
        path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body), encoding="utf-8")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)
    return _make




BATCHML_RECIPE = """\
<?xml version="1.0" encoding="utf-8"?>
<BatchInformation xmlns="http://www.wbf.org/xml/BatchML-V02"
                  xmlns:c="http://lipx05.y0kai.com/batchml/custom">
  <MasterRecipe>
    <ID>MR-1</ID>
    <ProcedureLogic>
      <Step>
        <ID>J1</ID>
        <RecipeElementID>Mixing</RecipeElementID>
        <Extension><c:TimeM1>3</c:TimeM1><c:TimeM2>2</c:TimeM2></Extension>
      </Step>
      <Step>
        <ID>J2</ID>
        <RecipeElementID>Filling</RecipeElementID>
        <Extension><c:TimeM1>1</c:TimeM1><c:TimeM2>4</c:TimeM2></Extension>
      </Step>
      <Step>
        <ID>J1</ID>
        <RecipeElementID>Mixing again</RecipeElementID>
        <Extension><c:TimeM1>99</c:TimeM1><c:TimeM2>99</c:TimeM2></Extension>
      </Step>
      <Step>
        <ID>J3</ID>
        <Extension><c:TimeM1>5</c:TimeM1></Extension>
      </Step>
    </ProcedureLogic>
  </MasterRecipe>
</BatchInformation>
"""


@pytest.fixture
def batchml_file(tmp_path):
    """Two valid steps (J1: 3/2, J2: 1/4), one duplicate ID and one step without RecipeElementID."""
    path = tmp_path / "recipe.xml"
    path.write_text(BATCHML_RECIPE, encoding="utf-8")
    return path
