# -*- coding: utf-8 -*-
"""
graph_model.py
S-Graph 数据模型与文本交换协议 / S-Graph data model and text exchange protocol

本文件在整个项目中的角色 / Role of this file in the entire project
--------------------------------
1. 定义调度所需的图结构：
   / Define the graph structures every solver reads:
   - Node：任务节点（ID 不区分大小写、描述、每台机器上的加工时长向量、是否为产品节点）；
     / Node: task node (case-insensitive ID, description, per-machine duration vector, product flag);
   - Edge：有向边（前驱 -> 后继，非负转移/准备时间）；
     / Edge: directed edge (predecessor -> successor, non-negative transfer/setup time);
   - PrecedenceGraph：节点集合 + 有序边列表。
     / PrecedenceGraph: keyed node collection + ordered edge list.

2. 命名约定：机器节点为 "<作业ID>_M<m>"，产品（汇点）节点为 "P<k>"。
   / Naming convention: machine nodes are "<jobID>_M<m>", product (sink) nodes are "P<k>".

3. 行文本协议（独立求解器前端使用）：
   / Line-oriented text protocol (used by standalone solver front-ends):
       NODE <id> <description> [<d1> <d2> ...]
       EDGE <fromID> <toID> <cost>
       PRODUCTS [<id> ...]
   未知行类型忽略；cost 无法解析时该边被静默跳过。
   / Unknown line types are ignored; an edge whose cost cannot be parsed is silently skipped.
   - PRODUCTS 行（可多行）给出产品节点的完整集合；没有该行时按约定推断：以 P 开头且不带
     _M<m> 后缀的 ID 视为产品。dump 总是写出 PRODUCTS 行，因此产品标记可以原样读回；
     只认 NODE/EDGE 的前端会忽略该行。
     / PRODUCTS lines (possibly several) list the full product set; without one, ids that
     / start with "P" and carry no _M<m> suffix are taken as products. Dumps always write a
     / PRODUCTS line so the flag survives a round trip; NODE/EDGE-only front-ends ignore it.
   - 描述是单个 token：dump 时空白折叠为 "_"，空描述写作 "-"，读回时不做还原。
     / A description is a single token: on dump whitespace runs become "_" and an empty
     / description is written as "-"; parsing does not reverse this.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, TextIO, Tuple

MACHINE_SUFFIX_RE = re.compile(r"^(?P<base>.+)_M(?P<machine>\d+)$", re.IGNORECASE)


def node_key(node_id: str) -> str:
    """节点 ID 的规范键（不区分大小写）。 / Canonical, case-insensitive key of a node ID."""
    return node_id.casefold()


def split_machine_id(node_id: str) -> Optional[Tuple[str, int]]:
    """'J3_M2' -> ('J3', 2)；非机器节点返回 None。 / Return (base, machine) or None."""
    m = MACHINE_SUFFIX_RE.match(node_id)
    if not m:
        return None
    return m.group("base"), int(m.group("machine"))


def machine_node_id(job_id: str, machine: int) -> str:
    return f"{job_id}_M{machine}"


# ==============================
# 1. 基础数据结构 / Basic Data Structures
# ==============================

@dataclass
class Node:
    """
    任务节点。durations[m-1] 为第 m 台机器上的加工时长，0 表示不在该机器上加工。
    / A task node. durations[m-1] is the processing time on machine m; 0 means "not processed there".
    """
    id: str
    description: str = ""
    durations: Tuple[float, ...] = ()
    is_product: bool = False

    def __post_init__(self) -> None:
        values = tuple(float(d) for d in self.durations)
        for d in values:
            if d < 0 or math.isnan(d):
                raise ValueError(f"Node {self.id}: durations must be >= 0, got {d}")
        self.durations = values

    @property
    def time_m1(self) -> float:
        return self.time_on(1)

    @property
    def time_m2(self) -> float:
        return self.time_on(2)

    def time_on(self, machine: int) -> float:
        """第 machine 台机器（1 起）上的时长。 / Duration on a 1-based machine index."""
        if 1 <= machine <= len(self.durations):
            return self.durations[machine - 1]
        return 0.0

    @property
    def duration(self) -> float:
        """时长向量中第一个正值（没有则为 0）。 / First positive entry of the duration vector (0 if none)."""
        for d in self.durations:
            if d > 0:
                return d
        return 0.0


@dataclass(frozen=True)
class Edge:
    """有向边 from_id -> to_id，cost 为非负转移时间。 / Directed edge with a non-negative cost."""
    from_id: str
    to_id: str
    cost: float = 0.0


@dataclass
class PrecedenceGraph:
    """
    S-Graph：节点按不区分大小写的 ID 存储；边按插入顺序保存（仅用于确定性的并列打破）。
    / S-Graph: nodes keyed by case-insensitive ID; edges kept in insertion order
    / (order only matters for deterministic tie-breaking downstream).

    同一对节点之间允许多条边。求解器不修改本对象，而是通过 with_edges() 构造候选图。
    / Parallel edges are allowed. Solvers never mutate the graph they receive; they build
    / candidate graphs through with_edges().
    """
    _nodes: Dict[str, Node] = field(default_factory=dict)
    edges: List[Edge] = field(default_factory=list)

    # ---- nodes ----

    def add_node(
        self,
        node_id: str,
        description: str = "",
        durations: Iterable[float] = (),
        is_product: bool = False,
    ) -> Node:
        """添加节点；ID 已存在时不做任何修改并返回已有节点。
           / Add a node; a no-op returning the existing node when the ID is already present."""
        k = node_key(node_id)
        existing = self._nodes.get(k)
        if existing is not None:
            return existing
        node = Node(id=node_id, description=description, durations=tuple(durations), is_product=is_product)
        self._nodes[k] = node
        return node

    def get(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_key(node_id))

    def node(self, node_id: str) -> Node:
        n = self.get(node_id)
        if n is None:
            raise KeyError(node_id)
        return n

    def __contains__(self, node_id: object) -> bool:
        return isinstance(node_id, str) and node_key(node_id) in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    @property
    def node_ids(self) -> List[str]:
        return [n.id for n in self._nodes.values()]

    # ---- edges ----

    def add_edge(
        self,
        from_id: str,
        to_id: str,
        cost: float = 0.0,
        allow_dangling: bool = False,
        tracer: Optional[logging.Logger] = None,
    ) -> Optional[Edge]:
        """
        添加边。任一端点不存在时为空操作（返回 None），除非 allow_dangling=True（此时记录警告）。
        / Add an edge. A no-op (returns None) when an endpoint is unknown, unless
        / allow_dangling=True, in which case the edge is kept and a warning is traced.
        """
        cost = float(cost)
        if cost < 0 or math.isnan(cost):
            raise ValueError(f"Edge {from_id}->{to_id}: cost must be >= 0, got {cost}")

        src = self.get(from_id)
        dst = self.get(to_id)
        if src is None or dst is None:
            if not allow_dangling:
                return None
            if tracer is not None:
                missing = from_id if src is None else to_id
                tracer.warning("[Graph] dangling edge %s -> %s (unknown node %s)", from_id, to_id, missing)
        edge = Edge(
            from_id=src.id if src is not None else from_id,
            to_id=dst.id if dst is not None else to_id,
            cost=cost,
        )
        self.edges.append(edge)
        return edge

    def clear_edges(self) -> None:
        self.edges.clear()

    def is_known_edge(self, edge: Edge) -> bool:
        return node_key(edge.from_id) in self._nodes and node_key(edge.to_id) in self._nodes

    def successors(self, node_id: str) -> List[Edge]:
        k = node_key(node_id)
        return [e for e in self.edges if node_key(e.from_id) == k]

    def predecessors(self, node_id: str) -> List[Edge]:
        k = node_key(node_id)
        return [e for e in self.edges if node_key(e.to_id) == k]

    def adjacency(self) -> Tuple[Dict[str, List[Edge]], Dict[str, List[Edge]]]:
        """
        一次性建立 (出边, 入边) 索引，键为规范键；只包含两端都存在的边。
        / Build (outgoing, incoming) indexes keyed by canonical key; known edges only.
        """
        out_edges: Dict[str, List[Edge]] = {k: [] for k in self._nodes}
        in_edges: Dict[str, List[Edge]] = {k: [] for k in self._nodes}
        for e in self.edges:
            fk, tk = node_key(e.from_id), node_key(e.to_id)
            if fk in self._nodes and tk in self._nodes:
                out_edges[fk].append(e)
                in_edges[tk].append(e)
        return out_edges, in_edges

    # ---- copies ----

    def copy(self) -> "PrecedenceGraph":
        """独立副本（节点与边都复制）。 / Independent copy of nodes and edges."""
        g = PrecedenceGraph()
        for k, n in self._nodes.items():
            g._nodes[k] = replace(n)
        g.edges = list(self.edges)
        return g

    def with_edges(self, edges: Iterable[Edge]) -> "PrecedenceGraph":
        """共享节点、替换边集的候选图。 / Candidate graph sharing the nodes with a new edge set."""
        g = PrecedenceGraph()
        g._nodes = self._nodes
        g.edges = list(edges)
        return g

    # ---- flow-shop views ----

    def base_job_ids(self) -> List[str]:
        """以 "_M1" 结尾的节点去掉后缀后的作业 ID（去重，保持插入顺序）。
           / Job IDs of the nodes ending in "_M1" (suffix stripped, distinct, insertion order)."""
        seen = set()
        jobs: List[str] = []
        for n in self._nodes.values():
            parts = split_machine_id(n.id)
            if parts is None or parts[1] != 1:
                continue
            if node_key(parts[0]) in seen:
                continue
            seen.add(node_key(parts[0]))
            jobs.append(parts[0])
        return jobs

    def machine_count(self) -> int:
        best = 0
        for n in self._nodes.values():
            parts = split_machine_id(n.id)
            if parts is not None:
                best = max(best, parts[1])
        return best

    def machine_node(self, job_id: str, machine: int) -> Optional[Node]:
        return self.get(machine_node_id(job_id, machine))

    def machine_time(self, job_id: str, machine: int) -> float:
        """作业在第 m 台机器上的时长：优先取时长向量第 m 位，为 0 时取 duration。
           / Duration of a job on machine m: entry m of the vector, else the node's duration."""
        n = self.machine_node(job_id, machine)
        if n is None:
            return 0.0
        return n.time_on(machine) or n.duration

    def product_nodes(self) -> List[Node]:
        return [n for n in self._nodes.values() if n.is_product]

    def sink_nodes(self) -> List[Node]:
        out_edges, _ = self.adjacency()
        return [n for k, n in self._nodes.items() if not out_edges[k]]

    def product_for(self, job_id: str) -> Optional[Node]:
        """
        作业对应的产品节点：优先取作业机器节点直接指向的产品节点，否则按 "P<数字>" 约定查找。
        / Product node of a job: the product reached by an edge from one of the job's
        / machine nodes, otherwise the "P<digits>" naming convention.
        """
        jk = node_key(job_id)
        for e in self.edges:
            parts = split_machine_id(e.from_id)
            if parts is None or node_key(parts[0]) != jk:
                continue
            target = self.get(e.to_id)
            if target is not None and target.is_product:
                return target

        digits = "".join(ch for ch in job_id if ch.isdigit())
        if digits:
            cand = self.get(f"P{int(digits)}")
            if cand is not None and cand.is_product:
                return cand
        return None


# ==============================
# 2. 文本协议 / Text protocol
# ==============================

def _looks_like_product(node_id: str) -> bool:
    return node_id[:1] in ("P", "p") and split_machine_id(node_id) is None


def _parse_float(token: str) -> Optional[float]:
    try:
        v = float(token)
    except ValueError:
        return None
    if math.isnan(v) or math.isinf(v):
        return None
    return v


def parse_graph_lines(lines: Iterable[str], tracer: Optional[logging.Logger] = None) -> PrecedenceGraph:
    """
    按行解析文本协议，直到输入结束。
    / Parse the text protocol line by line until end of input.
    """
    g = PrecedenceGraph()
    declared: Optional[set] = None
    for raw in lines:
        parts = raw.split()
        if not parts:
            continue
        kind = parts[0]

        if kind == "PRODUCTS":
            declared = (declared or set()) | {node_key(p) for p in parts[1:]}

        elif kind == "NODE" and len(parts) >= 3:
            durations = []
            for tok in parts[3:]:
                v = _parse_float(tok)
                durations.append(v if v is not None and v >= 0 else 0.0)
            g.add_node(parts[1], parts[2], durations, is_product=_looks_like_product(parts[1]))

        elif kind == "EDGE" and len(parts) >= 4:
            cost = _parse_float(parts[3])
            if cost is None or cost < 0:
                if tracer is not None:
                    tracer.debug("[Graph] skipped edge with malformed cost: %s", raw.strip())
                continue
            # 与原始前端一致：先收集边，端点缺失的边不入图
            if g.add_edge(parts[1], parts[2], cost) is None and tracer is not None:
                tracer.debug("[Graph] skipped edge with unknown endpoint: %s", raw.strip())

    # 显式声明的产品集合覆盖命名约定
    if declared is not None:
        for k, n in g._nodes.items():
            n.is_product = k in declared
    return g


def read_graph(stream: TextIO, tracer: Optional[logging.Logger] = None) -> PrecedenceGraph:
    return parse_graph_lines(stream, tracer=tracer)


def load_graph_from_text(path: str | Path, tracer: Optional[logging.Logger] = None) -> PrecedenceGraph:
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        return parse_graph_lines(f, tracer=tracer)


def _fmt_number(v: float) -> str:
    return repr(float(v))


def dump_graph_lines(graph: PrecedenceGraph) -> List[str]:
    lines: List[str] = []
    for n in graph.nodes:
        desc = "_".join(n.description.split()) or "-"
        tail = "".join(f" {_fmt_number(d)}" for d in n.durations)
        lines.append(f"NODE {n.id} {desc}{tail}")
    for e in graph.edges:
        lines.append(f"EDGE {e.from_id} {e.to_id} {_fmt_number(e.cost)}")
    lines.append(" ".join(["PRODUCTS"] + [n.id for n in graph.product_nodes()]))
    return lines


def dump_graph_text(graph: PrecedenceGraph) -> str:
    """把图写成文本协议（可被 parse_graph_lines 原样读回）。
       / Serialise the graph in the text protocol (parse_graph_lines reads it back)."""
    return "\n".join(dump_graph_lines(graph)) + "\n"
