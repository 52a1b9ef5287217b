# -*- coding: utf-8 -*-
"""
algorithms/random_utils.py
统一随机数工具

目标
----
- 默认“每次运行不同”：seed=None 时使用 time_ns + SystemRandom 混合生成种子；
- 允许可复现：显式传入 seed=int（GA/SA 的 best_history 在固定种子下可复现）；
- 每个算法实例持有独立 RNG，不触碰全局 random 状态。
"""

from __future__ import annotations

import random
import time
from typing import List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")


def resolve_seed(seed: Optional[int]) -> int:
    """None => 自动生成一个 31bit 正整数种子；int => 原样返回。"""
    if seed is None:
        return (time.time_ns() ^ random.SystemRandom().randrange(1 << 30)) & 0x7FFFFFFF
    return int(seed) & 0x7FFFFFFF


def make_rng(seed: Optional[int]) -> random.Random:
    """创建一个独立 RNG（推荐用于算法内部）。"""
    return random.Random(resolve_seed(seed))


def shuffled(items: Sequence[T], rng: random.Random) -> List[T]:
    """返回随机排列的新列表（不修改输入）。"""
    out = list(items)
    rng.shuffle(out)
    return out


def swap_two(perm: List[T], rng: random.Random) -> Tuple[int, int]:
    """原地交换两个不同随机位置；长度 < 2 时不做任何事。"""
    if len(perm) < 2:
        return 0, 0
    i, j = rng.sample(range(len(perm)), 2)
    perm[i], perm[j] = perm[j], perm[i]
    return i, j
