# -*- coding: utf-8 -*-
"""
schedulers/tracing.py
求解过程诊断输出 / Diagnostics for solver runs

算法内部不直接 print，而是写入调用方传入的 logging.Logger；
未传入时使用一个被禁用的空 logger（无任何输出）。
/ Solvers never print; they write to the logging.Logger handed to search().
/ Without one, a disabled null logger is used, so nothing is emitted.
"""

from __future__ import annotations

import logging
from typing import Optional

NULL_LOGGER_NAME = "sgraph.null"


def _build_null_logger() -> logging.Logger:
    lg = logging.getLogger(NULL_LOGGER_NAME)
    lg.addHandler(logging.NullHandler())
    lg.propagate = False
    lg.disabled = True
    return lg


_NULL_LOGGER = _build_null_logger()


def resolve_tracer(tracer: Optional[logging.Logger]) -> logging.Logger:
    """None => 空 logger；否则原样返回。 / None => null logger; otherwise returned unchanged."""
    return tracer if tracer is not None else _NULL_LOGGER
