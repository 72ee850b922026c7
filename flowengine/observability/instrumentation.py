#!filepath: flowengine/observability/instrumentation.py
from __future__ import annotations

import time
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator


@dataclass
class TimedScope:
    """
    Result handle of one ``timer()`` block.

    ``elapsed`` is filled when the block exits (also on exceptions).
    """

    name: str
    elapsed: float = 0.0


@dataclass
class Instrumentation:
    """
    Instrumentation（wrapper-level wall-time accounting）

    设计铁律：
    1. Timeline 只记录 record=True 的 scope
    2. record=False 的 scope 仍然返回 elapsed（训练时间需要），但不写 timeline
    3. Instrumentation 本身不打日志
    """

    enabled: bool = True
    timeline: Dict[str, float] = field(default_factory=OrderedDict)

    @contextmanager
    def timer(self, name: str, *, record: bool = True) -> Iterator[TimedScope]:
        scope = TimedScope(name=name)
        start = time.perf_counter()
        try:
            yield scope
        finally:
            scope.elapsed = time.perf_counter() - start
            if self.enabled and record:
                self.timeline[name] = scope.elapsed

    def total(self) -> float:
        return float(sum(self.timeline.values()))


class NoOpInstrumentation(Instrumentation):
    """Instrumentation disabled 时使用：elapsed 照常测量，timeline 永远为空。"""

    def __init__(self):
        super().__init__(enabled=False)
