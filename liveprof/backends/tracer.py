"""Call-graph capture through ``sys.setprofile``.

Used where the ``cProfile`` extension is unavailable. Each completed call is
charged to the edge between its caller and itself; calls still open when the
capture ends are dropped. Only the thread that began the capture is traced.
"""

from __future__ import annotations

import sys
import time
from types import FrameType, ModuleType
from typing import Any, Callable, List, Optional, Tuple

from liveprof.backends.base import BackendVariant, ProfilerBackend
from liveprof.model import (
    ROOT_KEY,
    CallMetric,
    CommonProfileData,
    edge_key,
    format_function,
)

_CALL_EVENTS = ("call", "c_call")
_RETURN_EVENTS = ("return", "c_return", "c_exception")


def builtin_label(func: Any) -> str:
    """Label a C function the way ``cProfile`` does."""
    bound_to = getattr(func, "__self__", None)
    if bound_to is not None and not isinstance(bound_to, ModuleType):
        return f"<method '{func.__name__}' of '{type(bound_to).__name__}' objects>"
    name = getattr(func, "__qualname__", None) or getattr(func, "__name__", "?")
    module = getattr(func, "__module__", None)
    if module:
        return f"<built-in method {module}.{name}>"
    return f"<built-in method {name}>"


class CallTracerBackend(ProfilerBackend):
    """Deterministic call-graph profiler written against ``sys.setprofile``."""

    variant = BackendVariant.CALL_TRACER

    def __init__(self) -> None:
        self._stack: List[Tuple[str, float]] = []
        self._data: CommonProfileData = {}
        self._start = 0.0
        self._previous: Optional[Callable] = None
        self._active = False

    def _dispatch(self, frame: FrameType, event: str, arg: Any) -> None:
        if event in _CALL_EVENTS:
            if event == "call":
                code = frame.f_code
                label = format_function(
                    code.co_filename, code.co_firstlineno, code.co_name
                )
            else:
                label = builtin_label(arg)
            self._stack.append((label, time.perf_counter()))
        elif event in _RETURN_EVENTS:
            # Frames entered before the capture began return on an empty stack
            if not self._stack:
                return
            label, started = self._stack.pop()
            elapsed_us = max(0, int((time.perf_counter() - started) * 1_000_000))
            parent = self._stack[-1][0] if self._stack else ROOT_KEY
            self._data.setdefault(edge_key(parent, label), CallMetric()).add(
                1, elapsed_us
            )

    def begin(self) -> None:
        self._stack = []
        self._data = {}
        self._previous = sys.getprofile()
        self._start = time.perf_counter()
        self._active = True
        sys.setprofile(self._dispatch)

    def end(self) -> CommonProfileData:
        if not self._active:
            return {}
        sys.setprofile(self._previous)
        self._active = False
        wall_us = max(0, int((time.perf_counter() - self._start) * 1_000_000))

        data, self._data = self._data, {}
        self._stack = []
        if data:
            data[ROOT_KEY] = CallMetric(count=1, wall_time_us=wall_us)
        return data
