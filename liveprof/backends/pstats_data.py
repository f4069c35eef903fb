"""Convert ``pstats`` statistics into :data:`CommonProfileData`.

``pstats.Stats.stats`` maps ``(filename, lineno, funcname)`` to
``(cc, nc, tt, ct, callers)``. For ``cProfile`` each caller entry is a tuple
``(nc, cc, tt, ct)`` describing that single call edge.

Functions without a recorded caller were entered directly from the profiled
scope and hang off the synthetic ``main()`` root.
"""

from __future__ import annotations

import pstats
from typing import Any, Dict, Tuple

from liveprof.model import (
    ROOT_KEY,
    CallMetric,
    CommonProfileData,
    edge_key,
    format_function,
)

FuncKey = Tuple[str, int, str]

# Entry produced by switching the profiler itself off
_PROFILER_INTERNAL = "_lsprof.Profiler"


def _to_us(seconds: float) -> int:
    return max(0, int(seconds * 1_000_000))


def _is_internal(func: FuncKey) -> bool:
    return _PROFILER_INTERNAL in func[2]


def _label(func: FuncKey) -> str:
    filename, lineno, name = func
    return format_function(filename, lineno, name)


def _add(result: CommonProfileData, key: str, count: int, wall_us: int) -> None:
    result.setdefault(key, CallMetric()).add(count, wall_us)


def stats_to_common(
    stats: pstats.Stats, total_wall_time: float = 0.0
) -> CommonProfileData:
    """Build common profile data from collected ``pstats`` statistics.

    Args:
        stats: Statistics snapshot of a finished capture.
        total_wall_time: Duration of the capture in seconds, charged to the
            ``main()`` root. Defaults to the sum of the root edges.

    Returns:
        Mapping with one ``main()`` root plus a ``parent==>child`` key per
        recorded call edge. Empty when nothing was recorded.
    """
    stats_data: Dict[FuncKey, Any] = getattr(stats, "stats", {})
    result: CommonProfileData = {}
    root_wall_us = 0

    for func, (_cc, nc, _tt, ct, callers) in stats_data.items():
        if _is_internal(func):
            continue
        callee = _label(func)
        callers = {c: v for c, v in callers.items() if not _is_internal(c)}

        if not callers:
            wall_us = _to_us(ct)
            _add(result, edge_key(ROOT_KEY, callee), nc, wall_us)
            root_wall_us += wall_us
            continue

        for caller, edge in callers.items():
            _add(result, edge_key(_label(caller), callee), edge[0], _to_us(edge[3]))

    if not result:
        return result

    total_us = _to_us(total_wall_time) if total_wall_time > 0 else root_wall_us
    result[ROOT_KEY] = CallMetric(count=1, wall_time_us=total_us)
    return result
