"""Full call-graph capture with ``cProfile``, optionally with ``tracemalloc``.

The memory-tracking variant also reports CPU time and current/peak traced
memory on the ``main()`` root. It leaves ``tracemalloc`` alone when the host
program is already tracing allocations.
"""

from __future__ import annotations

import cProfile
import io
import pstats
import time
import tracemalloc
from typing import Optional

from liveprof.backends.base import BackendVariant, ProfilerBackend
from liveprof.backends.pstats_data import stats_to_common
from liveprof.logging import get_logger
from liveprof.model import ROOT_KEY, CommonProfileData

logger = get_logger(__name__)


class CProfileBackend(ProfilerBackend):
    """Deterministic call-graph profiler built on ``cProfile``.

    Args:
        track_memory: If True, record CPU time and traced memory as well.
    """

    def __init__(self, track_memory: bool = True) -> None:
        self.track_memory = bool(track_memory)
        self.variant = (
            BackendVariant.CPROFILE_MEMORY
            if self.track_memory
            else BackendVariant.CPROFILE
        )
        self._profiler: Optional[cProfile.Profile] = None
        self._start_wall = 0.0
        self._start_cpu = 0.0
        self._mem_tracing_started = False

    def begin(self) -> None:
        self._mem_tracing_started = False
        if self.track_memory and not tracemalloc.is_tracing():
            tracemalloc.start()
            self._mem_tracing_started = True

        self._start_cpu = time.process_time()
        self._start_wall = time.perf_counter()
        self._profiler = cProfile.Profile()
        try:
            self._profiler.enable()
        except Exception:
            # Another profiler may own the interpreter hook (Python >= 3.12)
            self._profiler = None
            if self._mem_tracing_started:
                tracemalloc.stop()
                self._mem_tracing_started = False
            raise

    def end(self) -> CommonProfileData:
        if self._profiler is None:
            return {}

        self._profiler.disable()
        wall_time = time.perf_counter() - self._start_wall
        cpu_time = time.process_time() - self._start_cpu

        profiler, self._profiler = self._profiler, None
        stats = pstats.Stats(profiler, stream=io.StringIO())
        data = stats_to_common(stats, total_wall_time=wall_time)

        if self._mem_tracing_started:
            current, peak = tracemalloc.get_traced_memory()
            tracemalloc.stop()
            self._mem_tracing_started = False
            if ROOT_KEY in data:
                data[ROOT_KEY].memory_bytes = int(current)
                data[ROOT_KEY].peak_memory_bytes = int(peak)

        if self.track_memory and ROOT_KEY in data:
            data[ROOT_KEY].cpu_time_us = max(0, int(cpu_time * 1_000_000))

        logger.debug(
            f"cProfile capture finished: {len(data)} metrics, {wall_time:.3f}s wall"
        )
        return data
