"""Sampling fallback: poll the profiled thread's stack from a timer thread.

Samples are returned raw as a :class:`SampleCapture`; the controller folds
them into common profile data with :func:`liveprof.aggregate.aggregate_samples`.
"""

from __future__ import annotations

import sys
import threading
import time
from types import FrameType
from typing import List, Optional, Tuple

from liveprof.backends.base import BackendVariant, ProfilerBackend
from liveprof.logging import get_logger
from liveprof.model import Sample, SampleCapture, format_function

logger = get_logger(__name__)

DEFAULT_INTERVAL = 0.01
DEFAULT_DEPTH = 200
DEFAULT_MAX_SAMPLES = 100_000


def frame_stack(
    frame: Optional[FrameType], depth: int = DEFAULT_DEPTH
) -> Tuple[str, ...]:
    """Return up to ``depth`` innermost frame labels of a stack, root first."""
    labels: List[str] = []
    while frame is not None and len(labels) < depth:
        code = frame.f_code
        labels.append(
            format_function(code.co_filename, code.co_firstlineno, code.co_name)
        )
        frame = frame.f_back
    labels.reverse()
    return tuple(labels)


class SamplingBackend(ProfilerBackend):
    """Statistical profiler sampling one thread at a fixed interval.

    Args:
        interval: Seconds between samples.
        depth: Maximum number of frames kept per sample (innermost first).
        max_samples: Sampling stops once this many samples were taken.
    """

    variant = BackendVariant.SAMPLING

    def __init__(
        self,
        interval: float = DEFAULT_INTERVAL,
        depth: int = DEFAULT_DEPTH,
        max_samples: int = DEFAULT_MAX_SAMPLES,
    ) -> None:
        if interval <= 0:
            raise ValueError("Sampling interval must be positive")
        if depth < 1:
            raise ValueError("Sampling depth must be at least 1")
        self.interval = float(interval)
        self.depth = int(depth)
        self.max_samples = int(max_samples)
        self._samples: List[Sample] = []
        self._session_start = 0.0
        self._target_tid: Optional[int] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def begin(self) -> None:
        self._samples = []
        self._target_tid = threading.get_ident()
        self._stop.clear()
        self._session_start = time.perf_counter()
        self._thread = threading.Thread(
            target=self._run, name="liveprof-sampler", daemon=True
        )
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            if len(self._samples) >= self.max_samples:
                logger.debug(f"Sample limit reached ({self.max_samples})")
                return
            frame = sys._current_frames().get(self._target_tid)
            if frame is None:
                continue
            stack = frame_stack(frame, self.depth)
            self._samples.append(Sample(time.perf_counter(), stack))

    def end(self) -> SampleCapture:
        if self._thread is None:
            return SampleCapture(session_start=self._session_start)

        self._stop.set()
        self._thread.join(timeout=max(1.0, self.interval * 10))
        if self._thread.is_alive():
            logger.warning("Sampler thread did not stop in time")
        self._thread = None

        samples, self._samples = list(self._samples), []
        return SampleCapture(session_start=self._session_start, samples=samples)
