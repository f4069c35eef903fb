"""Convert timestamped stack samples into :data:`CommonProfileData`.

Full call-graph profilers report call counts and wall time per function and
per call edge. The sampling backend only records which call chain was active
at each tick, so its output is folded into the same shape here: the interval
since the previous sample is charged to the root frame and, undivided, to
every edge along the sampled chain (one count per stack level, the way a
full profiler accounts nested time).
"""

from __future__ import annotations

import math
from typing import Iterable

from liveprof.model import CallMetric, CommonProfileData, Sample, edge_key


def _elapsed_us(start: float, end: float) -> int:
    """Whole microseconds between two timestamps, never negative.

    The product is rounded to 1e-6 us before flooring so that float noise
    (``1999.9999999998``) does not cost a microsecond while real fractions
    (``1999.9996``) are still truncated.
    """
    return max(0, math.floor(round((end - start) * 1_000_000, 6)))


def aggregate_samples(
    samples: Iterable[Sample], session_start: float
) -> CommonProfileData:
    """Fold chronologically ordered samples into per-key metrics.

    Args:
        samples: Samples ordered by ``captured_at``.
        session_start: Monotonic timestamp taken when sampling began; the
            first sample's interval is measured from it.

    Returns:
        Mapping of root frames and ``parent==>child`` edges to metrics.
    """
    result: CommonProfileData = {}
    prev_time = session_start

    for sample in samples:
        delta_us = _elapsed_us(prev_time, sample.captured_at)
        frames = sample.stack
        prev_time = sample.captured_at
        if not frames:
            continue

        result.setdefault(frames[0], CallMetric()).add(1, delta_us)
        for parent, child in zip(frames, frames[1:]):
            result.setdefault(edge_key(parent, child), CallMetric()).add(1, delta_us)

    return result
