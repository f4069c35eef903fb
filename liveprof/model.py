"""Core data structures shared by backends, the controller and storage.

Every backend ultimately produces :data:`CommonProfileData`: a mapping from a
metric key to a :class:`CallMetric`. A key is either a single function label
(a root of the captured call graph) or an edge ``"parent==>child"``.
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from liveprof.errors import InvalidCaptureError

EDGE_SEPARATOR = "==>"
ROOT_KEY = "main()"
AGGREGATE_LABEL = "All"

# Short field names of the xhprof-style serialized form
_RAW_FIELDS = {
    "ct": "count",
    "wt": "wall_time_us",
    "cpu": "cpu_time_us",
    "mu": "memory_bytes",
    "pmu": "peak_memory_bytes",
}


@dataclass
class CallMetric:
    """Counters for one function or call edge.

    Attributes:
        count: Number of calls (or samples) attributed to the key.
        wall_time_us: Wall-clock time in whole microseconds.
        cpu_time_us: CPU time in microseconds, when the backend measures it.
        memory_bytes: Memory still allocated at the end of the capture.
        peak_memory_bytes: Peak traced memory during the capture.
    """

    count: int = 0
    wall_time_us: int = 0
    cpu_time_us: int = 0
    memory_bytes: int = 0
    peak_memory_bytes: int = 0

    def add(self, count: int, wall_time_us: int) -> None:
        self.count += count
        self.wall_time_us += wall_time_us

    def to_dict(self) -> Dict[str, int]:
        """Return the compact ``{"ct": .., "wt": ..}`` form, omitting zero extras."""
        out = {"ct": self.count, "wt": self.wall_time_us}
        for short, attr in list(_RAW_FIELDS.items())[2:]:
            value = getattr(self, attr)
            if value:
                out[short] = value
        return out

    @classmethod
    def from_dict(cls, raw: Mapping) -> "CallMetric":
        """Build a metric from either the compact or the attribute-named form.

        Raises:
            InvalidCaptureError: If a counter is missing, not a finite number or
                negative.
        """
        values: Dict[str, int] = {}
        for short, attr in _RAW_FIELDS.items():
            value = raw.get(short, raw.get(attr, 0))
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidCaptureError(f"Counter '{short}' must be a number")
            if not math.isfinite(value):
                raise InvalidCaptureError(f"Counter '{short}' must be finite")
            if value < 0:
                raise InvalidCaptureError(f"Counter '{short}' must be non-negative")
            values[attr] = int(value)
        if "ct" not in raw and "count" not in raw:
            raise InvalidCaptureError("Metric is missing its call count ('ct')")
        return cls(**values)


CommonProfileData = Dict[str, CallMetric]


def edge_key(parent: str, child: str) -> str:
    """Return the metric key for a ``parent -> child`` call edge."""
    return f"{parent}{EDGE_SEPARATOR}{child}"


def split_key(key: str) -> Tuple[Optional[str], str]:
    """Split a metric key into ``(parent, child)``; parent is None for roots."""
    if EDGE_SEPARATOR in key:
        parent, child = key.split(EDGE_SEPARATOR, 1)
        return parent, child
    return None, key


def format_function(filename: str, lineno: int, name: str) -> str:
    """Label a function the same way across all backends.

    Built-ins (reported by ``cProfile`` with filename ``"~"``) keep their bare
    name; Python functions become ``"file.py:LINE(name)"``.
    """
    if filename == "~" or not filename:
        return name
    return f"{os.path.basename(filename)}:{lineno}({name})"


def normalize_profile_data(raw: Any) -> CommonProfileData:
    """Coerce a raw capture into :data:`CommonProfileData`.

    Values may already be :class:`CallMetric` instances or xhprof-style
    mappings such as ``{"ct": 3, "wt": 120}``.

    Raises:
        InvalidCaptureError: If ``raw`` is not a mapping of string keys to
            well-formed metrics.
    """
    if not isinstance(raw, Mapping):
        raise InvalidCaptureError(
            f"Profile data must be a mapping, got {type(raw).__name__}"
        )
    data: CommonProfileData = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            raise InvalidCaptureError(f"Metric key must be a string, got {key!r}")
        if isinstance(value, CallMetric):
            value = vars(value)
        if isinstance(value, Mapping):
            try:
                data[key] = CallMetric.from_dict(value)
            except InvalidCaptureError as exc:
                raise InvalidCaptureError(f"Invalid metric '{key}': {exc}") from exc
        else:
            raise InvalidCaptureError(
                f"Invalid metric '{key}': expected a mapping, "
                f"got {type(value).__name__}"
            )
    return data


@dataclass(frozen=True)
class Sample:
    """One stack sample.

    Attributes:
        captured_at: Monotonic timestamp in seconds (``time.perf_counter``).
        stack: Active call chain at that instant, root first.
    """

    captured_at: float
    stack: Tuple[str, ...] = ()


@dataclass
class SampleCapture:
    """Raw output of the sampling backend: samples plus the session start."""

    session_start: float
    samples: List[Sample] = field(default_factory=list)


class SessionState(Enum):
    IDLE = "idle"
    ENABLED = "enabled"
    ENDED = "ended"


@dataclass
class ProfileSession:
    """The single profiling session owned by a controller.

    Settings are copied in at ``start()``, so changes made to the controller
    while a capture runs apply to the next session only.
    """

    app: str
    label: str
    timestamp: datetime
    divider: int = 1000
    total_divider: int = 10000
    state: SessionState = SessionState.IDLE

    @property
    def is_enabled(self) -> bool:
        return self.state is SessionState.ENABLED
