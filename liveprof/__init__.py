"""liveprof: sampled in-process profiling for live Python services.

A fraction of executions is profiled with the best capture backend the
interpreter offers; the call-graph metrics are stored in SQLite, in files or
on a collector API.

Primary API:
    LiveProfiler - Session controller (start / end / reset / profiling())
    ProfilerConfig - Settings, from code, ``LIVE_PROFILER_*`` env or YAML
    get_profiler() - Lazily created process-wide profiler (opt-in)

Example:
    from liveprof import LiveProfiler, ProfilerConfig

    profiler = LiveProfiler(ProfilerConfig(app="billing", divider=100))
    with profiler.profiling():
        handle_request()
"""

from __future__ import annotations

import threading
from typing import Optional

from liveprof import logging
from liveprof._version import __version__
from liveprof.aggregate import aggregate_samples
from liveprof.backends import BackendVariant, ProfilerBackend, detect_capabilities
from liveprof.codec import DataPacker, JsonDataPacker
from liveprof.config import ProfilerConfig, load_config_file, load_config_yaml
from liveprof.controller import LiveProfiler
from liveprof.decision import SamplingDecision
from liveprof.errors import LiveProfilerError
from liveprof.model import CallMetric, CommonProfileData, Sample, SampleCapture
from liveprof.storage import ProfileStorage, create_storage

_default_profiler: Optional[LiveProfiler] = None
_default_lock = threading.Lock()


def get_profiler() -> LiveProfiler:
    """Return the shared profiler, configured from the environment on first use."""
    global _default_profiler
    with _default_lock:
        if _default_profiler is None:
            _default_profiler = LiveProfiler(ProfilerConfig.from_env())
        return _default_profiler


__all__ = [
    # Version
    "__version__",
    # Controller
    "LiveProfiler",
    "ProfilerConfig",
    "get_profiler",
    "load_config_file",
    "load_config_yaml",
    # Data model
    "CallMetric",
    "CommonProfileData",
    "Sample",
    "SampleCapture",
    "aggregate_samples",
    "SamplingDecision",
    # Collaborators
    "BackendVariant",
    "ProfilerBackend",
    "detect_capabilities",
    "DataPacker",
    "JsonDataPacker",
    "ProfileStorage",
    "create_storage",
    # Errors
    "LiveProfilerError",
    # Utilities
    "logging",
]
