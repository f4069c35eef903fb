"""Capture backends and capability detection.

- ``CProfileBackend``: ``cProfile`` call graph, optionally with CPU time and
  ``tracemalloc`` memory (variants ``cprofile-memory`` / ``cprofile``).
- ``CallTracerBackend``: call graph through ``sys.setprofile``.
- ``SamplingBackend``: periodic stack samples from a timer thread.
- ``CallbackBackend``: user-supplied begin/end callables.
"""

from .base import BackendVariant, CallbackBackend, ProfilerBackend
from .cprofile import CProfileBackend
from .detect import create_backend, detect_backend, detect_capabilities
from .sampling import SamplingBackend
from .tracer import CallTracerBackend

__all__ = [
    "BackendVariant",
    "ProfilerBackend",
    "CallbackBackend",
    "CProfileBackend",
    "CallTracerBackend",
    "SamplingBackend",
    "create_backend",
    "detect_backend",
    "detect_capabilities",
]
