"""Runtime capability detection for capture backends.

Each variant has a probe telling whether the running interpreter supports
it. Probes are evaluated in priority order and the first available variant
wins; callers (and tests) may inject their own probes.
"""

from __future__ import annotations

import importlib.util
import sys
from typing import Any, Callable, Dict, List, Mapping, Optional

from liveprof.backends.base import BackendVariant, ProfilerBackend
from liveprof.backends.cprofile import CProfileBackend
from liveprof.backends.sampling import SamplingBackend
from liveprof.backends.tracer import CallTracerBackend
from liveprof.logging import get_logger

logger = get_logger(__name__)

Probe = Callable[[], bool]

PRIORITY: List[BackendVariant] = [
    BackendVariant.CPROFILE_MEMORY,
    BackendVariant.CPROFILE,
    BackendVariant.CALL_TRACER,
    BackendVariant.SAMPLING,
]


def _has_module(name: str) -> bool:
    try:
        return importlib.util.find_spec(name) is not None
    except (ImportError, ValueError):
        return False


def _has_cprofile_memory() -> bool:
    if not (_has_module("_lsprof") and _has_module("tracemalloc")):
        return False
    import tracemalloc

    # Someone else owns allocation tracing; fall back to plain cProfile
    return not tracemalloc.is_tracing()


def _has_cprofile() -> bool:
    return _has_module("_lsprof")


def _has_setprofile() -> bool:
    return callable(getattr(sys, "setprofile", None))


def _has_current_frames() -> bool:
    return callable(getattr(sys, "_current_frames", None))


DEFAULT_PROBES: Dict[BackendVariant, Probe] = {
    BackendVariant.CPROFILE_MEMORY: _has_cprofile_memory,
    BackendVariant.CPROFILE: _has_cprofile,
    BackendVariant.CALL_TRACER: _has_setprofile,
    BackendVariant.SAMPLING: _has_current_frames,
}


def detect_capabilities(
    probes: Optional[Mapping[BackendVariant, Probe]] = None,
) -> List[BackendVariant]:
    """Return every available variant, highest priority first.

    Args:
        probes: Optional replacement probes. Variants missing from the
            mapping are treated as unavailable.
    """
    active = DEFAULT_PROBES if probes is None else probes
    available = []
    for variant in PRIORITY:
        probe = active.get(variant)
        if probe is None:
            continue
        try:
            if probe():
                available.append(variant)
        except Exception as exc:
            logger.debug(
                f"Probe for {variant.value} failed: {type(exc).__name__}: {exc}"
            )
    return available


def create_backend(variant: BackendVariant, **options: Any) -> ProfilerBackend:
    """Instantiate the backend implementing ``variant``.

    Args:
        variant: Variant to build. ``CALLBACK`` backends need user callables
            and cannot be built here.
        **options: ``sampling_interval`` / ``sampling_depth`` for the
            sampling backend; ignored by the others.
    """
    if variant is BackendVariant.CPROFILE_MEMORY:
        return CProfileBackend(track_memory=True)
    if variant is BackendVariant.CPROFILE:
        return CProfileBackend(track_memory=False)
    if variant is BackendVariant.CALL_TRACER:
        return CallTracerBackend()
    if variant is BackendVariant.SAMPLING:
        kwargs = {}
        if options.get("sampling_interval") is not None:
            kwargs["interval"] = options["sampling_interval"]
        if options.get("sampling_depth") is not None:
            kwargs["depth"] = options["sampling_depth"]
        return SamplingBackend(**kwargs)
    raise ValueError(f"Backend variant '{variant.value}' cannot be created by name")


def detect_backend(
    probes: Optional[Mapping[BackendVariant, Probe]] = None, **options: Any
) -> Optional[ProfilerBackend]:
    """Instantiate the highest-priority available backend.

    Returns:
        The backend, or None when no capability is available at all.
    """
    available = detect_capabilities(probes)
    if not available:
        logger.warning("No profiling capability available in this interpreter")
        return None
    logger.debug(f"Detected profiler backend: {available[0].value}")
    return create_backend(available[0], **options)
