"""Backend interface shared by all capture capabilities."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable


class BackendVariant(Enum):
    """Capture capabilities, listed in detection priority order."""

    CPROFILE_MEMORY = "cprofile-memory"
    CPROFILE = "cprofile"
    CALL_TRACER = "tracer"
    SAMPLING = "sampling"
    CALLBACK = "callback"

    @classmethod
    def from_name(cls, name: str) -> "BackendVariant":
        """Look a variant up by its configuration name (case-insensitive)."""
        try:
            return cls(name.strip().lower())
        except ValueError:
            allowed = ", ".join(v.value for v in cls if v is not cls.CALLBACK)
            raise ValueError(
                f"Unknown profiler backend '{name}'. Expected one of: {allowed}"
            ) from None


class ProfilerBackend(ABC):
    """A capability that can be switched on and, when switched off, yields data.

    ``end()`` of a full call-graph backend returns :data:`CommonProfileData`
    directly; the sampling backend returns a :class:`SampleCapture` that the
    controller normalizes.
    """

    variant: BackendVariant

    @abstractmethod
    def begin(self) -> None:
        """Start capturing."""

    @abstractmethod
    def end(self) -> Any:
        """Stop capturing and return the raw capture."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(variant={self.variant.value!r})"


class CallbackBackend(ProfilerBackend):
    """Backend built from two user callables.

    Lets callers plug in a capability liveprof does not ship. Whatever
    ``end_fn`` returns is validated by the controller like any other capture.
    """

    variant = BackendVariant.CALLBACK

    def __init__(self, begin_fn: Callable[[], Any], end_fn: Callable[[], Any]):
        self._begin_fn = begin_fn
        self._end_fn = end_fn

    def begin(self) -> None:
        self._begin_fn()

    def end(self) -> Any:
        return self._end_fn()
