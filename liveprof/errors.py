"""Exception hierarchy for liveprof.

The session controller never lets these escape to the host program: it logs
them and reports failure through a ``False`` return value. Helpers used on
their own (codec, config loader, storage factories) raise them directly.
"""


class LiveProfilerError(Exception):
    """Base class for all liveprof errors."""


class BackendConflictError(LiveProfilerError):
    """A backend was reselected while a capture is in progress."""


class InvalidCaptureError(LiveProfilerError, ValueError):
    """End-of-capture data is not a well-formed profile mapping."""


class EmptyCaptureError(LiveProfilerError):
    """The capture was well-formed but contained no metrics."""


class PersistenceError(LiveProfilerError):
    """The storage collaborator failed to store a profile."""


class ConfigurationError(LiveProfilerError, ValueError):
    """Settings cannot produce a usable profiler component."""
