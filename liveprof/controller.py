"""Profiling session controller.

``LiveProfiler`` ties the pieces together: it asks the sampling decision
whether this execution should be profiled, switches the selected backend on
and off, normalizes what the backend captured and hands the result to the
storage adapter.

Nothing in here raises into the host program. Every failure is logged and
reported through a ``False`` return value, so an instrumented service keeps
running whether or not its profile could be stored.

Example:
    profiler = LiveProfiler(ProfilerConfig(app="billing", mode="files",
                                           path="/var/profiles"))
    with profiler.profiling():
        handle_request()
"""

from __future__ import annotations

import atexit
import random
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator, Mapping, Optional, Union

from liveprof.aggregate import aggregate_samples
from liveprof.backends import (
    BackendVariant,
    CallbackBackend,
    ProfilerBackend,
    create_backend,
    detect_backend,
)
from liveprof.backends.detect import Probe
from liveprof.codec import DataPacker, JsonDataPacker
from liveprof.config import ProfilerConfig
from liveprof.decision import DecisionOutcome, SamplingDecision
from liveprof.errors import (
    BackendConflictError,
    EmptyCaptureError,
    InvalidCaptureError,
    PersistenceError,
)
from liveprof.logging import get_logger, setup_file_logging
from liveprof.model import (
    CallMetric,
    CommonProfileData,
    ProfileSession,
    SampleCapture,
    SessionState,
    normalize_profile_data,
)
from liveprof.seed_manager import SeedManager
from liveprof.storage import DatabaseStorage, ProfileStorage, create_storage

logger = get_logger(__name__)


class LiveProfiler:
    """Owns one profiling session and the collaborators it needs.

    Args:
        config: Settings; defaults to ``ProfilerConfig()``.
        storage: Storage adapter. Built from ``config`` when omitted.
        backend: Capture backend. Detected from the interpreter when omitted
            and ``config.backend`` is ``"auto"``.
        rng: Random source for sampling decisions. Derived from
            ``config.seed`` when omitted.
        packer: Codec shared by the storage adapter built from ``config``.
        probes: Replacement capability probes used by backend detection.
    """

    def __init__(
        self,
        config: Optional[ProfilerConfig] = None,
        *,
        storage: Optional[ProfileStorage] = None,
        backend: Optional[ProfilerBackend] = None,
        rng: Optional[random.Random] = None,
        packer: Optional[DataPacker] = None,
        probes: Optional[Mapping[BackendVariant, Probe]] = None,
    ) -> None:
        self.config = config if config is not None else ProfilerConfig()
        if self.config.log_file:
            setup_file_logging(self.config.log_file)

        self._app = self.config.app
        self._label = self.config.label
        self._divider = self.config.divider
        self._total_divider = self.config.total_divider
        self._timestamp: Optional[datetime] = None

        self._packer = packer if packer is not None else JsonDataPacker()
        if storage is None:
            storage = create_storage(self.config, self._packer)
        self._storage = storage

        if rng is None:
            rng = SeedManager(self.config.seed).create_random_state(
                "sampling_decision", self.config.app
            )
        self._decision = SamplingDecision(rng)

        self._probes = probes
        if backend is not None:
            self._backend: Optional[ProfilerBackend] = backend
        elif self.config.backend != "auto":
            variant = BackendVariant.from_name(self.config.backend)
            self._backend = create_backend(variant, **self._backend_options())
        else:
            self._backend = detect_backend(probes, **self._backend_options())

        self._session = ProfileSession(
            app=self._app,
            label=self.label,
            timestamp=datetime.now(),
            divider=self._divider,
            total_divider=self._total_divider,
        )
        self._active_backend: Optional[ProfilerBackend] = None
        self._hook_registered = False
        self.last_profile_data: Optional[CommonProfileData] = None

    def _backend_options(self) -> dict:
        return {
            "sampling_interval": self.config.sampling_interval,
            "sampling_depth": self.config.sampling_depth,
        }

    # Settings. Changes made while a capture runs apply to the next session.

    @property
    def app(self) -> str:
        return self._app

    @app.setter
    def app(self, value: str) -> None:
        self._app = value

    @property
    def label(self) -> str:
        """Configured label, or the running script name when none was set."""
        if self._label:
            return self._label
        return self.config.effective_label

    @label.setter
    def label(self, value: Optional[str]) -> None:
        self._label = value

    @property
    def divider(self) -> int:
        return self._divider

    @divider.setter
    def divider(self, value: int) -> None:
        if value < 1:
            raise ValueError(f"divider must be >= 1, got {value}")
        self._divider = int(value)

    @property
    def total_divider(self) -> int:
        return self._total_divider

    @total_divider.setter
    def total_divider(self, value: int) -> None:
        if value < 1:
            raise ValueError(f"total_divider must be >= 1, got {value}")
        self._total_divider = int(value)

    @property
    def timestamp(self) -> datetime:
        """Explicit timestamp for the next profile, else the session's."""
        if self._timestamp is not None:
            return self._timestamp
        return self._session.timestamp

    @timestamp.setter
    def timestamp(self, value: Optional[datetime]) -> None:
        self._timestamp = value

    @property
    def storage(self) -> ProfileStorage:
        return self._storage

    @storage.setter
    def storage(self, value: ProfileStorage) -> None:
        self._storage = value

    @property
    def packer(self) -> DataPacker:
        return self._packer

    @packer.setter
    def packer(self, value: DataPacker) -> None:
        self._packer = value
        self._storage.packer = value

    @property
    def session(self) -> ProfileSession:
        return self._session

    @property
    def is_enabled(self) -> bool:
        return self._session.is_enabled

    # Backend selection

    @property
    def backend(self) -> Optional[ProfilerBackend]:
        return self._backend

    def _can_switch_backend(self, requested: str) -> bool:
        if not self._session.is_enabled:
            return True
        conflict = BackendConflictError(
            f"Cannot switch to {requested} while a capture is running"
        )
        logger.warning(
            str(conflict),
            extra={"context": {"current": repr(self._active_backend)}},
        )
        return False

    def use_backend(
        self, backend: Union[ProfilerBackend, BackendVariant, str]
    ) -> bool:
        """Select a backend instance or variant for the next session.

        Returns:
            False if the selection was ignored because a capture is running
            or the variant is unknown or cannot be built by name.
        """
        if not self._can_switch_backend(str(backend)):
            return False
        if isinstance(backend, ProfilerBackend):
            self._backend = backend
            return True
        try:
            if isinstance(backend, str):
                backend = BackendVariant.from_name(backend)
            self._backend = create_backend(backend, **self._backend_options())
        except ValueError as exc:
            logger.warning(f"Backend not changed: {exc}")
            return False
        return True

    def use_sampling(self) -> bool:
        """Switch to the sampling backend."""
        return self.use_backend(BackendVariant.SAMPLING)

    def use_callbacks(
        self, begin: Callable[[], Any], end: Callable[[], Any]
    ) -> bool:
        """Capture with two user callables; ``end`` must return profile data."""
        if not self._can_switch_backend("callbacks"):
            return False
        self._backend = CallbackBackend(begin, end)
        return True

    def detect_backend(self) -> bool:
        """Re-run capability detection and select the best backend."""
        if not self._can_switch_backend("detected backend"):
            return False
        self._backend = detect_backend(self._probes, **self._backend_options())
        return True

    # Session lifecycle

    def start(self) -> bool:
        """Maybe begin a capture for this execution.

        Returns:
            True unless the backend failed to begin. An execution that was
            not selected for profiling also counts as success.
        """
        decision = self._decision.decide(
            self._divider,
            self._total_divider,
            self.label,
            has_backend=self._backend is not None,
            active=self._session.is_enabled,
        )
        if not decision.enable:
            if decision.outcome is DecisionOutcome.SKIPPED:
                logger.debug(f"Execution not sampled (label={decision.label})")
            return True

        backend = self._backend
        if backend is None:
            return True
        self._session = ProfileSession(
            app=self._app,
            label=decision.label,
            timestamp=self._timestamp or datetime.now(),
            divider=self._divider,
            total_divider=self._total_divider,
            state=SessionState.ENABLED,
        )
        self._active_backend = backend
        self._register_hook()

        try:
            backend.begin()
        except Exception as exc:
            logger.error(
                f"Failed to start {backend!r}: {type(exc).__name__}: {exc}"
            )
            self._unregister_hook()
            self._session.state = SessionState.IDLE
            self._active_backend = None
            return False

        logger.debug(
            f"Profiling started: app={self._session.app} "
            f"label={self._session.label} backend={backend.variant.value}"
        )
        return True

    def end(self) -> bool:
        """Finish the running capture and store it.

        Returns:
            True if nothing was running or the profile was stored, False if
            the capture was invalid or empty or could not be stored.
        """
        if not self._session.is_enabled:
            return True

        session = self._session
        session.state = SessionState.ENDED
        backend, self._active_backend = self._active_backend, None
        self._unregister_hook()

        try:
            raw = backend.end() if backend is not None else None
        except Exception as exc:
            logger.error(f"Failed to stop {backend!r}: {type(exc).__name__}: {exc}")
            return False

        try:
            data = self._to_profile_data(raw)
            self._persist(session, data)
        except InvalidCaptureError as exc:
            logger.warning(
                f"Invalid profile data: {exc}",
                extra={"context": {"app": session.app, "label": session.label}},
            )
            return False
        except EmptyCaptureError:
            return False
        except PersistenceError as exc:
            logger.error(
                f"Can't insert profile data: {exc}",
                extra={"context": {"app": session.app, "label": session.label}},
            )
            return False
        return True

    def reset(self) -> bool:
        """Cancel a running capture without storing anything."""
        if not self._session.is_enabled:
            return True

        backend, self._active_backend = self._active_backend, None
        self._unregister_hook()
        self._session.state = SessionState.IDLE
        if backend is not None:
            try:
                backend.end()
            except Exception as exc:
                logger.warning(
                    f"Backend failed while resetting: {type(exc).__name__}: {exc}"
                )
        logger.debug("Profiling session reset")
        return True

    @contextmanager
    def profiling(self) -> Iterator["LiveProfiler"]:
        """Profile the enclosed block, ending the session on any exit path."""
        self.start()
        try:
            yield self
        finally:
            self.end()

    def create_table(self) -> bool:
        """Create the profiles table when storing to a database."""
        if not isinstance(self._storage, DatabaseStorage):
            logger.warning("create_table() needs database storage")
            return False
        return self._storage.create_table()

    # Internals

    def _to_profile_data(self, raw: Any) -> CommonProfileData:
        if isinstance(raw, SampleCapture):
            data = aggregate_samples(raw.samples, raw.session_start)
        else:
            data = normalize_profile_data(raw)
        if not data:
            raise EmptyCaptureError("Capture holds no metrics")
        return data

    def _persist(self, session: ProfileSession, data: CommonProfileData) -> None:
        self.last_profile_data = {k: CallMetric(**vars(v)) for k, v in data.items()}
        try:
            saved = self._storage.save(
                session.app, session.label, session.timestamp, data
            )
        except Exception as exc:
            raise PersistenceError(f"{type(exc).__name__}: {exc}") from exc
        if not saved:
            raise PersistenceError(
                f"{type(self._storage).__name__} did not store the profile"
            )
        logger.debug(
            f"Stored profile app={session.app} label={session.label} "
            f"({len(data)} metrics)"
        )

    def _register_hook(self) -> None:
        if not self._hook_registered:
            atexit.register(self.end)
            self._hook_registered = True

    def _unregister_hook(self) -> None:
        if self._hook_registered:
            atexit.unregister(self.end)
            self._hook_registered = False

    def __repr__(self) -> str:
        return (
            f"LiveProfiler(app={self._app!r}, label={self.label!r}, "
            f"state={self._session.state.value}, backend={self._backend!r})"
        )
