"""Shared fixtures: in-memory collaborators for the session controller."""

from __future__ import annotations

import random
from datetime import datetime
from typing import Any, List, Optional, Tuple

import pytest

from liveprof.backends.base import BackendVariant, ProfilerBackend
from liveprof.model import CommonProfileData
from liveprof.storage.base import ProfileStorage


class FakeBackend(ProfilerBackend):
    """Backend returning a canned capture and counting begin/end calls."""

    variant = BackendVariant.CALLBACK

    def __init__(self, result: Any = None, fail_on_begin: bool = False) -> None:
        self.result = result if result is not None else {"main()": {"ct": 1, "wt": 5}}
        self.fail_on_begin = fail_on_begin
        self.begin_calls = 0
        self.end_calls = 0

    def begin(self) -> None:
        self.begin_calls += 1
        if self.fail_on_begin:
            raise RuntimeError("profiler busy")

    def end(self) -> Any:
        self.end_calls += 1
        return self.result


class RecordingStorage(ProfileStorage):
    """Storage keeping every saved profile in memory."""

    def __init__(self, succeed: bool = True, error: Optional[Exception] = None):
        super().__init__()
        self.succeed = succeed
        self.error = error
        self.saved: List[Tuple[str, str, datetime, CommonProfileData]] = []

    def save(
        self, app: str, label: str, timestamp: datetime, data: CommonProfileData
    ) -> bool:
        if self.error is not None:
            raise self.error
        self.saved.append((app, label, timestamp, data))
        return self.succeed


class FixedRandom(random.Random):
    """Random source whose ``randint`` replays a script of values."""

    def __init__(self, values: List[int]) -> None:
        super().__init__(0)
        self.values = list(values)
        self.calls: List[Tuple[int, int]] = []

    def randint(self, a: int, b: int) -> int:
        self.calls.append((a, b))
        return self.values.pop(0)


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture
def make_backend():
    """Factory for :class:`FakeBackend` with custom results."""
    return FakeBackend


@pytest.fixture
def make_storage():
    """Factory for :class:`RecordingStorage` with custom outcomes."""
    return RecordingStorage


@pytest.fixture
def scripted_random():
    """Factory for a random source replaying ``randint`` results."""
    return FixedRandom
