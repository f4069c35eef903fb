"""Tests for the sampling backend."""

import sys
import time

import pytest

from liveprof.backends.sampling import SamplingBackend, frame_stack
from liveprof.model import SampleCapture


def spin(seconds):
    deadline = time.perf_counter() + seconds
    total = 0
    while time.perf_counter() < deadline:
        total += 1
    return total


class TestFrameStack:
    def test_root_first_and_innermost_last(self):
        stack = frame_stack(sys._getframe())
        assert stack[-1].endswith("(test_root_first_and_innermost_last)")

    def test_depth_keeps_innermost_frames(self):
        def inner():
            return frame_stack(sys._getframe(), depth=2)

        stack = inner()
        assert len(stack) == 2
        assert stack[-1].endswith("(inner)")
        assert stack[0].endswith("(test_depth_keeps_innermost_frames)")

    def test_none_frame(self):
        assert frame_stack(None) == ()


class TestSamplingBackend:
    @pytest.mark.parametrize(
        "kwargs", [{"interval": 0}, {"interval": -1.0}, {"depth": 0}]
    )
    def test_rejects_invalid_settings(self, kwargs):
        with pytest.raises(ValueError):
            SamplingBackend(**kwargs)

    def test_samples_profiled_thread(self):
        backend = SamplingBackend(interval=0.002)
        backend.begin()
        spin(0.2)
        capture = backend.end()

        assert isinstance(capture, SampleCapture)
        assert capture.samples
        times = [s.captured_at for s in capture.samples]
        assert times == sorted(times)
        assert times[0] >= capture.session_start
        assert any(
            label.endswith("(spin)") for s in capture.samples for label in s.stack
        )

    def test_max_samples_caps_capture(self):
        backend = SamplingBackend(interval=0.001, max_samples=3)
        backend.begin()
        spin(0.1)
        capture = backend.end()
        assert len(capture.samples) <= 3

    def test_sampler_thread_stops(self):
        backend = SamplingBackend(interval=0.001)
        backend.begin()
        thread = backend._thread
        backend.end()
        assert not thread.is_alive()

    def test_end_without_begin_is_empty(self):
        capture = SamplingBackend().end()
        assert capture.samples == []
