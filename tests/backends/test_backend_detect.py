"""Tests for capability detection and backend construction."""

import logging

import pytest

from liveprof.backends import (
    BackendVariant,
    CallbackBackend,
    CallTracerBackend,
    CProfileBackend,
    SamplingBackend,
    create_backend,
    detect_backend,
    detect_capabilities,
)
from liveprof.backends.detect import PRIORITY


class TestBackendVariant:
    def test_from_name_is_case_insensitive(self):
        assert BackendVariant.from_name(" CProfile ") is BackendVariant.CPROFILE

    def test_from_name_rejects_unknown(self):
        with pytest.raises(ValueError, match="Unknown profiler backend 'xdebug'"):
            BackendVariant.from_name("xdebug")

    def test_priority_order(self):
        assert PRIORITY == [
            BackendVariant.CPROFILE_MEMORY,
            BackendVariant.CPROFILE,
            BackendVariant.CALL_TRACER,
            BackendVariant.SAMPLING,
        ]


class TestDetectCapabilities:
    def test_default_probes_find_builtin_capabilities(self):
        available = detect_capabilities()
        assert BackendVariant.CPROFILE in available
        assert BackendVariant.CALL_TRACER in available
        assert BackendVariant.SAMPLING in available
        assert available == [v for v in PRIORITY if v in available]

    def test_injected_probes_keep_priority_order(self):
        probes = {
            BackendVariant.SAMPLING: lambda: True,
            BackendVariant.CPROFILE: lambda: True,
            BackendVariant.CALL_TRACER: lambda: False,
        }
        assert detect_capabilities(probes) == [
            BackendVariant.CPROFILE,
            BackendVariant.SAMPLING,
        ]

    def test_failing_probe_counts_as_unavailable(self):
        def broken():
            raise OSError("probe exploded")

        probes = {
            BackendVariant.CPROFILE: broken,
            BackendVariant.SAMPLING: lambda: True,
        }
        assert detect_capabilities(probes) == [BackendVariant.SAMPLING]


class TestDetectBackend:
    def test_first_available_variant_wins(self):
        backend = detect_backend({BackendVariant.CALL_TRACER: lambda: True})
        assert isinstance(backend, CallTracerBackend)

    def test_sampling_is_last_resort(self):
        backend = detect_backend(
            {BackendVariant.SAMPLING: lambda: True}, sampling_interval=0.02
        )
        assert isinstance(backend, SamplingBackend)
        assert backend.interval == 0.02

    def test_nothing_available_returns_none(self, caplog):
        with caplog.at_level(logging.WARNING, logger="liveprof"):
            assert detect_backend({}) is None
        assert "No profiling capability" in caplog.text


class TestCreateBackend:
    @pytest.mark.parametrize(
        "variant, cls",
        [
            (BackendVariant.CPROFILE_MEMORY, CProfileBackend),
            (BackendVariant.CPROFILE, CProfileBackend),
            (BackendVariant.CALL_TRACER, CallTracerBackend),
            (BackendVariant.SAMPLING, SamplingBackend),
        ],
    )
    def test_builds_each_variant(self, variant, cls):
        backend = create_backend(variant)
        assert isinstance(backend, cls)
        assert backend.variant is variant

    def test_callback_variant_needs_callables(self):
        with pytest.raises(ValueError, match="cannot be created by name"):
            create_backend(BackendVariant.CALLBACK)

    def test_sampling_options(self):
        backend = create_backend(
            BackendVariant.SAMPLING, sampling_interval=0.05, sampling_depth=7
        )
        assert (backend.interval, backend.depth) == (0.05, 7)


def test_callback_backend_delegates():
    events = []
    backend = CallbackBackend(lambda: events.append("begin"), lambda: {"k": {}})
    backend.begin()
    assert backend.end() == {"k": {}}
    assert events == ["begin"]
    assert repr(backend) == "CallbackBackend(variant='callback')"
