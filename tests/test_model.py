"""Tests for profile data structures and normalization."""

import pytest

from liveprof.errors import InvalidCaptureError
from liveprof.model import (
    CallMetric,
    ProfileSession,
    SessionState,
    edge_key,
    format_function,
    normalize_profile_data,
    split_key,
)


class TestCallMetric:
    def test_to_dict_omits_zero_extras(self):
        assert CallMetric(count=2, wall_time_us=10).to_dict() == {"ct": 2, "wt": 10}

    def test_to_dict_includes_nonzero_extras(self):
        metric = CallMetric(count=1, wall_time_us=5, cpu_time_us=4, peak_memory_bytes=9)
        assert metric.to_dict() == {"ct": 1, "wt": 5, "cpu": 4, "pmu": 9}

    def test_from_dict_accepts_attribute_names(self):
        metric = CallMetric.from_dict({"count": 3, "wall_time_us": 7})
        assert metric == CallMetric(count=3, wall_time_us=7)

    def test_from_dict_requires_call_count(self):
        with pytest.raises(InvalidCaptureError, match="call count"):
            CallMetric.from_dict({"wt": 7})

    @pytest.mark.parametrize("bad", [-1, "12", None, True])
    def test_from_dict_rejects_bad_counters(self, bad):
        with pytest.raises(InvalidCaptureError):
            CallMetric.from_dict({"ct": 1, "wt": bad})

    def test_add_accumulates(self):
        metric = CallMetric()
        metric.add(1, 10)
        metric.add(2, 5)
        assert (metric.count, metric.wall_time_us) == (3, 15)


class TestKeys:
    def test_edge_key_and_split(self):
        key = edge_key("main()", "app.py:3(run)")
        assert key == "main()==>app.py:3(run)"
        assert split_key(key) == ("main()", "app.py:3(run)")

    def test_split_root_key(self):
        assert split_key("main()") == (None, "main()")

    def test_format_function_uses_basename(self):
        assert format_function("/srv/app/views.py", 12, "index") == "views.py:12(index)"

    def test_format_function_keeps_builtin_names(self):
        assert format_function("~", 0, "<built-in method builtins.len>") == (
            "<built-in method builtins.len>"
        )


class TestNormalizeProfileData:
    def test_accepts_raw_mappings_and_metrics(self):
        data = normalize_profile_data(
            {"main()": {"ct": 1, "wt": 30}, "main()==>f": CallMetric(2, 20)}
        )
        assert data == {
            "main()": CallMetric(count=1, wall_time_us=30),
            "main()==>f": CallMetric(count=2, wall_time_us=20),
        }

    def test_copies_metric_instances(self):
        original = CallMetric(1, 1)
        data = normalize_profile_data({"k": original})
        data["k"].add(1, 1)
        assert original == CallMetric(1, 1)

    @pytest.mark.parametrize("raw", [None, [], "data", 42])
    def test_rejects_non_mappings(self, raw):
        with pytest.raises(InvalidCaptureError, match="mapping"):
            normalize_profile_data(raw)

    def test_rejects_non_string_keys(self):
        with pytest.raises(InvalidCaptureError, match="key"):
            normalize_profile_data({1: {"ct": 1, "wt": 1}})

    def test_rejects_non_mapping_values(self):
        with pytest.raises(InvalidCaptureError, match="Invalid metric 'k'"):
            normalize_profile_data({"k": 5})

    def test_empty_mapping_is_valid(self):
        assert normalize_profile_data({}) == {}


def test_profile_session_defaults_to_idle():
    from datetime import datetime

    session = ProfileSession("app", "label", datetime(2024, 1, 1))
    assert session.state is SessionState.IDLE
    assert not session.is_enabled
    session.state = SessionState.ENABLED
    assert session.is_enabled
