"""Tests for converting pstats statistics into common profile data."""

from types import SimpleNamespace

from liveprof.backends.pstats_data import stats_to_common
from liveprof.model import CallMetric

RUN = ("/srv/app/jobs.py", 10, "run")
STEP = ("/srv/app/jobs.py", 20, "step")
LEN = ("~", 0, "<built-in method builtins.len>")
DISABLE = ("~", 0, "<method 'disable' of '_lsprof.Profiler' objects>")

RUN_KEY = "jobs.py:10(run)"
STEP_KEY = "jobs.py:20(step)"
LEN_KEY = "<built-in method builtins.len>"


def fake_stats(entries):
    return SimpleNamespace(stats=entries)


class TestStatsToCommon:
    def test_root_edges_and_caller_edges(self):
        stats = fake_stats(
            {
                # (cc, nc, tt, ct, callers)
                RUN: (1, 1, 0.125, 0.5, {}),
                STEP: (3, 3, 0.125, 0.25, {RUN: (3, 3, 0.125, 0.25)}),
                LEN: (5, 5, 0.0625, 0.0625, {STEP: (5, 5, 0.0625, 0.0625)}),
            }
        )

        data = stats_to_common(stats)

        assert data == {
            f"main()==>{RUN_KEY}": CallMetric(1, 500_000),
            f"{RUN_KEY}==>{STEP_KEY}": CallMetric(3, 250_000),
            f"{STEP_KEY}==>{LEN_KEY}": CallMetric(5, 62_500),
            "main()": CallMetric(1, 500_000),
        }

    def test_total_wall_time_overrides_root_sum(self):
        stats = fake_stats({RUN: (1, 1, 0.125, 0.5, {})})
        data = stats_to_common(stats, total_wall_time=0.75)
        assert data["main()"] == CallMetric(1, 750_000)

    def test_profiler_internals_are_dropped(self):
        stats = fake_stats(
            {
                DISABLE: (1, 1, 0.0, 0.0, {}),
                RUN: (1, 1, 0.0, 0.5, {DISABLE: (1, 1, 0.0, 0.0)}),
            }
        )
        data = stats_to_common(stats)
        assert set(data) == {f"main()==>{RUN_KEY}", "main()"}

    def test_multiple_callers_make_separate_edges(self):
        stats = fake_stats(
            {
                RUN: (1, 1, 0.0, 0.5, {}),
                STEP: (1, 1, 0.0, 0.25, {}),
                LEN: (
                    3,
                    3,
                    0.0,
                    0.375,
                    {RUN: (2, 2, 0.0, 0.25), STEP: (1, 1, 0.0, 0.125)},
                ),
            }
        )
        data = stats_to_common(stats)
        assert data[f"{RUN_KEY}==>{LEN_KEY}"] == CallMetric(2, 250_000)
        assert data[f"{STEP_KEY}==>{LEN_KEY}"] == CallMetric(1, 125_000)
        assert data["main()"] == CallMetric(1, 750_000)

    def test_empty_stats(self):
        assert stats_to_common(fake_stats({})) == {}
