"""Tests for folding stack samples into common profile data."""

from liveprof.aggregate import aggregate_samples
from liveprof.model import CallMetric, Sample


class TestAggregateSamples:
    def test_two_samples_credit_root_and_every_edge(self):
        """Each edge along the chain gets the full interval, undivided."""
        samples = [
            Sample(1.0, ("a", "b")),
            Sample(1.002, ("a", "b", "c")),
        ]

        data = aggregate_samples(samples, session_start=0.0)

        assert data["a"] == CallMetric(count=2, wall_time_us=1_002_000)
        assert data["a==>b"] == CallMetric(count=2, wall_time_us=1_002_000)
        assert data["b==>c"] == CallMetric(count=1, wall_time_us=2000)
        assert set(data) == {"a", "a==>b", "b==>c"}

    def test_first_interval_measured_from_session_start(self):
        data = aggregate_samples([Sample(10.25, ("main",))], session_start=10.0)
        assert data == {"main": CallMetric(count=1, wall_time_us=250_000)}

    def test_empty_stack_skipped_but_advances_time(self):
        """The interval ending at an empty sample is attributed to nothing."""
        samples = [
            Sample(0.5, ()),
            Sample(0.75, ("a",)),
        ]

        data = aggregate_samples(samples, session_start=0.0)

        assert data == {"a": CallMetric(count=1, wall_time_us=250_000)}

    def test_no_samples_yields_empty_mapping(self):
        assert aggregate_samples([], session_start=0.0) == {}

    def test_delta_is_truncated_to_whole_microseconds(self):
        # 1.5 us elapsed
        data = aggregate_samples([Sample(0.0000015, ("a",))], session_start=0.0)
        assert data["a"].wall_time_us == 1

    def test_fraction_just_below_whole_microsecond_is_truncated(self):
        data = aggregate_samples([Sample(0.0019999996, ("a",))], session_start=0.0)
        assert data["a"].wall_time_us == 1999

    def test_float_noise_does_not_lose_a_microsecond(self):
        # 0.102 - 0.1 is 0.0019999999999999879 in binary floating point
        data = aggregate_samples([Sample(0.102, ("a",))], session_start=0.1)
        assert data["a"].wall_time_us == 2000

    def test_out_of_order_sample_does_not_go_negative(self):
        samples = [Sample(2.0, ("a",)), Sample(1.0, ("a",))]

        data = aggregate_samples(samples, session_start=0.0)

        assert data["a"].count == 2
        assert data["a"].wall_time_us == 2_000_000

    def test_deterministic_for_same_input(self):
        samples = [Sample(0.25 * i, ("r", "x", "y")[: i % 3 + 1]) for i in range(1, 9)]
        assert aggregate_samples(samples, 0.0) == aggregate_samples(samples, 0.0)

    def test_recursive_frames_form_self_edges(self):
        data = aggregate_samples([Sample(0.5, ("f", "f", "f"))], session_start=0.0)
        assert data["f"] == CallMetric(count=1, wall_time_us=500_000)
        assert data["f==>f"] == CallMetric(count=2, wall_time_us=1_000_000)
