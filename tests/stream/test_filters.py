"""Tests for the inbound dedup filter and the sensor-poll rate gate."""

from __future__ import annotations

from esplink.stream.codec import TelemetrySample
from esplink.stream.filters import InboundDedupFilter, PollRateGate, sample_identity


def _sample(
    device: str = "temp1", metric: str = "temperature", value: object = "21.5"
) -> TelemetrySample:
    return TelemetrySample(device_id=device, metric=metric, value=value)  # type: ignore[arg-type]


class TestSampleIdentity:
    def test_includes_value(self) -> None:
        assert sample_identity(_sample(value="21.5")) != sample_identity(_sample(value="21.6"))

    def test_ignores_timestamp(self) -> None:
        a = _sample()
        b = _sample()
        assert sample_identity(a) == sample_identity(b)


class TestInboundDedupFilter:
    def test_first_sample_accepted(self) -> None:
        filt = InboundDedupFilter(window_seconds=1.0)
        assert filt.should_accept(_sample(), 0.0) is True

    def test_repeat_within_window_rejected(self) -> None:
        filt = InboundDedupFilter(window_seconds=1.0)
        assert filt.should_accept(_sample(), 0.0) is True
        assert filt.should_accept(_sample(), 0.5) is False

    def test_repeat_after_window_accepted(self) -> None:
        filt = InboundDedupFilter(window_seconds=1.0)
        filt.should_accept(_sample(), 0.0)
        assert filt.should_accept(_sample(), 1.0) is True

    def test_rejected_repeat_does_not_extend_window(self) -> None:
        filt = InboundDedupFilter(window_seconds=1.0)
        filt.should_accept(_sample(), 0.0)
        filt.should_accept(_sample(), 0.9)
        assert filt.should_accept(_sample(), 1.05) is True

    def test_different_value_accepted(self) -> None:
        filt = InboundDedupFilter(window_seconds=1.0)
        filt.should_accept(_sample(value="21.5"), 0.0)
        assert filt.should_accept(_sample(value="21.6"), 0.1) is True

    def test_different_device_accepted(self) -> None:
        filt = InboundDedupFilter(window_seconds=1.0)
        filt.should_accept(_sample(device="temp1"), 0.0)
        assert filt.should_accept(_sample(device="temp2"), 0.1) is True

    def test_reset_clears_state(self) -> None:
        filt = InboundDedupFilter(window_seconds=1.0)
        filt.should_accept(_sample(), 0.0)
        filt.reset()
        assert len(filt) == 0
        assert filt.should_accept(_sample(), 0.1) is True

    def test_prunes_expired_keys(self) -> None:
        filt = InboundDedupFilter(window_seconds=1.0)
        for i in range(300):
            filt.should_accept(_sample(value=i), 0.0)
        filt.should_accept(_sample(value="late"), 5.0)
        assert len(filt) < 300

    def test_window_seconds(self) -> None:
        assert InboundDedupFilter(2.5).window_seconds == 2.5


class TestPollRateGate:
    def test_first_poll_accepted(self) -> None:
        gate = PollRateGate(3.0)
        assert gate.should_accept(0.0) is True
        assert gate.last_accepted is None

    def test_within_window_rejected(self) -> None:
        gate = PollRateGate(3.0)
        gate.record(10.0)
        assert gate.should_accept(12.9) is False

    def test_at_window_boundary_accepted(self) -> None:
        gate = PollRateGate(3.0)
        gate.record(10.0)
        assert gate.should_accept(13.0) is True

    def test_reset(self) -> None:
        gate = PollRateGate(3.0)
        gate.record(10.0)
        gate.reset()
        assert gate.last_accepted is None
        assert gate.should_accept(10.1) is True
