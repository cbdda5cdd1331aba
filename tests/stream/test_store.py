"""Tests for the LatestValues store."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from esplink.stream.codec import TelemetrySample
from esplink.stream.store import LatestValues


class TestLatestValues:
    def test_update_and_get(self) -> None:
        store = LatestValues()
        sample = TelemetrySample("temp1", "temperature", "21.5")
        store.update(sample)
        assert store.get("temp1_temperature") is sample
        assert "temp1_temperature" in store
        assert len(store) == 1

    def test_overwrite(self) -> None:
        store = LatestValues()
        store.update(TelemetrySample("temp1", "temperature", "21.5"))
        store.update(TelemetrySample("temp1", "temperature", "22.0"))
        assert len(store) == 1
        assert store.get("temp1_temperature").value == "22.0"  # type: ignore[union-attr]

    def test_get_missing(self) -> None:
        assert LatestValues().get("nope") is None

    def test_get_all_is_a_copy(self) -> None:
        store = LatestValues()
        store.update(TelemetrySample("temp1", "temperature", 1))
        snapshot = store.get_all()
        snapshot.clear()
        assert len(store) == 1

    def test_age_seconds(self) -> None:
        store = LatestValues()
        old = datetime.now(UTC) - timedelta(seconds=30)
        store.update(TelemetrySample("temp1", "temperature", 1, old))
        age = store.age_seconds("temp1_temperature")
        assert age is not None
        assert 29 <= age < 60

    def test_age_missing(self) -> None:
        assert LatestValues().age_seconds("nope") is None
