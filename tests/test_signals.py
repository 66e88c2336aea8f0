"""Tests for snapshot-to-snapshot signal detection."""

from __future__ import annotations

from datetime import timedelta

import pytest

from src.papersim.config import SimConfig
from src.papersim.models import Direction
from src.papersim.signals import detect, rank
from tests.helpers import T0, snapshot

T1 = T0 + timedelta(hours=4)


class TestDetect:
    def test_price_spike_up(self) -> None:
        older = snapshot(T0, ("m", "Will X happen?", 0.30, 1_000.0))
        newer = snapshot(T1, ("m", "Will X happen?", 0.45, 1_100.0))
        [sig] = detect(older, newer)
        assert sig.price_delta == pytest.approx(0.15)
        assert sig.direction is Direction.UP
        assert sig.is_price_spike
        assert not sig.is_vol_spike
        assert sig.volume_ratio == pytest.approx(1.1)

    def test_price_spike_down(self) -> None:
        older = snapshot(T0, ("m", "t", 0.60, 1_000.0))
        newer = snapshot(T1, ("m", "t", 0.40, 1_000.0))
        [sig] = detect(older, newer)
        assert sig.direction is Direction.DOWN
        assert sig.price_delta == pytest.approx(-0.20)

    def test_move_at_threshold_is_not_a_spike(self) -> None:
        older = snapshot(T0, ("m", "t", 0.50, 1_000.0))
        newer = snapshot(T1, ("m", "t", 0.55, 1_000.0))
        assert detect(older, newer) == []

    def test_volume_spike_without_price_move(self) -> None:
        older = snapshot(T0, ("m", "t", 0.50, 1_000.0))
        newer = snapshot(T1, ("m", "t", 0.50, 3_500.0))
        [sig] = detect(older, newer)
        assert sig.is_vol_spike
        assert not sig.is_price_spike
        assert sig.direction is Direction.FLAT
        assert sig.volume_ratio == pytest.approx(3.5)

    def test_volume_ratio_exactly_three_is_not_a_spike(self) -> None:
        older = snapshot(T0, ("m", "t", 0.50, 1_000.0))
        newer = snapshot(T1, ("m", "t", 0.50, 3_000.0))
        assert detect(older, newer) == []

    def test_zero_old_volume_never_volume_spikes(self) -> None:
        older = snapshot(T0, ("m", "t", 0.50, 0.0))
        newer = snapshot(T1, ("m", "t", 0.50, 50_000.0))
        assert detect(older, newer) == []

    def test_zero_old_volume_ratio_is_zero(self) -> None:
        older = snapshot(T0, ("m", "t", 0.20, 0.0))
        newer = snapshot(T1, ("m", "t", 0.50, 50_000.0))
        [sig] = detect(older, newer)
        assert sig.volume_ratio == 0.0
        assert not sig.is_vol_spike

    def test_markets_missing_from_either_snapshot_are_skipped(self) -> None:
        older = snapshot(T0, ("gone", "t", 0.10, 1.0), ("both", "t", 0.10, 1.0))
        newer = snapshot(T1, ("new", "t", 0.90, 1.0), ("both", "t", 0.90, 1.0))
        assert [s.slug for s in detect(older, newer)] == ["both"]

    def test_unpriced_markets_are_skipped(self) -> None:
        older = snapshot(T0, ("m", "t", None, 1.0))
        newer = snapshot(T1, ("m", "t", 0.90, 1.0))
        assert detect(older, newer) == []

    def test_thresholds_come_from_config(self) -> None:
        older = snapshot(T0, ("m", "t", 0.50, 1_000.0))
        newer = snapshot(T1, ("m", "t", 0.55, 1_000.0))
        [sig] = detect(older, newer, SimConfig(price_spike_threshold=0.04))
        assert sig.is_price_spike

    def test_detected_at_is_stamped(self) -> None:
        older = snapshot(T0, ("m", "t", 0.30, 1.0))
        newer = snapshot(T1, ("m", "t", 0.60, 1.0))
        [sig] = detect(older, newer, detected_at=T1)
        assert sig.detected_at == T1
        assert sig.to_dict()["detectedAt"] == T1.isoformat()


class TestRank:
    def test_sorted_by_absolute_delta(self) -> None:
        older = snapshot(T0, ("a", "t", 0.50, 1.0), ("b", "t", 0.50, 1.0), ("c", "t", 0.50, 1.0))
        newer = snapshot(T1, ("a", "t", 0.62, 1.0), ("b", "t", 0.20, 1.0), ("c", "t", 0.70, 1.0))
        assert [s.slug for s in rank(detect(older, newer))] == ["b", "c", "a"]
