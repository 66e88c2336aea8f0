"""Anomaly detection between two consecutive market snapshots."""

from __future__ import annotations

from datetime import datetime

from src.papersim.config import SimConfig
from src.papersim.models import Direction, Signal, Snapshot


def detect(
    older: Snapshot,
    newer: Snapshot,
    config: SimConfig | None = None,
    detected_at: datetime | None = None,
) -> list[Signal]:
    """Flag markets whose price or volume jumped between *older* and *newer*.

    Markets are matched by slug. A market missing from either snapshot, or
    with no price in either, produces no signal. Only markets with at least
    one spike flag are returned; order follows *newer*.
    """
    config = config or SimConfig()
    previous = older.by_slug()
    signals: list[Signal] = []

    for obs in newer.markets:
        old = previous.get(obs.slug)
        if old is None or old.price is None or obs.price is None:
            continue

        delta = obs.price - old.price
        ratio = obs.volume / old.volume if old.volume > 0 else 0.0
        is_price_spike = abs(delta) > config.price_spike_threshold
        is_vol_spike = old.volume > 0 and (ratio - 1.0) > config.volume_spike_threshold

        if not (is_price_spike or is_vol_spike):
            continue

        signals.append(
            Signal(
                slug=obs.slug,
                title=obs.title,
                old_price=old.price,
                new_price=obs.price,
                price_delta=delta,
                old_volume=old.volume,
                new_volume=obs.volume,
                volume_ratio=ratio,
                direction=Direction.of(delta),
                is_price_spike=is_price_spike,
                is_vol_spike=is_vol_spike,
                detected_at=detected_at,
            )
        )

    return signals


def rank(signals: list[Signal]) -> list[Signal]:
    """Largest absolute price move first. Stable for equal moves."""
    return sorted(signals, key=lambda s: abs(s.price_delta), reverse=True)
