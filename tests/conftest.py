"""Shared fixtures for simulator tests."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

import pandas as pd
import pytest

from src.papersim.config import SimConfig
from src.papersim.logger import SimLogger
from src.papersim.simulator import Simulator
from src.papersim.store import JsonStore
from tests.helpers import FakeClock, FakeProvider


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def config(tmp_path: Path) -> SimConfig:
    return SimConfig(data_dir=tmp_path / "data")


@pytest.fixture()
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def logger() -> SimLogger:
    return SimLogger(print_live=False)


@pytest.fixture()
def store(config: SimConfig, clock: FakeClock) -> JsonStore:
    return JsonStore(config.data_dir, config, clock=clock)


@pytest.fixture()
def sim(config: SimConfig, provider: FakeProvider, store: JsonStore, logger: SimLogger, clock: FakeClock) -> Simulator:
    return Simulator(config=config, provider=provider, store=store, logger=logger, clock=clock)


# ---------------------------------------------------------------------------
# Historical corpus
# ---------------------------------------------------------------------------


def _make_corpus_df() -> pd.DataFrame:
    """Four resolved markets, deliberately written out of chronological order."""
    base = pd.Timestamp("2024-01-10 00:00:00")
    rows = [
        ("mkt-c", "Will the Fed cut rates in March?", 2, 0.03, -0.22, 80_000.0, "NO", "tok-c"),
        ("mkt-a", "Will candidate A win the primary?", 0, 0.97, 0.40, 250_000.0, "YES", "tok-a"),
        ("mkt-d", "Will the bill pass the senate?", 2, 0.55, 0.03, 20_000.0, "YES", "tok-d"),
        ("mkt-b", "Will inflation exceed 4%?", 1, 0.995, 0.002, 40_000.0, "YES", None),
    ]
    return pd.DataFrame(
        [
            {
                "slug": slug,
                "title": title,
                "end_date": base + pd.Timedelta(days=day),
                "last_trade_price": last,
                "one_day_price_change": change,
                "volume": volume,
                "liquidity": 1_000.0,
                "outcome": outcome,
                "yes_token_id": token,
            }
            for slug, title, day, last, change, volume, outcome, token in rows
        ]
    )


@pytest.fixture()
def corpus_dir(config: SimConfig) -> Path:
    """Historical corpus parquet under the store's ``history/`` directory."""
    d = config.data_dir / "history"
    d.mkdir(parents=True)
    _make_corpus_df().to_parquet(d / "markets.parquet", index=False)
    return d


@pytest.fixture()
def make_history() -> Callable[[datetime, list[tuple[float, float]]], list[tuple[datetime, float]]]:
    """Factory: ``(end_date, [(days_before, price), ...])`` to a price history, oldest first."""

    def _make(end: datetime, points: list[tuple[float, float]]) -> list[tuple[datetime, float]]:
        return sorted(((end - timedelta(days=d), p) for d, p in points), key=lambda x: x[0])

    return _make
