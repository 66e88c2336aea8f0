"""Tests for the flat-file JSON store and its optimistic-concurrency check."""

from __future__ import annotations

import json
from datetime import timedelta

import pytest

from src.papersim.errors import StoreConflict
from src.papersim.lifecycle import PositionManager
from src.papersim.models import Direction, Side, Signal, StrategyName
from src.papersim.store import JsonStore
from tests.helpers import T0, FakeClock, snapshot

MOM = StrategyName.MOMENTUM


def _open(store: JsonStore, amount: float = 100.0, slug: str = "m") -> None:
    with store.transaction() as state:
        PositionManager(state, clock=store._clock).open_position(MOM, slug, "q", Side.YES, 0.5, amount)


class TestDocuments:
    def test_fresh_portfolio_is_not_written_on_read(self, store: JsonStore) -> None:
        portfolio = store.load_portfolio()
        assert portfolio.total_initial == 10_000.0
        assert not store.portfolio_path.exists()
        assert store.load_positions() == []
        assert store.load_history() == []

    def test_commit_writes_all_documents(self, store: JsonStore) -> None:
        _open(store)
        doc = json.loads(store.portfolio_path.read_text())
        assert doc["version"] == 1
        assert doc["strategies"]["momentum"]["cash"] == 1_900.0
        [bet] = json.loads(store.positions_path.read_text())
        assert set(bet) >= {"id", "strategy", "marketSlug", "side", "entryPrice", "currentPrice", "shares", "cost"}
        assert json.loads(store.history_path.read_text()) == []

    def test_round_trip(self, store: JsonStore) -> None:
        _open(store, 40.0)
        [pos] = store.load_positions()
        assert pos.cost == 40.0
        assert pos.shares == 80.0
        assert pos.opened_at == T0
        with store.transaction() as state:
            PositionManager(state, clock=store._clock).sell(pos.position_id, 0.75)
        [record] = store.load_history()
        assert record.pnl == pytest.approx(20.0)
        assert record.position.position_id == pos.position_id
        assert store.load_positions() == []

    def test_version_increments_per_commit(self, store: JsonStore) -> None:
        for i in range(3):
            _open(store, 10.0, slug=f"m{i}")
        assert store.current_version() == 3

    def test_no_temp_files_left(self, store: JsonStore) -> None:
        _open(store)
        assert sorted(p.name for p in store.data_dir.iterdir()) == ["bets.json", "history.json", "portfolio.json"]


class TestTransactions:
    def test_failed_block_writes_nothing(self, store: JsonStore) -> None:
        _open(store)
        before = store.portfolio_path.read_text()
        with pytest.raises(RuntimeError):
            with store.transaction() as state:
                state.portfolio.ledger(MOM).cash = 0.0
                raise RuntimeError("boom")
        assert store.portfolio_path.read_text() == before

    def test_conflicting_writer_is_rejected(self, store: JsonStore) -> None:
        with pytest.raises(StoreConflict):
            with store.transaction() as outer:
                _open(store, 25.0, slug="inner")
                outer.portfolio.ledger(MOM).cash = 1.0
        assert store.current_version() == 1
        assert store.load_portfolio().ledger(MOM).cash == 1_975.0
        assert [p.market_slug for p in store.load_positions()] == ["inner"]

    def test_reset(self, store: JsonStore) -> None:
        _open(store)
        portfolio = store.reset()
        assert portfolio.total_cash == 10_000.0
        assert store.load_positions() == []
        assert store.load_history() == []
        assert store.current_version() == 2


class TestSnapshots:
    def test_filenames_and_order(self, store: JsonStore) -> None:
        for minutes in (0, 90, 30):
            ts = T0 + timedelta(minutes=minutes)
            store.save_snapshot(snapshot(ts, ("m", "t", 0.5, 1.0)))
        names = [p.name for p in store.snapshot_paths()]
        assert names == ["2024-03-01T12-00.json", "2024-03-01T12-30.json", "2024-03-01T13-30.json"]
        older, newer = store.recent_snapshots(2)
        assert older.timestamp == T0 + timedelta(minutes=30)
        assert newer.timestamp == T0 + timedelta(minutes=90)

    def test_document_shape(self, store: JsonStore) -> None:
        path = store.save_snapshot(snapshot(T0, ("m", "t", None, 1.0, 5.0)))
        doc = json.loads(path.read_text())
        assert doc["marketCount"] == 1
        assert doc["markets"] == [{"slug": "m", "title": "t", "price": None, "volume": 1.0, "liquidity": 5.0}]

    def test_no_snapshots(self, store: JsonStore) -> None:
        assert store.recent_snapshots() == []


class TestSignalsAndResults:
    def test_signals_replace_last_scan(self, store: JsonStore, clock: FakeClock) -> None:
        sig = Signal("m", "t", 0.3, 0.45, 0.15, 1.0, 1.0, 1.0, Direction.UP, True, False, clock())
        store.save_signals([sig])
        store.save_signals([])
        doc = store.load_signals()
        assert doc["signals"] == []
        assert doc["timestamp"] == T0.isoformat()

    def test_save_result(self, store: JsonStore) -> None:
        path = store.save_result("backtest-x", {"results": {}})
        assert path == store.backtests_dir / "backtest-x.json"
        assert json.loads(path.read_text()) == {"results": {}}
