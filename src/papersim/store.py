"""Flat-file JSON store for portfolio, positions, history and snapshots.

Layout under ``data_dir``::

    portfolio.json           ledgers + integer ``version``
    bets.json                open positions
    history.json             closed records
    signals.json             last scan result
    snapshots/<YYYY-MM-DDTHH-MM>.json
    backtests/<name>.json
    history/*.parquet        historical corpus (see feeds.historical)

Mutating commands go through :meth:`JsonStore.transaction`, which checks the
portfolio ``version`` before writing and raises :class:`StoreConflict` if
another writer committed in between.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from src.papersim.config import SimConfig
from src.papersim.errors import StoreConflict
from src.papersim.models import ClosedRecord, Position, Signal, Snapshot
from src.papersim.portfolio import Portfolio

SNAPSHOT_FORMAT = "%Y-%m-%dT%H-%M"


@dataclass
class StoreState:
    """The mutable documents one command reads, changes and commits."""

    portfolio: Portfolio
    positions: list[Position] = field(default_factory=list)
    history: list[ClosedRecord] = field(default_factory=list)


def _write_json(path: Path, data: Any) -> None:
    """Atomically replace ``path`` with ``data`` as indented JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def _read_json(path: Path) -> Any:
    if not path.exists():
        return None
    with path.open() as f:
        return json.load(f)


class JsonStore:
    def __init__(
        self,
        data_dir: Path | str | None = None,
        config: SimConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config or SimConfig()
        self.data_dir = Path(data_dir or self.config.data_dir)
        self._clock = clock or datetime.now

    # -- Paths --

    @property
    def portfolio_path(self) -> Path:
        return self.data_dir / "portfolio.json"

    @property
    def positions_path(self) -> Path:
        return self.data_dir / "bets.json"

    @property
    def history_path(self) -> Path:
        return self.data_dir / "history.json"

    @property
    def signals_path(self) -> Path:
        return self.data_dir / "signals.json"

    @property
    def snapshots_dir(self) -> Path:
        return self.data_dir / "snapshots"

    @property
    def backtests_dir(self) -> Path:
        return self.data_dir / "backtests"

    @property
    def history_dir(self) -> Path:
        return self.data_dir / "history"

    # -- Reads --

    def load_portfolio(self) -> Portfolio:
        """Stored portfolio, or a fresh one if none exists yet."""
        raw = _read_json(self.portfolio_path)
        if not raw or "strategies" not in raw:
            return Portfolio.fresh(self.config, self._clock())
        return Portfolio.from_dict(raw)

    def load_positions(self) -> list[Position]:
        return [Position.from_dict(d) for d in _read_json(self.positions_path) or []]

    def load_history(self) -> list[ClosedRecord]:
        return [ClosedRecord.from_dict(d) for d in _read_json(self.history_path) or []]

    def read_state(self) -> StoreState:
        return StoreState(
            portfolio=self.load_portfolio(),
            positions=self.load_positions(),
            history=self.load_history(),
        )

    def current_version(self) -> int:
        raw = _read_json(self.portfolio_path)
        return int(raw.get("version", 0)) if raw else 0

    # -- Transactions --

    @contextmanager
    def transaction(self) -> Iterator[StoreState]:
        """Read, yield for mutation, then commit if nobody else committed.

        Nothing is written if the block raises.
        """
        base = self.current_version()
        state = self.read_state()
        yield state
        self._commit(state, base)

    def _commit(self, state: StoreState, base: int) -> None:
        found = self.current_version()
        if found != base:
            raise StoreConflict(f"store changed underneath this command (version {base} -> {found}); re-run it")
        state.portfolio.version = base + 1
        _write_json(self.positions_path, [p.to_dict() for p in state.positions])
        _write_json(self.history_path, [r.to_dict() for r in state.history])
        # Portfolio last: its version is the commit marker.
        _write_json(self.portfolio_path, state.portfolio.to_dict())

    def reset(self) -> Portfolio:
        """Every ledger back to initial cash; positions and history cleared."""
        with self.transaction() as state:
            state.portfolio = Portfolio.fresh(self.config, self._clock())
            state.positions.clear()
            state.history.clear()
        return state.portfolio

    # -- Snapshots --

    def save_snapshot(self, snapshot: Snapshot) -> Path:
        path = self.snapshots_dir / f"{snapshot.timestamp.strftime(SNAPSHOT_FORMAT)}.json"
        _write_json(path, snapshot.to_dict())
        return path

    def snapshot_paths(self) -> list[Path]:
        """All snapshot files, oldest first (lexical filename order)."""
        if not self.snapshots_dir.exists():
            return []
        return sorted(self.snapshots_dir.glob("*.json"), key=lambda p: p.name)

    def recent_snapshots(self, count: int = 2) -> list[Snapshot]:
        return [Snapshot.from_dict(_read_json(p)) for p in self.snapshot_paths()[-count:]]

    # -- Signals / results --

    def save_signals(self, signals: list[Signal], timestamp: datetime | None = None) -> Path:
        ts = timestamp or self._clock()
        _write_json(self.signals_path, {"timestamp": ts.isoformat(), "signals": [s.to_dict() for s in signals]})
        return self.signals_path

    def load_signals(self) -> dict:
        return _read_json(self.signals_path) or {"timestamp": None, "signals": []}

    def save_result(self, name: str, payload: dict) -> Path:
        path = self.backtests_dir / f"{name}.json"
        _write_json(path, payload)
        return path
