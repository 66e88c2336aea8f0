"""Command surface of the paper-trading simulator.

Each public method is one command. Mutating commands run inside
``store.transaction()``; a :class:`~src.papersim.errors.SimError` raised
inside leaves the store untouched.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from tqdm import tqdm

from src.papersim.backtest import CaseStudyResult, Replayer, run_case_study
from src.papersim.config import SimConfig
from src.papersim.errors import MarketNotFound, ProviderUnavailable, SimError
from src.papersim.feeds.base import MarketDataProvider
from src.papersim.feeds.historical import HistoricalFeed, historical_from_gamma
from src.papersim.lifecycle import ExecutionReport, PositionManager, RefreshReport, ResolveReport
from src.papersim.logger import SimLogger
from src.papersim.metrics import Overview, compute_all, leaderboard, overview
from src.papersim.models import (
    BacktestResult,
    ClosedRecord,
    HistoricalMarket,
    MarketRecord,
    Position,
    Side,
    Signal,
    Snapshot,
    StrategyName,
    StrategyStats,
    TradeProposal,
)
from src.papersim.portfolio import Portfolio
from src.papersim.signals import detect, rank
from src.papersim.store import JsonStore
from src.papersim.strategies import build_strategies
from src.papersim.strategy import StrategyContext, parse_strategy


def parse_side(value: str) -> Side:
    try:
        return Side(value.upper())
    except ValueError:
        raise SimError(f"Side must be YES or NO, got {value!r}") from None


@dataclass
class StatusReport:
    portfolio: Portfolio
    stats: list[StrategyStats]
    overview: Overview
    positions: list[Position]
    history: list[ClosedRecord]


@dataclass
class AutoBetReport:
    proposals: list[TradeProposal]
    execution: ExecutionReport
    signals: list[Signal]
    cash: dict[StrategyName, float]


class Simulator:
    def __init__(
        self,
        config: SimConfig | None = None,
        provider: MarketDataProvider | None = None,
        store: JsonStore | None = None,
        logger: SimLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config or SimConfig()
        self._clock = clock or datetime.now
        self.provider = provider
        self.store = store or JsonStore(self.config.data_dir, self.config, clock=self._clock)
        self.logger = logger or SimLogger(print_live=True)
        self.history_feed = HistoricalFeed(self.store.history_dir)

    def _provider(self) -> MarketDataProvider:
        if self.provider is None:
            raise ProviderUnavailable("no market data provider configured")
        return self.provider

    def _manager(self, state) -> PositionManager:
        return PositionManager(state, self.provider, self.config, self.logger, self._clock)

    # -- Positions --

    def open_position(self, slug: str, side: str, amount: float, strategy: str = "momentum") -> Position:
        name = parse_strategy(strategy)
        parsed_side = parse_side(side)
        with self.store.transaction() as state:
            return self._manager(state).open_market(name, slug, parsed_side, amount)

    def close_position(self, position_id: str, price: float | None = None) -> ClosedRecord:
        with self.store.transaction() as state:
            return self._manager(state).sell(position_id, price)

    def refresh(self) -> RefreshReport:
        with self.store.transaction() as state:
            return self._manager(state).refresh()

    def resolve(self) -> ResolveReport:
        with self.store.transaction() as state:
            return self._manager(state).resolve()

    def reset(self) -> Portfolio:
        portfolio = self.store.reset()
        self.logger.info(
            f"All strategies reset to ${self.config.initial_cash:,.0f} each "
            f"(total ${portfolio.total_initial:,.0f})"
        )
        return portfolio

    # -- Reporting --

    def status(self, strategy: str | None = None) -> StatusReport:
        name = parse_strategy(strategy) if strategy else None
        state = self.store.read_state()
        stats = compute_all(state.portfolio, state.positions, state.history)
        positions = state.positions
        if name is not None:
            stats = [s for s in stats if s.name is name]
            positions = [p for p in positions if p.strategy is name]
        return StatusReport(
            portfolio=state.portfolio,
            stats=stats,
            overview=overview(state.portfolio, stats),
            positions=positions,
            history=state.history,
        )

    def leaderboard(self) -> list[StrategyStats]:
        state = self.store.read_state()
        return leaderboard(compute_all(state.portfolio, state.positions, state.history))

    def search(self, query: str, limit: int = 10) -> list[MarketRecord]:
        if not query.strip():
            raise SimError("Search query must not be empty")
        return self._provider().search(query, limit)

    # -- Snapshots / signals --

    def snapshot(self) -> tuple[Snapshot, Path]:
        records = self._provider().fetch_active_markets()
        observations = tuple(r.to_observation() for r in records)
        snap = Snapshot(
            timestamp=self._clock(),
            markets=tuple(o for o in observations if o.price is not None),
        )
        if not snap.markets:
            raise ProviderUnavailable("no priced markets fetched; check API connectivity")
        path = self.store.save_snapshot(snap)
        self.logger.info(f"Snapshot saved: {path} ({snap.market_count} markets)")
        return snap, path

    def scan(self) -> list[Signal]:
        """Compare the two most recent snapshots and store the ranked signals."""
        snaps = self.store.recent_snapshots(2)
        if len(snaps) < 2:
            self.logger.warning("Need at least 2 snapshots to scan. Run `snapshot` first.")
            return []
        older, newer = snaps
        signals = rank(detect(older, newer, self.config, detected_at=self._clock()))
        self.store.save_signals(signals, self._clock())
        for sig in signals:
            self.logger.signal(sig)
        return signals

    def auto_bet(self) -> AutoBetReport:
        """Run every strategy against the latest snapshot(s) and execute."""
        snaps = self.store.recent_snapshots(2)
        latest = snaps[-1] if snaps else None
        signals: list[Signal] = []
        if len(snaps) >= 2:
            signals = rank(detect(snaps[0], snaps[1], self.config, detected_at=self._clock()))
        else:
            self.logger.warning("Need 2+ snapshots for momentum/contrarian signals.")

        context = StrategyContext(signals=signals, snapshot=latest)
        proposals: list[TradeProposal] = []
        for strategy in build_strategies(self.config):
            found = strategy.propose(context)
            self.logger.info(f"{strategy.name.value}: {len(found)} proposal(s)")
            for prop in found:
                self.logger.proposal(prop)
            proposals.extend(found)

        with self.store.transaction() as state:
            execution = self._manager(state).execute(proposals)
            cash = {name: ledger.cash for name, ledger in state.portfolio.strategies.items()}

        if signals:
            self.store.save_signals(signals, self._clock())
        self.logger.info(f"Auto-bet complete: {len(execution.placed)} bets placed")
        return AutoBetReport(proposals=proposals, execution=execution, signals=signals, cash=cash)

    # -- Historical --

    def fetch_history(self, limit: int = 1000) -> tuple[list[HistoricalMarket], Path]:
        raw = self._provider().fetch_closed_markets(limit=limit)
        markets = [m for m in (historical_from_gamma(r) for r in raw) if m is not None]
        path = self.history_feed.write_markets(markets)
        self.logger.info(f"Stored {len(markets):,} of {len(raw):,} closed markets in {path}")
        return markets, path

    def _corpus(self) -> list[HistoricalMarket]:
        markets = self.history_feed.markets()
        if not markets:
            raise SimError("No historical corpus. Run `fetch-history` first.")
        return markets

    def backtest(self) -> dict[StrategyName, BacktestResult]:
        markets = self._corpus()
        results = Replayer(self.config, logger=self.logger).run(markets)
        stamp = self._clock().strftime("%Y-%m-%dT%H-%M")
        path = self.store.save_result(
            f"backtest-{stamp}",
            {"markets": len(markets), "results": {n.value: r.to_dict() for n, r in results.items()}},
        )
        self.logger.info(f"Results saved: {path}")
        return results

    def case_study(self, slugs: list[str] | None = None, top: int = 10) -> CaseStudyResult:
        """Replay selected markets once per entry-timing window."""
        corpus = self._corpus()
        if slugs:
            by_slug = {m.slug: m for m in corpus}
            missing = [s for s in slugs if s not in by_slug]
            if missing:
                raise MarketNotFound(", ".join(missing))
            markets = [by_slug[s] for s in slugs]
        else:
            markets = self.history_feed.top_by_volume(top)

        stored = self.history_feed.price_histories()
        to_fetch = [m for m in markets if m.slug not in stored and m.yes_token_id]
        if to_fetch:
            provider = self._provider()
            for market in tqdm(to_fetch, desc="Price histories", unit=" mkt", disable=not self.logger.print_live):
                try:
                    stored[market.slug] = provider.fetch_price_history(market.yes_token_id)  # type: ignore[arg-type]
                except ProviderUnavailable as exc:
                    self.logger.skipped(market.slug, str(exc))
            self.history_feed.write_prices(stored)

        histories = {m.slug: stored[m.slug] for m in markets if m.slug in stored}
        result = run_case_study(markets, histories, self.config, self.logger)
        stamp = self._clock().strftime("%Y-%m-%dT%H-%M")
        path = self.store.save_result(f"case-study-{stamp}", result.to_dict())
        self.logger.info(f"Case study saved: {path}")
        return result
