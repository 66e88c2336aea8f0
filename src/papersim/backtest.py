"""Backtest replayer over resolved historical markets.

Each strategy replays the same chronological stream with its own isolated
cash. Entry prices are estimated *before* the final move that produced the
resolution::

    entry = last_trade_price - one_day_price_change

Using ``last_trade_price`` itself would be look-ahead bias: by then the
market had already all but resolved. Every trade settles immediately at the
known outcome, and the equity curve gets one point per executed trade.
Deterministic given the same input order: there is no randomness anywhere.
"""

from __future__ import annotations

import math
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from src.papersim.config import SimConfig
from src.papersim.lifecycle import bet_size, price_in_range
from src.papersim.logger import SimLogger
from src.papersim.metrics import backtest_metrics
from src.papersim.models import (
    BacktestResult,
    BacktestTrade,
    EntryPoint,
    EquityPoint,
    HistoricalMarket,
    StrategyName,
)
from src.papersim.strategies import build_strategies
from src.papersim.strategy import Strategy


def _valid_entry(price: float, config: SimConfig) -> bool:
    return math.isfinite(price) and config.backtest_min_entry < price < config.backtest_max_entry


def entry_point(market: HistoricalMarket, config: SimConfig | None = None) -> EntryPoint | None:
    """Bias-free entry for a corpus market, or None if it must be excluded."""
    config = config or SimConfig()
    delta = market.one_day_price_change
    if not math.isfinite(delta):
        return None
    price = market.last_trade_price - delta
    if not _valid_entry(price, config):
        return None
    return EntryPoint(market=market, price=price, delta=delta)


def build_entries(
    markets: Sequence[HistoricalMarket],
    config: SimConfig | None = None,
) -> tuple[list[EntryPoint], int]:
    """Entry points in input order plus the number of markets excluded."""
    entries = []
    excluded = 0
    for market in markets:
        entry = entry_point(market, config)
        if entry is None:
            excluded += 1
        else:
            entries.append(entry)
    return entries, excluded


class Replayer:
    """Drives every strategy over a list of entry points."""

    def __init__(
        self,
        config: SimConfig | None = None,
        strategies: list[Strategy] | None = None,
        logger: SimLogger | None = None,
    ):
        self.config = config or SimConfig()
        self.strategies = strategies if strategies is not None else build_strategies(self.config)
        self.logger = logger or SimLogger(print_live=False)

    def run(self, markets: Sequence[HistoricalMarket]) -> dict[StrategyName, BacktestResult]:
        """Replay a chronologically sorted corpus."""
        entries, excluded = build_entries(markets, self.config)
        if excluded:
            self.logger.info(f"Excluded {excluded:,} markets with entry price outside the tradable range")
        return self.replay(entries)

    def replay(self, entries: Sequence[EntryPoint]) -> dict[StrategyName, BacktestResult]:
        wall_start = time.monotonic()
        self.logger.backtest_start(len(entries), len(self.strategies), self.config.initial_cash)
        results = {}
        for strategy in self.strategies:
            results[strategy.name] = self._replay_one(strategy, entries)
        n_trades = sum(len(r.trades) for r in results.values())
        self.logger.backtest_end(n_trades, time.monotonic() - wall_start)
        return results

    def _replay_one(self, strategy: Strategy, entries: Sequence[EntryPoint]) -> BacktestResult:
        config = self.config
        logger = SimLogger(print_live=self.logger.print_live)
        logger.write_fn = self.logger.write_fn
        cash = config.initial_cash
        trades: list[BacktestTrade] = []
        curve = [EquityPoint(date="start", equity=cash)]

        for entry in entries:
            market = entry.market
            for prop in strategy.propose_historical(entry):
                if not price_in_range(prop, config):
                    continue
                size = bet_size(cash, prop, config)
                if size == 0.0:
                    continue
                legs = prop.legs()
                leg_cost = round(size / len(legs), 2)
                if leg_cost < config.min_bet:
                    continue
                for side, price in legs:
                    shares = round(leg_cost / price, 4)
                    payout = round(shares if side == market.outcome else 0.0, 2)
                    pnl = round(payout - leg_cost, 2)
                    cash = round(cash - leg_cost + payout, 2)
                    trade = BacktestTrade(
                        strategy=strategy.name,
                        slug=market.slug,
                        title=market.title,
                        side=side,
                        entry_price=price,
                        shares=shares,
                        cost=leg_cost,
                        payout=payout,
                        pnl=pnl,
                        outcome=market.outcome,
                        end_date=market.end_date.date().isoformat(),
                    )
                    trades.append(trade)
                    curve.append(EquityPoint(date=trade.end_date, equity=cash))
                    logger.backtest_trade(trade, cash)

        return BacktestResult(
            strategy=strategy.name,
            initial_cash=config.initial_cash,
            final_cash=cash,
            trades=trades,
            equity_curve=curve,
            metrics=backtest_metrics(trades, curve, config.initial_cash, config.sharpe_clamp),
            event_log=logger.lines,
        )


# ---------------------------------------------------------------------------
# Case study: entry timing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimingWindow:
    """Entries placed ``min_days <= days before resolution < max_days``."""

    label: str
    min_days: float
    max_days: float | None = None

    def contains(self, days_before: float) -> bool:
        return days_before >= self.min_days and (self.max_days is None or days_before < self.max_days)


TIMING_WINDOWS = (
    TimingWindow(">30d", 30),
    TimingWindow("14-30d", 14, 30),
    TimingWindow("7-14d", 7, 14),
    TimingWindow("3-7d", 3, 7),
    TimingWindow("1-3d", 1, 3),
)


def window_entry(
    market: HistoricalMarket,
    history: Sequence[tuple[datetime, float]],
    window: TimingWindow,
    config: SimConfig | None = None,
) -> EntryPoint | None:
    """Entry at the earliest history point inside ``window``.

    The delta is that point minus the point before it: only data observed at
    or before entry is used.
    """
    config = config or SimConfig()
    for i, (ts, price) in enumerate(history):
        days_before = (market.end_date - ts).total_seconds() / 86_400
        if not window.contains(days_before):
            continue
        if not _valid_entry(price, config):
            return None
        delta = price - history[i - 1][1] if i > 0 else 0.0
        return EntryPoint(market=market, price=price, delta=delta)
    return None


@dataclass
class CaseStudyResult:
    markets: list[str]
    windows: dict[str, dict[StrategyName, BacktestResult]] = field(default_factory=dict)

    def summary(self) -> list[dict]:
        """One row per (window, strategy): trades, win rate, ROI and P&L."""
        rows = []
        for label, results in self.windows.items():
            for name, result in results.items():
                m = result.metrics
                rows.append(
                    {
                        "window": label,
                        "strategy": name.value,
                        "trades": int(m["trades"] or 0),
                        "win_rate": m["win_rate"],
                        "roi": m["roi"],
                        "pnl": m["realized_pnl"],
                    }
                )
        return rows

    def to_dict(self) -> dict:
        return {
            "markets": self.markets,
            "summary": self.summary(),
            "windows": {
                label: {name.value: r.to_dict() for name, r in results.items()}
                for label, results in self.windows.items()
            },
        }


def run_case_study(
    markets: Sequence[HistoricalMarket],
    histories: dict[str, list[tuple[datetime, float]]],
    config: SimConfig | None = None,
    logger: SimLogger | None = None,
    windows: Sequence[TimingWindow] = TIMING_WINDOWS,
) -> CaseStudyResult:
    """Replay the same markets once per entry-timing window."""
    config = config or SimConfig()
    logger = logger or SimLogger(print_live=False)
    ordered = sorted(markets, key=lambda m: (m.end_date, m.slug))
    result = CaseStudyResult(markets=[m.slug for m in ordered])
    for window in windows:
        entries = []
        for market in ordered:
            entry = window_entry(market, histories.get(market.slug, []), window, config)
            if entry is not None:
                entries.append(entry)
        logger.info(f"Window {window.label}: {len(entries)} of {len(ordered)} markets have an entry")
        result.windows[window.label] = Replayer(config, logger=logger).replay(entries)
    return result
