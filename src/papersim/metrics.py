"""Performance metrics for live ledgers and backtest replays.

Live and backtest paths share ``sharpe_ratio``: day-over-day (or trade-over-
trade) simple returns, population standard deviation, annualised with
sqrt(252). Backtests clamp the ratio because a handful of trades can produce
absurd values.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from src.papersim.models import (
    BacktestTrade,
    ClosedRecord,
    EquityPoint,
    Position,
    StrategyName,
    StrategyStats,
)
from src.papersim.portfolio import Ledger, Portfolio

TRADING_DAYS = 252
_STD_EPS = 1e-12


def sharpe_ratio(equity: Sequence[float], clamp: float | None = None) -> float | None:
    """Annualised Sharpe of an equity series, None if undefined.

    Needs at least three points. Undefined when the return series has
    (near-)zero spread.
    """
    if len(equity) < 3:
        return None
    arr = np.asarray(equity, dtype=float)
    prev = arr[:-1]
    if np.any(prev <= 0):
        return None
    returns = np.diff(arr) / prev
    std = float(np.std(returns))
    if std < _STD_EPS:
        return None
    sharpe = float(np.mean(returns)) / std * np.sqrt(TRADING_DAYS)
    if clamp is not None:
        sharpe = float(np.clip(sharpe, -clamp, clamp))
    return float(sharpe)


def max_drawdown(equity: Sequence[float]) -> float:
    """Largest peak-to-trough decline as a fraction of the peak."""
    if len(equity) == 0:
        return 0.0
    arr = np.asarray(equity, dtype=float)
    peaks = np.maximum.accumulate(arr)
    with np.errstate(divide="ignore", invalid="ignore"):
        dd = np.where(peaks > 0, (peaks - arr) / peaks, 0.0)
    return float(dd.max())


def win_rate(wins: int, losses: int) -> float | None:
    total = wins + losses
    return wins / total * 100 if total else None


def compute_stats(
    ledger: Ledger,
    positions: Sequence[Position],
    history: Sequence[ClosedRecord],
) -> StrategyStats:
    """Summary of one strategy from its ledger, open positions and closed records."""
    name = ledger.strategy
    open_pos = [p for p in positions if p.strategy is name]
    closed = [r for r in history if r.strategy is name]

    open_value = sum(p.market_value for p in open_pos)
    open_cost = sum(p.cost for p in open_pos)
    unrealized = open_value - open_cost
    realized = sum(r.pnl for r in closed)
    wins = sum(1 for r in closed if r.is_win)
    losses = len(closed) - wins

    return StrategyStats(
        name=name,
        cash=ledger.cash,
        initial_cash=ledger.initial_cash,
        total_equity=ledger.cash + open_value,
        open_value=open_value,
        open_cost=open_cost,
        unrealized_pnl=unrealized,
        realized_pnl=realized,
        total_pnl=realized + unrealized,
        roi=(realized + unrealized) / ledger.initial_cash * 100 if ledger.initial_cash else 0.0,
        wins=wins,
        losses=losses,
        win_rate=win_rate(wins, losses),
        trades=len(closed),
        sharpe=sharpe_ratio([p.equity for p in ledger.equity_curve]),
        open_positions=len(open_pos),
    )


def compute_all(
    portfolio: Portfolio,
    positions: Sequence[Position],
    history: Sequence[ClosedRecord],
) -> list[StrategyStats]:
    return [compute_stats(ledger, positions, history) for ledger in portfolio.strategies.values()]


def leaderboard(stats: Sequence[StrategyStats]) -> list[StrategyStats]:
    """Strategies ranked by ROI, best first."""
    return sorted(stats, key=lambda s: s.roi, reverse=True)


@dataclass
class Overview:
    """All strategies aggregated against the total initial capital."""

    total_equity: float
    total_cash: float
    open_value: float
    total_pnl: float
    roi: float
    win_rate: float | None
    trades: int
    open_positions: int


def overview(portfolio: Portfolio, stats: Sequence[StrategyStats]) -> Overview:
    wins = sum(s.wins for s in stats)
    losses = sum(s.losses for s in stats)
    total_pnl = sum(s.total_pnl for s in stats)
    total_initial = portfolio.total_initial
    return Overview(
        total_equity=sum(s.total_equity for s in stats),
        total_cash=sum(s.cash for s in stats),
        open_value=sum(s.open_value for s in stats),
        total_pnl=total_pnl,
        roi=total_pnl / total_initial * 100 if total_initial else 0.0,
        win_rate=win_rate(wins, losses),
        trades=sum(s.trades for s in stats),
        open_positions=sum(s.open_positions for s in stats),
    )


def backtest_metrics(
    trades: Sequence[BacktestTrade],
    equity_curve: Sequence[EquityPoint],
    initial_cash: float,
    sharpe_clamp: float | None = 10.0,
) -> dict[str, float | None]:
    """Summary metrics of one strategy's replay.

    Every trade is already settled, so all P&L is realized.
    """
    equity = [p.equity for p in equity_curve]
    final = equity[-1] if equity else initial_cash
    wins = sum(1 for t in trades if t.pnl > 0)
    losses = len(trades) - wins
    realized = sum(t.pnl for t in trades)
    return {
        "trades": float(len(trades)),
        "wins": float(wins),
        "losses": float(losses),
        "win_rate": win_rate(wins, losses),
        "realized_pnl": round(realized, 2),
        "roi": round(realized / initial_cash * 100, 4) if initial_cash else 0.0,
        "final_equity": final,
        "max_drawdown": max_drawdown(equity),
        "sharpe": sharpe_ratio(equity, clamp=sharpe_clamp),
    }


def rank_results(metrics: dict[StrategyName, dict[str, float | None]]) -> list[StrategyName]:
    """Strategy names ordered by backtest ROI, best first."""
    return sorted(metrics, key=lambda name: metrics[name]["roi"] or 0.0, reverse=True)
