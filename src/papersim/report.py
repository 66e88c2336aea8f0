"""Console tables for status, leaderboard, signals and backtest summaries.

Every function returns the lines to print; ``main.py`` does the printing.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from src.papersim.logger import BOLD, CYAN, DIM, GREEN, RED, RESET, fmt_cents, fmt_pnl
from src.papersim.metrics import Overview
from src.papersim.models import (
    BacktestResult,
    ClosedRecord,
    MarketRecord,
    Position,
    Signal,
    StrategyName,
    StrategyStats,
)


def _color(value: float) -> str:
    return GREEN if value >= 0 else RED


def _pct(value: float | None, digits: int = 1) -> str:
    return "-" if value is None else f"{value:.{digits}f}%"


def _num(value: float | None, digits: int = 2) -> str:
    return "-" if value is None else f"{value:.{digits}f}"


def fmt_volume(v: float | None) -> str:
    """Format a dollar volume for compact display (e.g. $1.2M, $890K)."""
    if v is None:
        return "N/A"
    if v >= 1_000_000:
        return f"${v / 1_000_000:.1f}M"
    if v >= 1_000:
        return f"${v / 1_000:.1f}K"
    return f"${v:.0f}"


def position_lines(positions: Sequence[Position]) -> list[str]:
    lines = []
    for p in positions:
        pnl = p.market_value - p.cost
        pnl_pct = pnl / p.cost * 100 if p.cost else 0.0
        lines.append(f"  • [{p.strategy.value}] {p.question or p.market_slug}")
        lines.append(
            f"    {p.side.value} @ {fmt_cents(p.entry_price)} -> {fmt_cents(p.mark_price)} | "
            f"{p.shares:,.2f} shares | {_color(pnl)}{fmt_pnl(pnl)}{RESET} ({pnl_pct:+.1f}%) | "
            f"{DIM}ID: {p.position_id}{RESET}"
        )
    return lines


def overview_lines(ov: Overview, stats: Sequence[StrategyStats]) -> list[str]:
    lines = [
        f"{BOLD}Multi-strategy overview{RESET}",
        f"  Total equity:     ${ov.total_equity:>12,.2f}",
        f"  Total cash:       ${ov.total_cash:>12,.2f}",
        f"  Open positions:   ${ov.open_value:>12,.2f}",
        f"  Total P&L:        {_color(ov.total_pnl)}{fmt_pnl(ov.total_pnl):>13}{RESET}",
        f"  ROI:              {_color(ov.roi)}{_pct(ov.roi, 2):>13}{RESET}",
        f"  Win rate:         {_pct(ov.win_rate):>13}",
        f"  Total trades:     {ov.trades:>13}",
        f"  Open bets:        {ov.open_positions:>13}",
        "",
        f"{CYAN}  {'Strategy':<16} {'Equity':>11} {'Cash':>11} {'P&L':>11} {'ROI%':>8} {'W/L':>8} {'Open':>5}{RESET}",
        f"{DIM}  {'─' * 76}{RESET}",
    ]
    for s in stats:
        wl = f"{s.wins}/{s.losses}" if s.trades else "-"
        lines.append(
            f"  {s.name.value:<16} ${s.total_equity:>10,.2f} ${s.cash:>10,.2f} "
            f"{_color(s.total_pnl)}{fmt_pnl(s.total_pnl):>11}{RESET} {s.roi:>7.1f}% {wl:>8} {s.open_positions:>5}"
        )
    return lines


def strategy_lines(s: StrategyStats, history: Sequence[ClosedRecord]) -> list[str]:
    lines = [
        f"{BOLD}Strategy: {s.name.value}{RESET}",
        f"  Cash:             ${s.cash:>12,.2f}",
        f"  Open value:       ${s.open_value:>12,.2f}",
        f"  Total equity:     ${s.total_equity:>12,.2f}",
        f"  Unrealized P&L:   {fmt_pnl(s.unrealized_pnl):>13}",
        f"  Realized P&L:     {fmt_pnl(s.realized_pnl):>13}",
        f"  Total P&L:        {_color(s.total_pnl)}{fmt_pnl(s.total_pnl):>13}{RESET}",
        f"  ROI:              {_pct(s.roi, 2):>13}",
        f"  Win rate:         {_pct(s.win_rate):>13}",
        f"  Sharpe:           {_num(s.sharpe):>13}",
        f"  Trades:           {s.trades:>13}",
    ]
    recent = [r for r in history if r.strategy is s.name][-5:]
    if recent:
        lines += ["", "  Recent history (last 5):"]
        for r in reversed(recent):
            lines.append(f"    {r.status.value.upper():<5} {r.position.question}")
            lines.append(
                f"          {r.position.side.value} {fmt_cents(r.position.entry_price)} -> "
                f"{fmt_cents(r.exit_price)} | {_color(r.pnl)}{fmt_pnl(r.pnl)}{RESET}"
            )
    return lines


def leaderboard_lines(ranked: Sequence[StrategyStats]) -> list[str]:
    lines = [
        f"{BOLD}Strategy leaderboard{RESET}",
        f"{CYAN}  {'#':>3} {'Strategy':<18} {'Equity':>11} {'P&L':>11} {'ROI%':>8} {'Win%':>7} "
        f"{'Sharpe':>7} {'Trades':>7} {'Open':>5}{RESET}",
        f"{DIM}  {'─' * 84}{RESET}",
    ]
    for i, s in enumerate(ranked, 1):
        lines.append(
            f"  {i:>3} {s.name.value:<18} ${s.total_equity:>10,.2f} {_color(s.total_pnl)}{fmt_pnl(s.total_pnl):>11}{RESET} "
            f"{s.roi:>7.1f}% {_num(s.win_rate, 1):>7} {_num(s.sharpe):>7} {s.trades:>7} {s.open_positions:>5}"
        )
    return lines


def balance_lines(cash: Mapping[StrategyName, float]) -> list[str]:
    return [f"  {name.value:<16} ${amount:,.2f}" for name, amount in cash.items()]


def signal_lines(signals: Sequence[Signal]) -> list[str]:
    lines = []
    for s in signals:
        arrow = {"UP": "↑", "DOWN": "↓"}.get(s.direction.value, "→")
        flags = []
        if s.is_price_spike:
            flags.append(f"price {s.price_delta * 100:+.1f}pt")
        if s.is_vol_spike:
            flags.append(f"volume +{(s.volume_ratio - 1) * 100:.0f}%")
        lines.append(f"  {arrow} {s.title}")
        lines.append(
            f"    Price: {fmt_cents(s.old_price)} -> {fmt_cents(s.new_price)}  [{' | '.join(flags)}]"
        )
        lines.append(f"    Volume: {fmt_volume(s.old_volume)} -> {fmt_volume(s.new_volume)}")
    return lines


def market_lines(records: Sequence[MarketRecord]) -> list[str]:
    """Colour-coded table of market search results."""
    lines = [
        f"{CYAN}  {'#':>3}  {'Market':<55}  {'YES':>6}  {'Volume':>8}  Slug{RESET}",
        f"{DIM}  {'─' * 3}  {'─' * 55}  {'─' * 6}  {'─' * 8}  {'─' * 20}{RESET}",
    ]
    for i, r in enumerate(records, 1):
        yp = r.yes_price
        yes = f"{yp:.1%}" if yp is not None else "N/A"
        color = DIM if yp is None else (GREEN if yp >= 0.5 else RED)
        lines.append(
            f"  {DIM}{i:>3}{RESET}  {r.title[:55]:<55}  {color}{yes:>6}{RESET}  "
            f"{fmt_volume(r.volume):>8}  {DIM}{r.slug}{RESET}"
        )
    return lines


def backtest_lines(results: Mapping[StrategyName, BacktestResult]) -> list[str]:
    lines = [
        f"{CYAN}  {'Strategy':<16} {'Trades':>7} {'Win%':>7} {'P&L':>11} {'ROI%':>8} "
        f"{'Final':>11} {'MaxDD':>7} {'Sharpe':>7}{RESET}",
        f"{DIM}  {'─' * 80}{RESET}",
    ]
    ranked = sorted(results.values(), key=lambda r: r.metrics.get("roi") or 0.0, reverse=True)
    for r in ranked:
        m = r.metrics
        pnl = m["realized_pnl"] or 0.0
        lines.append(
            f"  {r.strategy.value:<16} {int(m['trades'] or 0):>7} {_num(m['win_rate'], 1):>7} "
            f"{_color(pnl)}{fmt_pnl(pnl):>11}{RESET} {m['roi'] or 0.0:>7.1f}% ${r.final_cash:>10,.2f} "
            f"{(m['max_drawdown'] or 0.0):>7.1%} {_num(m['sharpe']):>7}"
        )
    return lines


def case_study_lines(rows: Sequence[dict]) -> list[str]:
    lines = [
        f"{CYAN}  {'Window':<8} {'Strategy':<16} {'Trades':>7} {'Win%':>7} {'ROI%':>8} {'P&L':>11}{RESET}",
        f"{DIM}  {'─' * 62}{RESET}",
    ]
    for row in rows:
        pnl = row["pnl"] or 0.0
        lines.append(
            f"  {row['window']:<8} {row['strategy']:<16} {row['trades']:>7} {_num(row['win_rate'], 1):>7} "
            f"{row['roi'] or 0.0:>7.1f}% {_color(pnl)}{fmt_pnl(pnl):>11}{RESET}"
        )
    return lines
