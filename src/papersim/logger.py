"""Human-readable event log for simulator commands and backtests.

Every event becomes one line, ``HH:MM:SS  EVENT  details``, coloured with ANSI
codes. Lines are kept in :attr:`SimLogger.lines` so callers can persist them,
and echoed live through :attr:`SimLogger.write_fn` when ``print_live`` is set.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from src.papersim.models import (
    BacktestTrade,
    ClosedRecord,
    Position,
    PositionStatus,
    Signal,
    TradeProposal,
)

DIM = "\033[2m"
BOLD = "\033[1m"
GREEN = "\033[32m"
RED = "\033[31m"
YELLOW = "\033[33m"
CYAN = "\033[36m"
RESET = "\033[0m"


def fmt_pnl(value: float) -> str:
    return f"+${value:,.2f}" if value >= 0 else f"-${abs(value):,.2f}"


def fmt_cents(price: float) -> str:
    return f"{price * 100:.1f}¢"


class SimLogger:
    def __init__(self, print_live: bool = True, clock: Callable[[], datetime] | None = None):
        self.print_live = print_live
        self.lines: list[str] = []
        self.write_fn: Callable[[str], None] = print
        self._clock = clock or datetime.now

    def _emit(self, tag: str, color: str, msg: str) -> None:
        ts = self._clock().strftime("%H:%M:%S")
        line = f"{DIM}{ts}{RESET}  {color}{tag:<8}{RESET} {msg}"
        self.lines.append(line)
        if self.print_live:
            self.write_fn(line)

    def info(self, msg: str) -> None:
        self._emit("INFO", DIM, msg)

    def warning(self, msg: str) -> None:
        self._emit("WARN", YELLOW, msg)

    def error(self, msg: str) -> None:
        self._emit("ERROR", RED, msg)

    # -- Position lifecycle --

    def position_opened(self, pos: Position, cash: float) -> None:
        self._emit(
            "OPEN",
            GREEN,
            f"[{pos.strategy.value}] {pos.side.value} {pos.question[:60]} @ {fmt_cents(pos.entry_price)} "
            f"| {pos.shares:,.2f} sh | ${pos.cost:,.2f} | cash ${cash:,.2f} | id {pos.position_id}",
        )

    def position_closed(self, record: ClosedRecord, cash: float) -> None:
        color = GREEN if record.pnl >= 0 else RED
        tag = {PositionStatus.WON: "WON", PositionStatus.LOST: "LOST"}.get(record.status, "SOLD")
        pos = record.position
        self._emit(
            tag,
            color,
            f"[{pos.strategy.value}] {pos.question[:60]} {pos.side.value} "
            f"{fmt_cents(pos.entry_price)} -> {fmt_cents(record.exit_price)} "
            f"| P&L {color}{fmt_pnl(record.pnl)}{RESET} | cash ${cash:,.2f}",
        )

    def price_refreshed(self, pos: Position, old_price: float) -> None:
        self._emit(
            "REFRESH",
            DIM,
            f"[{pos.strategy.value}] {pos.market_slug} {pos.side.value} "
            f"{fmt_cents(old_price)} -> {fmt_cents(pos.current_price)}",
        )

    def skipped(self, subject: str, reason: str) -> None:
        self._emit("SKIP", YELLOW, f"{subject}: {reason}")

    # -- Signals / proposals --

    def signal(self, sig: Signal) -> None:
        arrow = {"UP": "↑", "DOWN": "↓"}.get(sig.direction.value, "→")
        flags = []
        if sig.is_price_spike:
            flags.append(f"price {sig.price_delta * 100:+.1f}pt")
        if sig.is_vol_spike:
            flags.append(f"volume +{(sig.volume_ratio - 1) * 100:.0f}%")
        self._emit(
            "SIGNAL",
            CYAN,
            f"{arrow} {sig.title[:60]} {fmt_cents(sig.old_price)} -> {fmt_cents(sig.new_price)} [{' | '.join(flags)}]",
        )

    def proposal(self, prop: TradeProposal) -> None:
        side = "BOTH" if prop.is_pair else prop.side.value  # type: ignore[union-attr]
        self._emit("PROPOSE", YELLOW, f"[{prop.strategy.value}] {side} {prop.title[:60]}: {prop.reason}")

    # -- Backtests --

    def backtest_start(self, n_markets: int, n_strategies: int, initial_cash: float) -> None:
        self._emit(
            "START",
            BOLD,
            f"Replaying {n_markets:,} markets across {n_strategies} strategies (${initial_cash:,.2f} each)",
        )

    def backtest_trade(self, trade: BacktestTrade, cash: float) -> None:
        color = GREEN if trade.pnl >= 0 else RED
        self._emit(
            "FILL",
            color,
            f"[{trade.strategy.value}] {trade.side.value} {trade.title[:50]} @ {fmt_cents(trade.entry_price)} "
            f"-> {trade.outcome.value} | P&L {fmt_pnl(trade.pnl)} | cash ${cash:,.2f}",
        )

    def backtest_end(self, n_trades: int, elapsed: float) -> None:
        self._emit("END", BOLD, f"{n_trades:,} trades replayed in {elapsed:.2f}s")
