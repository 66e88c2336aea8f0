"""Position lifecycle: open, refresh, sell, resolve, and proposal execution.

State machine per position::

    open -> sold | won | lost      (terminal)

Every operation that moves cash or prices finishes by refreshing all equity
curves so that ``cash + open value == recorded equity`` holds for every
strategy at every checkpoint.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime

from src.papersim.config import SimConfig
from src.papersim.errors import (
    InvalidPrice,
    MarketNotFound,
    PositionNotFound,
    ProviderUnavailable,
)
from src.papersim.feeds.base import MarketDataProvider
from src.papersim.logger import SimLogger
from src.papersim.models import (
    ClosedRecord,
    MarketRecord,
    Position,
    PositionStatus,
    Side,
    StrategyName,
    TradeProposal,
)
from src.papersim.store import StoreState


def new_position_id() -> str:
    return uuid.uuid4().hex[:12]


def bet_size(cash: float, proposal: TradeProposal, config: SimConfig) -> float:
    """Dollar amount committed to a proposal: fixed fraction of cash, capped.

    Returns 0.0 when the result falls under ``config.min_bet`` or exceeds cash.
    """
    size = round(cash * proposal.size_pct, 2)
    if proposal.size_cap is not None:
        size = min(size, proposal.size_cap)
    size = min(size, cash * config.max_bet_fraction)
    if size < config.min_bet or size > cash:
        return 0.0
    return size


def price_in_range(proposal: TradeProposal, config: SimConfig) -> bool:
    """Every leg strictly inside (strategy floor, ceiling)."""
    floor = config.min_price_for(proposal.strategy)
    return all(floor < price < config.max_price for _, price in proposal.legs())


def settlement_price(record: MarketRecord, side: Side) -> float | None:
    """Exit price of a settled market for ``side``, or None to retry later.

    Order: explicit resolution outcome, then skip closed-but-unresolved
    markets, then fall back to a near-certain current price.
    """
    if not (record.resolved or record.closed):
        return None
    outcome = (record.resolution or "").upper()
    if outcome:
        return 1.0 if outcome == side.value else 0.0
    if record.closed and not record.resolved:
        return None
    price = record.price(side)
    if price is None:
        return None
    if price >= 0.99:
        return 1.0
    if price <= 0.01:
        return 0.0
    return None


@dataclass
class RefreshReport:
    updated: int = 0
    skipped: int = 0
    total: int = 0


@dataclass
class ResolveReport:
    records: list[ClosedRecord] = field(default_factory=list)
    skipped: int = 0
    pending: int = 0

    @property
    def resolved(self) -> int:
        return len(self.records)


@dataclass
class ExecutionReport:
    placed: list[Position] = field(default_factory=list)
    skipped: list[tuple[TradeProposal, str]] = field(default_factory=list)

    def by_strategy(self) -> dict[StrategyName, list[Position]]:
        grouped: dict[StrategyName, list[Position]] = {}
        for pos in self.placed:
            grouped.setdefault(pos.strategy, []).append(pos)
        return grouped


class PositionManager:
    """Applies lifecycle transitions to a mutable :class:`StoreState`.

    The manager never persists anything itself; callers wrap it in
    ``store.transaction()``.
    """

    def __init__(
        self,
        state: StoreState,
        provider: MarketDataProvider | None = None,
        config: SimConfig | None = None,
        logger: SimLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.state = state
        self.provider = provider
        self.config = config or SimConfig()
        self.logger = logger or SimLogger(print_live=False)
        self._clock = clock or datetime.now

    @property
    def positions(self) -> list[Position]:
        return self.state.positions

    def _fetch(self, slug: str) -> MarketRecord | None:
        if self.provider is None:
            raise ProviderUnavailable("no market data provider configured")
        return self.provider.fetch_market(slug)

    def _checkpoint(self) -> None:
        self.state.portfolio.update_curves(self._clock().date().isoformat(), self.positions)

    def find(self, position_id: str) -> int:
        for i, pos in enumerate(self.positions):
            if pos.position_id == position_id:
                return i
        raise PositionNotFound(position_id)

    def holds(self, strategy: StrategyName, slug: str) -> bool:
        return any(p.strategy is strategy and p.market_slug == slug for p in self.positions)

    # -- Open --

    def open_position(
        self,
        strategy: StrategyName,
        slug: str,
        question: str,
        side: Side,
        price: float,
        amount: float,
        reason: str = "",
        auto_bet: bool = False,
        checkpoint: bool = True,
    ) -> Position:
        """Commit ``amount`` dollars to ``side`` at ``price``."""
        if price is None or not math.isfinite(price) or not 0.0 < price < 1.0:
            raise InvalidPrice(price, f"{side.value} on {slug}")
        if amount <= 0 or not math.isfinite(amount):
            raise InvalidPrice(amount, "amount must be positive")

        ledger = self.state.portfolio.ledger(strategy)
        cost = round(amount, 2)
        ledger.debit(cost)

        pos = Position(
            position_id=new_position_id(),
            strategy=strategy,
            market_slug=slug,
            question=question,
            side=side,
            entry_price=price,
            current_price=price,
            shares=round(cost / price, 4),
            cost=cost,
            opened_at=self._clock(),
            reason=reason,
            auto_bet=auto_bet,
        )
        self.positions.append(pos)
        if checkpoint:
            self._checkpoint()
        self.logger.position_opened(pos, ledger.cash)
        return pos

    def open_market(self, strategy: StrategyName, slug: str, side: Side, amount: float) -> Position:
        """Manual bet: price comes from the provider."""
        record = self._fetch(slug)
        if record is None:
            raise MarketNotFound(slug)
        price = record.price(side)
        if price is None:
            raise InvalidPrice(None, f"no {side.value} price for {slug}")
        return self.open_position(
            strategy,
            record.slug or slug,
            record.title,
            side,
            price,
            amount,
            reason="manual bet",
        )

    # -- Refresh --

    def refresh(self) -> RefreshReport:
        report = RefreshReport(total=len(self.positions))
        for pos in self.positions:
            try:
                record = self._fetch(pos.market_slug)
            except ProviderUnavailable as exc:
                self.logger.skipped(pos.market_slug, str(exc))
                report.skipped += 1
                continue
            price = record.price(pos.side) if record is not None else None
            if price is None:
                self.logger.skipped(pos.market_slug, "market not found" if record is None else "no price")
                report.skipped += 1
                continue
            old = pos.current_price
            pos.current_price = price
            report.updated += 1
            self.logger.price_refreshed(pos, old)
        self._checkpoint()
        return report

    # -- Close --

    def _close(self, index: int, exit_price: float, status: PositionStatus) -> ClosedRecord:
        pos = self.positions.pop(index)
        proceeds = round(pos.shares * exit_price, 2)
        record = ClosedRecord(
            position=replace(pos, current_price=exit_price, status=status),
            exit_price=exit_price,
            proceeds=proceeds,
            pnl=round(proceeds - pos.cost, 2),
            closed_at=self._clock(),
            status=status,
        )
        ledger = self.state.portfolio.ledger(pos.strategy)
        ledger.credit(proceeds)
        self.state.history.append(record)
        self.logger.position_closed(record, ledger.cash)
        return record

    def sell(self, position_id: str, price: float | None = None) -> ClosedRecord:
        index = self.find(position_id)
        pos = self.positions[index]
        if price is None:
            record = self._fetch(pos.market_slug)
            if record is None:
                raise MarketNotFound(pos.market_slug)
            price = record.price(pos.side)
            if price is None:
                raise InvalidPrice(None, f"no {pos.side.value} price for {pos.market_slug}; pass a price")
        if not math.isfinite(price) or not 0.0 <= price <= 1.0:
            raise InvalidPrice(price, "exit price must be within [0, 1]")
        closed = self._close(index, price, PositionStatus.SOLD)
        self._checkpoint()
        return closed

    def resolve(self) -> ResolveReport:
        """Settle every position whose market has resolved.

        Walks the list backwards so removals don't shift unvisited entries.
        """
        report = ResolveReport()
        for i in range(len(self.positions) - 1, -1, -1):
            pos = self.positions[i]
            try:
                record = self._fetch(pos.market_slug)
            except ProviderUnavailable as exc:
                self.logger.skipped(pos.market_slug, str(exc))
                report.skipped += 1
                continue
            if record is None:
                self.logger.skipped(pos.market_slug, "market not found")
                report.skipped += 1
                continue
            exit_price = settlement_price(record, pos.side)
            if exit_price is None:
                report.pending += 1
                continue
            status = PositionStatus.WON if exit_price == 1.0 else PositionStatus.LOST
            report.records.append(self._close(i, exit_price, status))
        self._checkpoint()
        return report

    # -- Proposals --

    def execute(self, proposals: list[TradeProposal]) -> ExecutionReport:
        """Turn strategy proposals into positions, skipping what fails the guards."""
        report = ExecutionReport()
        for prop in proposals:
            reason = self._execute_one(prop, report)
            if reason:
                report.skipped.append((prop, reason))
                self.logger.skipped(f"[{prop.strategy.value}] {prop.slug}", reason)
        self._checkpoint()
        return report

    def _execute_one(self, prop: TradeProposal, report: ExecutionReport) -> str | None:
        if not price_in_range(prop, self.config):
            return "price out of range"
        if self.holds(prop.strategy, prop.slug):
            return "already holding"

        ledger = self.state.portfolio.ledger(prop.strategy)
        size = bet_size(ledger.cash, prop, self.config)
        if size == 0.0:
            return "bet size below minimum"

        if prop.is_pair:
            half = round(size / 2, 2)
            if half < self.config.min_bet:
                return "leg size below minimum"
            for side, price in prop.legs():
                report.placed.append(
                    self.open_position(
                        prop.strategy,
                        prop.slug,
                        prop.title,
                        side,
                        price,
                        half,
                        reason=f"{prop.reason} ({side.value} leg)",
                        auto_bet=True,
                        checkpoint=False,
                    )
                )
            return None

        report.placed.append(
            self.open_position(
                prop.strategy,
                prop.slug,
                prop.title,
                prop.side,  # type: ignore[arg-type]
                prop.price,
                size,
                reason=prop.reason,
                auto_bet=True,
                checkpoint=False,
            )
        )
        return None
