"""Per-strategy cash ledgers and equity curves."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from src.papersim.config import SimConfig
from src.papersim.errors import InsufficientBalance
from src.papersim.models import EquityPoint, Position, StrategyName


def open_value(positions: Iterable[Position]) -> float:
    """Mark-to-market value of open positions (current price, else entry)."""
    return sum(p.market_value for p in positions)


@dataclass
class Ledger:
    """Cash balance and equity history of one strategy.

    ``cash`` never goes negative; ``initial_cash`` never changes after the
    ledger is created.
    """

    strategy: StrategyName
    cash: float
    initial_cash: float
    equity_curve: list[EquityPoint] = field(default_factory=list)

    def debit(self, amount: float) -> None:
        if amount > self.cash:
            raise InsufficientBalance(self.strategy.value, self.cash, amount)
        self.cash = round(self.cash - amount, 2)

    def credit(self, amount: float) -> None:
        self.cash = round(self.cash + amount, 2)

    def equity(self, positions: Iterable[Position]) -> float:
        return round(self.cash + open_value(positions), 2)

    def update_curve(self, date: str, positions: Iterable[Position]) -> EquityPoint:
        """Record today's equity, overwriting an existing point for ``date``."""
        equity = self.equity(positions)
        if self.equity_curve and self.equity_curve[-1].date == date:
            self.equity_curve[-1].equity = equity
        else:
            self.equity_curve.append(EquityPoint(date=date, equity=equity))
        return self.equity_curve[-1]

    def to_dict(self) -> dict:
        return {
            "cash": self.cash,
            "initialCash": self.initial_cash,
            "equityCurve": [p.to_dict() for p in self.equity_curve],
        }

    @classmethod
    def from_dict(cls, strategy: StrategyName, d: dict) -> Ledger:
        return cls(
            strategy=strategy,
            cash=float(d["cash"]),
            initial_cash=float(d.get("initialCash", d["cash"])),
            equity_curve=[EquityPoint.from_dict(p) for p in d.get("equityCurve", [])],
        )


@dataclass
class Portfolio:
    """Mapping from strategy to ledger, persisted as ``portfolio.json``."""

    strategies: dict[StrategyName, Ledger]
    created_at: datetime
    version: int = 0

    @classmethod
    def fresh(cls, config: SimConfig, now: datetime) -> Portfolio:
        """Every strategy at initial cash, each curve seeded with today's point."""
        date = now.date().isoformat()
        strategies = {
            name: Ledger(
                strategy=name,
                cash=config.initial_cash,
                initial_cash=config.initial_cash,
                equity_curve=[EquityPoint(date=date, equity=config.initial_cash)],
            )
            for name in config.strategies
        }
        return cls(strategies=strategies, created_at=now)

    @property
    def total_initial(self) -> float:
        return sum(ledger.initial_cash for ledger in self.strategies.values())

    @property
    def total_cash(self) -> float:
        return round(sum(ledger.cash for ledger in self.strategies.values()), 2)

    def ledger(self, strategy: StrategyName) -> Ledger:
        return self.strategies[strategy]

    def update_curves(self, date: str, positions: list[Position]) -> None:
        """Refresh every strategy's curve. Run after any cash or price change."""
        for name, ledger in self.strategies.items():
            ledger.update_curve(date, [p for p in positions if p.strategy is name])

    def to_dict(self) -> dict:
        return {
            "strategies": {name.value: ledger.to_dict() for name, ledger in self.strategies.items()},
            "totalInitial": self.total_initial,
            "createdAt": self.created_at.isoformat(),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Portfolio:
        strategies = {}
        for key, raw in d["strategies"].items():
            name = StrategyName(key)
            strategies[name] = Ledger.from_dict(name, raw)
        return cls(
            strategies=strategies,
            created_at=datetime.fromisoformat(d["createdAt"]),
            version=int(d.get("version", 0)),
        )
