"""Data types shared by the simulator, the strategies and the replayer.

All prices are floats in [0.0, 1.0] quoted for the side they refer to: a NO
position bought at 0.30 paid 30 cents per NO share. Persisted documents use
camelCase keys; ``to_dict``/``from_dict`` translate between the two.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any


class Side(str, Enum):
    YES = "YES"
    NO = "NO"

    @property
    def opposite(self) -> Side:
        return Side.NO if self is Side.YES else Side.YES


class StrategyName(str, Enum):
    """The closed set of strategies, each owning one ledger."""

    MOMENTUM = "momentum"
    CONTRARIAN = "contrarian"
    STATUS_QUO = "status_quo"
    CHEAP_CONTRACTS = "cheap_contracts"
    ARB = "arb"


class PositionStatus(str, Enum):
    OPEN = "open"
    SOLD = "sold"
    WON = "won"
    LOST = "lost"

    @property
    def is_terminal(self) -> bool:
        return self is not PositionStatus.OPEN


class Direction(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    FLAT = "FLAT"

    @classmethod
    def of(cls, delta: float) -> Direction:
        if delta > 0:
            return cls.UP
        if delta < 0:
            return cls.DOWN
        return cls.FLAT


# ---------------------------------------------------------------------------
# Market data
# ---------------------------------------------------------------------------


def _parse_json_list(value: Any) -> list:
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        parsed = json.loads(value)
        if isinstance(parsed, list):
            return parsed
    raise ValueError(f"not a list: {value!r}")


@dataclass
class MarketRecord:
    """One market as reported by the Market Data Provider."""

    slug: str
    title: str
    outcomes: list[str] = field(default_factory=list)
    outcome_prices: list[float] = field(default_factory=list)
    resolved: bool = False
    closed: bool = False
    resolution: str | None = None
    volume: float = 0.0
    liquidity: float = 0.0
    market_id: str | None = None
    token_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_gamma(cls, raw: dict) -> MarketRecord:
        """Build a record from a Gamma API market object.

        Outcome arrays arrive JSON-encoded. Unparseable outcome data leaves
        both arrays empty so that every price lookup returns ``None``.
        """
        try:
            outcomes = [str(o) for o in _parse_json_list(raw.get("outcomes"))]
            prices = [float(p) for p in _parse_json_list(raw.get("outcomePrices"))]
            if len(outcomes) != len(prices):
                raise ValueError("outcome/price length mismatch")
        except (TypeError, ValueError):
            outcomes, prices = [], []

        try:
            token_ids = [str(t) for t in _parse_json_list(raw.get("clobTokenIds"))]
        except (TypeError, ValueError):
            token_ids = []

        resolution = raw.get("resolution") or raw.get("resolvedOutcome") or None
        slug = raw.get("slug") or str(raw.get("id") or "")
        return cls(
            slug=slug,
            title=raw.get("question") or raw.get("title") or slug,
            outcomes=outcomes,
            outcome_prices=prices,
            resolved=bool(raw.get("resolved", False)),
            closed=bool(raw.get("closed", False)),
            resolution=str(resolution) if resolution else None,
            volume=_to_float(raw.get("volumeNum", raw.get("volume"))),
            liquidity=_to_float(raw.get("liquidityNum", raw.get("liquidity"))),
            market_id=str(raw["id"]) if raw.get("id") is not None else raw.get("conditionId"),
            token_ids=token_ids,
        )

    def price(self, side: Side | str) -> float | None:
        """Price of the named outcome, matched case-insensitively."""
        name = side.value if isinstance(side, Side) else str(side)
        for outcome, price in zip(self.outcomes, self.outcome_prices):
            if outcome.upper() == name.upper():
                return price
        return None

    @property
    def yes_price(self) -> float | None:
        return self.price(Side.YES)

    def to_observation(self) -> MarketObservation:
        return MarketObservation(
            slug=self.slug,
            title=self.title,
            price=self.yes_price,
            volume=self.volume,
            liquidity=self.liquidity,
        )


def _to_float(value: Any) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


@dataclass(frozen=True)
class MarketObservation:
    """A market's YES price, volume and liquidity inside one snapshot."""

    slug: str
    title: str
    price: float | None
    volume: float = 0.0
    liquidity: float = 0.0

    def to_dict(self) -> dict:
        return {
            "slug": self.slug,
            "title": self.title,
            "price": self.price,
            "volume": self.volume,
            "liquidity": self.liquidity,
        }

    @classmethod
    def from_dict(cls, d: dict) -> MarketObservation:
        price = d.get("price")
        return cls(
            slug=d["slug"],
            title=d.get("title") or d["slug"],
            price=float(price) if price is not None else None,
            volume=_to_float(d.get("volume")),
            liquidity=_to_float(d.get("liquidity")),
        )


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time capture of all tracked markets."""

    timestamp: datetime
    markets: tuple[MarketObservation, ...]

    @property
    def market_count(self) -> int:
        return len(self.markets)

    def by_slug(self) -> dict[str, MarketObservation]:
        return {m.slug: m for m in self.markets}

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "marketCount": self.market_count,
            "markets": [m.to_dict() for m in self.markets],
        }

    @classmethod
    def from_dict(cls, d: dict) -> Snapshot:
        return cls(
            timestamp=datetime.fromisoformat(d["timestamp"]),
            markets=tuple(MarketObservation.from_dict(m) for m in d.get("markets", [])),
        )


@dataclass(frozen=True)
class Signal:
    """Anomalous move of one market between two snapshots."""

    slug: str
    title: str
    old_price: float
    new_price: float
    price_delta: float
    old_volume: float
    new_volume: float
    volume_ratio: float
    direction: Direction
    is_price_spike: bool
    is_vol_spike: bool
    detected_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "slug": self.slug,
            "title": self.title,
            "oldPrice": self.old_price,
            "newPrice": self.new_price,
            "priceDelta": self.price_delta,
            "oldVolume": self.old_volume,
            "newVolume": self.new_volume,
            "volumeRatio": self.volume_ratio,
            "direction": self.direction.value,
            "isPriceSpike": self.is_price_spike,
            "isVolSpike": self.is_vol_spike,
            "detectedAt": self.detected_at.isoformat() if self.detected_at else None,
        }


@dataclass(frozen=True)
class TradeProposal:
    """A candidate trade emitted by a strategy, not yet committed.

    ``side`` is ``None`` for the two-legged arb proxy, which carries both
    ``yes_price`` and ``no_price`` instead of a single ``price``.
    """

    strategy: StrategyName
    slug: str
    title: str
    side: Side | None
    price: float
    size_pct: float
    reason: str = ""
    size_cap: float | None = None
    yes_price: float | None = None
    no_price: float | None = None

    @property
    def is_pair(self) -> bool:
        return self.side is None

    def legs(self) -> list[tuple[Side, float]]:
        if self.side is not None:
            return [(self.side, self.price)]
        assert self.yes_price is not None and self.no_price is not None
        return [(Side.YES, self.yes_price), (Side.NO, self.no_price)]


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------


@dataclass
class Position:
    """An open holding of one side of one market, owned by one strategy."""

    position_id: str
    strategy: StrategyName
    market_slug: str
    question: str
    side: Side
    entry_price: float
    current_price: float
    shares: float
    cost: float
    opened_at: datetime
    status: PositionStatus = PositionStatus.OPEN
    reason: str = ""
    auto_bet: bool = False

    @property
    def mark_price(self) -> float:
        return self.current_price or self.entry_price

    @property
    def market_value(self) -> float:
        return self.shares * self.mark_price

    def to_dict(self) -> dict:
        return {
            "id": self.position_id,
            "strategy": self.strategy.value,
            "marketSlug": self.market_slug,
            "question": self.question,
            "side": self.side.value,
            "entryPrice": self.entry_price,
            "currentPrice": self.current_price,
            "shares": self.shares,
            "cost": self.cost,
            "openedAt": self.opened_at.isoformat(),
            "status": self.status.value,
            "reason": self.reason,
            "autoBet": self.auto_bet,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Position:
        return cls(
            position_id=d["id"],
            strategy=StrategyName(d.get("strategy") or StrategyName.MOMENTUM.value),
            market_slug=d["marketSlug"],
            question=d.get("question") or d["marketSlug"],
            side=Side(d["side"].upper()),
            entry_price=float(d["entryPrice"]),
            current_price=float(d.get("currentPrice") or d["entryPrice"]),
            shares=float(d["shares"]),
            cost=float(d["cost"]),
            opened_at=datetime.fromisoformat(d["openedAt"]),
            status=PositionStatus(d.get("status", "open")),
            reason=d.get("reason", ""),
            auto_bet=bool(d.get("autoBet", False)),
        )


@dataclass(frozen=True)
class ClosedRecord:
    """A position after closure. Never mutated once created."""

    position: Position
    exit_price: float
    proceeds: float
    pnl: float
    closed_at: datetime
    status: PositionStatus

    @property
    def strategy(self) -> StrategyName:
        return self.position.strategy

    @property
    def is_win(self) -> bool:
        return self.pnl > 0

    def to_dict(self) -> dict:
        d = self.position.to_dict()
        d.update(
            {
                "exitPrice": self.exit_price,
                "proceeds": self.proceeds,
                "pnl": self.pnl,
                "closedAt": self.closed_at.isoformat(),
                "status": self.status.value,
            }
        )
        return d

    @classmethod
    def from_dict(cls, d: dict) -> ClosedRecord:
        status = PositionStatus(d["status"])
        position = replace(Position.from_dict({**d, "status": "open"}), status=status)
        return cls(
            position=position,
            exit_price=float(d["exitPrice"]),
            proceeds=float(d["proceeds"]),
            pnl=float(d["pnl"]),
            closed_at=datetime.fromisoformat(d["closedAt"]),
            status=status,
        )


# ---------------------------------------------------------------------------
# Ledger / metrics
# ---------------------------------------------------------------------------


@dataclass
class EquityPoint:
    """One equity-curve observation.

    Live curves key points by calendar date (``YYYY-MM-DD``), one per day.
    Backtest curves hold one point per executed trade, dated with the market's
    end date, after an opening point dated ``start``.
    """

    date: str
    equity: float

    def to_dict(self) -> dict:
        return {"date": self.date, "equity": self.equity}

    @classmethod
    def from_dict(cls, d: dict) -> EquityPoint:
        return cls(date=str(d["date"]), equity=float(d["equity"]))


@dataclass
class StrategyStats:
    """Performance summary of one strategy ledger."""

    name: StrategyName
    cash: float
    initial_cash: float
    total_equity: float
    open_value: float
    open_cost: float
    unrealized_pnl: float
    realized_pnl: float
    total_pnl: float
    roi: float
    wins: int
    losses: int
    win_rate: float | None
    trades: int
    sharpe: float | None
    open_positions: int


# ---------------------------------------------------------------------------
# Backtesting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HistoricalMarket:
    """A resolved market from the historical corpus."""

    slug: str
    title: str
    end_date: datetime
    last_trade_price: float
    one_day_price_change: float
    volume: float
    liquidity: float
    outcome: Side
    yes_token_id: str | None = None


@dataclass(frozen=True)
class EntryPoint:
    """The information a strategy may see when deciding on a historical market.

    ``price`` is the YES price at the moment of entry and ``delta`` the
    trailing one-period YES move used as the momentum signal. ``price`` must
    never be the resolution-adjacent price itself.
    """

    market: HistoricalMarket
    price: float
    delta: float


@dataclass
class BacktestTrade:
    """One executed leg in a backtest."""

    strategy: StrategyName
    slug: str
    title: str
    side: Side
    entry_price: float
    shares: float
    cost: float
    payout: float
    pnl: float
    outcome: Side
    end_date: str

    @property
    def won(self) -> bool:
        return self.side == self.outcome

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy.value,
            "slug": self.slug,
            "title": self.title,
            "side": self.side.value,
            "entryPrice": self.entry_price,
            "shares": self.shares,
            "cost": self.cost,
            "payout": self.payout,
            "pnl": self.pnl,
            "outcome": self.outcome.value,
            "won": self.won,
            "endDate": self.end_date,
        }


@dataclass
class BacktestResult:
    """Complete results of one strategy's replay."""

    strategy: StrategyName
    initial_cash: float
    final_cash: float
    trades: list[BacktestTrade]
    equity_curve: list[EquityPoint]
    metrics: dict[str, float | None]
    event_log: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy.value,
            "initialCash": self.initial_cash,
            "finalCash": self.final_cash,
            "metrics": self.metrics,
            "trades": [t.to_dict() for t in self.trades],
            "equityCurve": [p.to_dict() for p in self.equity_curve],
        }
