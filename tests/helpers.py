"""Test doubles and record builders shared across the test suite."""

from __future__ import annotations

from datetime import datetime, timedelta

from src.papersim.errors import ProviderUnavailable
from src.papersim.feeds.base import MarketDataProvider
from src.papersim.models import HistoricalMarket, MarketObservation, MarketRecord, Side, Snapshot

T0 = datetime(2024, 3, 1, 12, 0, 0)


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeProvider(MarketDataProvider):
    """In-memory market data provider. No network."""

    def __init__(self) -> None:
        self.markets: dict[str, MarketRecord] = {}
        self.unavailable: set[str] = set()
        self.closed: list[dict] = []
        self.histories: dict[str, list[tuple[datetime, float]]] = {}
        self.down = False

    def add(self, record: MarketRecord) -> MarketRecord:
        self.markets[record.slug] = record
        return record

    def fetch_market(self, slug: str) -> MarketRecord | None:
        if self.down or slug in self.unavailable:
            raise ProviderUnavailable(f"GET {slug} failed: connection refused")
        return self.markets.get(slug)

    def fetch_active_markets(self, page_size: int = 100) -> list[MarketRecord]:
        if self.down:
            raise ProviderUnavailable("connection refused")
        return [m for m in self.markets.values() if not (m.closed or m.resolved)]

    def fetch_closed_markets(self, limit: int = 1000, page_size: int = 100) -> list[dict]:
        return self.closed[:limit]

    def fetch_price_history(self, token_id: str) -> list[tuple[datetime, float]]:
        if token_id not in self.histories:
            raise ProviderUnavailable(f"no history for {token_id}")
        return self.histories[token_id]


def market(
    slug: str,
    yes: float | None,
    title: str | None = None,
    *,
    volume: float = 10_000.0,
    liquidity: float = 20_000.0,
    resolved: bool = False,
    closed: bool = False,
    resolution: str | None = None,
) -> MarketRecord:
    """Binary YES/NO market record; ``yes=None`` leaves outcome data empty."""
    outcomes, prices = (["Yes", "No"], [yes, round(1.0 - yes, 6)]) if yes is not None else ([], [])
    return MarketRecord(
        slug=slug,
        title=title or f"Will {slug} happen?",
        outcomes=outcomes,
        outcome_prices=prices,
        resolved=resolved,
        closed=closed,
        resolution=resolution,
        volume=volume,
        liquidity=liquidity,
    )


def snapshot(ts: datetime, *rows: tuple) -> Snapshot:
    """Build a snapshot from ``(slug, title, price, volume[, liquidity])`` tuples."""
    markets = []
    for row in rows:
        slug, title, price, volume, *rest = row
        markets.append(
            MarketObservation(slug=slug, title=title, price=price, volume=volume, liquidity=rest[0] if rest else 0.0)
        )
    return Snapshot(timestamp=ts, markets=tuple(markets))


def historical(
    slug: str,
    last: float,
    change: float,
    outcome: Side,
    *,
    title: str | None = None,
    end: datetime | None = None,
    volume: float = 100_000.0,
    token: str | None = None,
) -> HistoricalMarket:
    return HistoricalMarket(
        slug=slug,
        title=title or f"Will {slug} happen?",
        end_date=end or T0,
        last_trade_price=last,
        one_day_price_change=change,
        volume=volume,
        liquidity=1_000.0,
        outcome=outcome,
        yes_token_id=token,
    )
