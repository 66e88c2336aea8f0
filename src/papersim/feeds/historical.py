"""Historical resolved-market corpus stored as parquet and queried with DuckDB."""

from __future__ import annotations

import json
import math
from datetime import datetime
from pathlib import Path

import duckdb
import pandas as pd

from src.papersim.models import HistoricalMarket, Side

MARKET_COLUMNS = [
    "slug",
    "title",
    "end_date",
    "last_trade_price",
    "one_day_price_change",
    "volume",
    "liquidity",
    "outcome",
    "yes_token_id",
]


def _json_list(value: object) -> list:
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def _float(value: object) -> float | None:
    try:
        f = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def _parse_date(value: object) -> datetime | None:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt.replace(tzinfo=None)


def historical_from_gamma(raw: dict) -> HistoricalMarket | None:
    """Build a corpus row from a closed Gamma market, or None if unusable.

    Keeps binary YES/NO markets whose final outcome prices name a winner
    (one side at or above 0.99) and that report a last trade price and
    a one-day price change. Without the change the only entry price left is
    the resolution-adjacent last trade.
    """
    outcomes = [str(o).upper() for o in _json_list(raw.get("outcomes"))]
    prices = [_float(p) for p in _json_list(raw.get("outcomePrices"))]
    if sorted(outcomes) != ["NO", "YES"] or len(prices) != 2 or None in prices:
        return None

    final = dict(zip(outcomes, prices))
    if final["YES"] >= 0.99:  # type: ignore[operator]
        outcome = Side.YES
    elif final["NO"] >= 0.99:  # type: ignore[operator]
        outcome = Side.NO
    else:
        return None

    last = _float(raw.get("lastTradePrice"))
    change = _float(raw.get("oneDayPriceChange"))
    end_date = _parse_date(raw.get("endDate") or raw.get("closedTime"))
    if last is None or change is None or end_date is None:
        return None

    tokens = [str(t) for t in _json_list(raw.get("clobTokenIds"))]
    yes_token = tokens[outcomes.index("YES")] if len(tokens) == 2 else None

    return HistoricalMarket(
        slug=raw.get("slug") or str(raw.get("id")),
        title=raw.get("question") or raw.get("slug") or "",
        end_date=end_date,
        last_trade_price=last,
        one_day_price_change=change,
        volume=_float(raw.get("volumeNum", raw.get("volume"))) or 0.0,
        liquidity=_float(raw.get("liquidityNum", raw.get("liquidity"))) or 0.0,
        outcome=outcome,
        yes_token_id=yes_token,
    )


class HistoricalFeed:
    """Reads and writes the corpus under ``<data_dir>/history``.

    ``markets.parquet`` holds one row per resolved market; ``prices.parquet``
    holds YES price histories (slug, timestamp, price) fetched for case studies.
    """

    def __init__(self, history_dir: Path | str):
        self.history_dir = Path(history_dir)
        self._con: duckdb.DuckDBPyConnection | None = None

    @property
    def markets_path(self) -> Path:
        return self.history_dir / "markets.parquet"

    @property
    def prices_path(self) -> Path:
        return self.history_dir / "prices.parquet"

    def _get_con(self) -> duckdb.DuckDBPyConnection:
        """Return a shared DuckDB connection."""
        if self._con is None:
            self._con = duckdb.connect()
        return self._con

    def exists(self) -> bool:
        return self.markets_path.exists()

    # -- Writing --

    def write_markets(self, markets: list[HistoricalMarket]) -> Path:
        self.history_dir.mkdir(parents=True, exist_ok=True)
        df = pd.DataFrame(
            [
                {
                    "slug": m.slug,
                    "title": m.title,
                    "end_date": m.end_date,
                    "last_trade_price": m.last_trade_price,
                    "one_day_price_change": m.one_day_price_change,
                    "volume": m.volume,
                    "liquidity": m.liquidity,
                    "outcome": m.outcome.value,
                    "yes_token_id": m.yes_token_id,
                }
                for m in markets
            ],
            columns=MARKET_COLUMNS,
        )
        df["end_date"] = pd.to_datetime(df["end_date"])
        df.to_parquet(self.markets_path, index=False)
        return self.markets_path

    def write_prices(self, histories: dict[str, list[tuple[datetime, float]]]) -> Path:
        self.history_dir.mkdir(parents=True, exist_ok=True)
        rows = [
            {"slug": slug, "timestamp": ts, "price": price}
            for slug, points in histories.items()
            for ts, price in points
        ]
        df = pd.DataFrame(rows, columns=["slug", "timestamp", "price"])
        df["timestamp"] = pd.to_datetime(df["timestamp"])
        df.to_parquet(self.prices_path, index=False)
        return self.prices_path

    # -- Reading --

    def markets(self, limit: int | None = None) -> list[HistoricalMarket]:
        """Resolved markets in chronological order (end date, then slug)."""
        if not self.exists():
            return []
        limit_sql = f"LIMIT {int(limit)}" if limit else ""
        rows = (
            self._get_con()
            .execute(
                f"""
                SELECT slug, title, CAST(end_date AS TIMESTAMP) AS end_date, last_trade_price, one_day_price_change,
                       volume, liquidity, outcome, yes_token_id
                FROM read_parquet(?)
                ORDER BY end_date, slug
                {limit_sql}
                """,
                [str(self.markets_path)],
            )
            .fetchall()
        )
        return [
            HistoricalMarket(
                slug=slug,
                title=title or slug,
                end_date=end_date,
                last_trade_price=float(last) if last is not None else math.nan,
                one_day_price_change=float(change) if change is not None else math.nan,
                volume=float(volume or 0.0),
                liquidity=float(liquidity or 0.0),
                outcome=Side(outcome),
                yes_token_id=token,
            )
            for slug, title, end_date, last, change, volume, liquidity, outcome, token in rows
        ]

    def top_by_volume(self, n: int) -> list[HistoricalMarket]:
        """The ``n`` highest-volume markets, highest first."""
        return sorted(self.markets(), key=lambda m: (-m.volume, m.slug))[:n]

    def price_histories(self, slugs: list[str] | None = None) -> dict[str, list[tuple[datetime, float]]]:
        if not self.prices_path.exists():
            return {}
        where = ""
        params: list[str] = [str(self.prices_path)]
        if slugs:
            where = f"WHERE slug IN ({', '.join('?' for _ in slugs)})"
            params.extend(slugs)
        rows = (
            self._get_con()
            .execute(
                f"""
                SELECT slug, CAST(timestamp AS TIMESTAMP) AS timestamp, price
                FROM read_parquet(?)
                {where}
                ORDER BY slug, timestamp
                """,
                params,
            )
            .fetchall()
        )
        histories: dict[str, list[tuple[datetime, float]]] = {}
        for slug, ts, price in rows:
            histories.setdefault(slug, []).append((ts, float(price)))
        return histories
