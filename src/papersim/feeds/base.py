"""Abstract interface for market data providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from src.papersim.models import MarketRecord


class MarketDataProvider(ABC):
    """Source of current market state and resolved-market history.

    Implementations raise :class:`~src.papersim.errors.ProviderUnavailable`
    on transport failures and return ``None``/empty results when the market
    simply doesn't exist.
    """

    @abstractmethod
    def fetch_market(self, slug: str) -> MarketRecord | None:
        """Return one market by slug, or None if the provider doesn't know it."""
        ...

    @abstractmethod
    def fetch_active_markets(self, page_size: int = 100) -> list[MarketRecord]:
        """Return every active, unclosed market (paging until exhausted)."""
        ...

    @abstractmethod
    def fetch_closed_markets(self, limit: int = 1000, page_size: int = 100) -> list[dict]:
        """Return up to ``limit`` raw closed-market objects, highest volume first."""
        ...

    @abstractmethod
    def fetch_price_history(self, token_id: str) -> list[tuple[datetime, float]]:
        """Return the (timestamp, price) history of one outcome token, oldest first."""
        ...

    def search(self, query: str, limit: int = 10) -> list[MarketRecord]:
        """Active markets whose title or slug contains every word of ``query``."""
        words = query.lower().split()
        hits = []
        for record in self.fetch_active_markets():
            text = f"{record.title} {record.slug}".lower()
            if all(w in text for w in words):
                hits.append(record)
        hits.sort(key=lambda r: r.volume, reverse=True)
        return hits[:limit]
