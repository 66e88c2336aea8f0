"""Polymarket Gamma/CLOB HTTP provider.

Public endpoints only; no auth or environment variables required.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from datetime import datetime, timezone

from src.papersim.config import SimConfig
from src.papersim.errors import ProviderUnavailable
from src.papersim.feeds.base import MarketDataProvider
from src.papersim.models import MarketRecord

__all__ = ["GammaProvider"]

_UA = "polymarket-paper-sim/0.1"


class GammaProvider(MarketDataProvider):
    def __init__(self, config: SimConfig | None = None):
        self.config = config or SimConfig()
        self.gamma_url = self.config.gamma_url.rstrip("/")
        self.clob_url = self.config.clob_url.rstrip("/")
        self.timeout = self.config.request_timeout

    def _get(self, url: str) -> dict | list | None:
        """GET JSON from a URL. 404 is None; any other failure is ProviderUnavailable."""
        req = urllib.request.Request(url)
        req.add_header("Accept", "application/json")
        req.add_header("User-Agent", _UA)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return json.loads(resp.read())
        except urllib.error.HTTPError as exc:
            if exc.code == 404:
                return None
            raise ProviderUnavailable(f"GET {url} failed: HTTP {exc.code}") from exc
        except (urllib.error.URLError, TimeoutError, OSError) as exc:
            raise ProviderUnavailable(f"GET {url} failed: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ProviderUnavailable(f"GET {url} returned invalid JSON") from exc

    def _markets_url(self, **params: object) -> str:
        return f"{self.gamma_url}/markets?{urllib.parse.urlencode(params)}"

    def fetch_market(self, slug: str) -> MarketRecord | None:
        data = self._get(self._markets_url(slug=slug))
        if isinstance(data, list) and data:
            return MarketRecord.from_gamma(data[0])
        data = self._get(f"{self.gamma_url}/markets/{urllib.parse.quote(slug)}")
        if isinstance(data, dict) and data:
            return MarketRecord.from_gamma(data)
        return None

    def _paged(self, limit: int | None, page_size: int, **params: object) -> list[dict]:
        rows: list[dict] = []
        offset = 0
        while limit is None or len(rows) < limit:
            size = page_size if limit is None else min(page_size, limit - len(rows))
            batch = self._get(self._markets_url(limit=size, offset=offset, **params))
            if not isinstance(batch, list) or not batch:
                break
            rows.extend(batch)
            offset += len(batch)
            if len(batch) < size:
                break
        return rows

    def fetch_active_markets(self, page_size: int = 100) -> list[MarketRecord]:
        rows = self._paged(None, page_size, closed="false", active="true")
        return [MarketRecord.from_gamma(r) for r in rows]

    def fetch_closed_markets(self, limit: int = 1000, page_size: int = 100) -> list[dict]:
        return self._paged(limit, page_size, closed="true", order="volumeNum", ascending="false")

    def fetch_price_history(self, token_id: str) -> list[tuple[datetime, float]]:
        query = urllib.parse.urlencode({"market": token_id, "interval": "max", "fidelity": 60})
        data = self._get(f"{self.clob_url}/prices-history?{query}")
        points = data.get("history", []) if isinstance(data, dict) else []
        history = []
        for pt in points:
            try:
                ts = datetime.fromtimestamp(int(pt["t"]), tz=timezone.utc).replace(tzinfo=None)
                history.append((ts, float(pt["p"])))
            except (KeyError, TypeError, ValueError):
                continue
        history.sort(key=lambda x: x[0])
        return history

    def search(self, query: str, limit: int = 10) -> list[MarketRecord]:
        """Server-side text search, falling back to filtering active markets."""
        params = {"q": query, "limit_per_type": limit, "events_status": "active"}
        data = self._get(f"{self.gamma_url}/public-search?{urllib.parse.urlencode(params)}")
        records: list[MarketRecord] = []
        if isinstance(data, dict):
            for event in data.get("events") or []:
                for raw in event.get("markets") or []:
                    records.append(MarketRecord.from_gamma(raw))
        if records:
            return records[:limit]
        return super().search(query, limit)
