"""Cheap contracts: small lottery-ticket bets on long shots."""

from __future__ import annotations

from src.papersim.models import EntryPoint, Side, StrategyName, TradeProposal
from src.papersim.strategy import Strategy, StrategyContext


class CheapContractsStrategy(Strategy):
    name = StrategyName.CHEAP_CONTRACTS
    description = "Buy YES below 5¢ with 1% lottery sizing"

    def _matches(self, title: str, yes_price: float) -> bool:
        return 0.0 < yes_price < self.config.cheap_max_price and self.eligible(title)

    def _proposal(self, slug: str, title: str, yes_price: float) -> TradeProposal:
        reason = f"cheap contract: {yes_price * 100:.1f}¢, lottery ticket bet"
        return self.make_proposal(slug, title, Side.YES, yes_price, reason)

    def propose(self, context: StrategyContext) -> list[TradeProposal]:
        candidates = [m for m in context.markets if self._matches(m.title, m.price)]  # type: ignore[arg-type]
        # Cheapest first; sorted() is stable so ties keep snapshot order.
        candidates = sorted(candidates, key=lambda m: m.price)  # type: ignore[arg-type, return-value]
        return self.limit([self._proposal(m.slug, m.title, m.price) for m in candidates])  # type: ignore[arg-type]

    def propose_historical(self, entry: EntryPoint) -> list[TradeProposal]:
        market = entry.market
        if not self._matches(market.title, entry.price):
            return []
        return [self._proposal(market.slug, market.title, entry.price)]
