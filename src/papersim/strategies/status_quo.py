"""Status quo: bet that "will X happen" markets don't happen."""

from __future__ import annotations

from src.papersim.classifier import is_will_question
from src.papersim.models import EntryPoint, Side, StrategyName, TradeProposal
from src.papersim.strategy import Strategy, StrategyContext


class StatusQuoStrategy(Strategy):
    name = StrategyName.STATUS_QUO
    description = "Buy NO on 'will X happen' markets priced 10-40¢ YES"

    def _matches(self, title: str, yes_price: float) -> bool:
        lo, hi = self.config.status_quo_band
        return lo <= yes_price <= hi and is_will_question(title) and self.eligible(title)

    def _proposal(self, slug: str, title: str, yes_price: float) -> TradeProposal:
        reason = f'status quo: "{title[:60]}" at {yes_price * 100:.1f}¢ YES, betting NO'
        return self.make_proposal(slug, title, Side.NO, 1.0 - yes_price, reason)

    def propose(self, context: StrategyContext) -> list[TradeProposal]:
        proposals = [
            self._proposal(m.slug, m.title, m.price)  # type: ignore[arg-type]
            for m in context.markets
            if self._matches(m.title, m.price)  # type: ignore[arg-type]
        ]
        return self.limit(proposals)

    def propose_historical(self, entry: EntryPoint) -> list[TradeProposal]:
        market = entry.market
        if not self._matches(market.title, entry.price):
            return []
        return [self._proposal(market.slug, market.title, entry.price)]
