"""Arbitrage proxy.

This is a labelled heuristic, not an arbitrage detector. Binary markets on the
Gamma API always quote YES + NO = 1, so no real spread is observable there.
The proxy buys both legs of thin, near-50/50 markets and books a synthetic
``arb_edge`` discount on the pair to stand in for the CLOB spread such
markets tend to show.
"""

from __future__ import annotations

from src.papersim.models import EntryPoint, StrategyName, TradeProposal
from src.papersim.strategy import Strategy, StrategyContext


class ArbProxyStrategy(Strategy):
    name = StrategyName.ARB
    description = "Heuristic arb proxy: buy both legs of thin 50/50 markets"
    excludes_sports = False

    def _pair(self, slug: str, title: str, yes_price: float, note: str) -> TradeProposal:
        yes_leg = self.config.arb_leg_price(yes_price)
        no_leg = self.config.arb_leg_price(1.0 - yes_price)
        reason = (
            f"arb proxy: YES={yes_price * 100:.1f}¢ NO={(1.0 - yes_price) * 100:.1f}¢, {note}, "
            f"synthetic edge {self.config.arb_edge:.0%}"
        )
        return TradeProposal(
            strategy=self.name,
            slug=slug,
            title=title,
            side=None,
            price=yes_leg,
            size_pct=self.size_pct,
            reason=reason,
            size_cap=self.size_cap,
            yes_price=yes_leg,
            no_price=no_leg,
        )

    def propose(self, context: StrategyContext) -> list[TradeProposal]:
        lo, hi = self.config.arb_live_band
        proposals = []
        for m in context.markets:
            price = m.price
            assert price is not None
            if m.liquidity < self.config.arb_max_liquidity and lo <= price <= hi:
                proposals.append(self._pair(m.slug, m.title, price, f"low liquidity (${m.liquidity:,.0f})"))
        return self.limit(proposals)

    def propose_historical(self, entry: EntryPoint) -> list[TradeProposal]:
        lo, hi = self.config.arb_backtest_band
        vol_lo, vol_hi = self.config.arb_volume_band
        market = entry.market
        if not (lo <= entry.price <= hi and vol_lo <= market.volume < vol_hi):
            return []
        return [self._pair(market.slug, market.title, entry.price, f"volume ${market.volume:,.0f}")]
