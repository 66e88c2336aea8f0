"""Momentum: follow large price moves."""

from __future__ import annotations

from src.papersim.models import Direction, EntryPoint, Side, StrategyName, TradeProposal
from src.papersim.strategy import Strategy, StrategyContext


class MomentumStrategy(Strategy):
    """Buy the side a price spike moved towards.

    An UP spike buys YES at the new YES price, a DOWN spike buys NO at
    ``1 - new price``.
    """

    name = StrategyName.MOMENTUM
    description = "Follow price spikes above the spike threshold"

    def choose(self, direction: Direction, yes_price: float) -> tuple[Side, float]:
        if direction is Direction.UP:
            return Side.YES, yes_price
        return Side.NO, 1.0 - yes_price

    def reason(self, old_price: float, new_price: float, direction: Direction) -> str:
        delta = (new_price - old_price) * 100
        return f"momentum: price {old_price * 100:.1f}¢ -> {new_price * 100:.1f}¢ ({delta:+.1f}pt)"

    def propose(self, context: StrategyContext) -> list[TradeProposal]:
        proposals = []
        for sig in context.signals:
            if not sig.is_price_spike or sig.direction is Direction.FLAT:
                continue
            if not self.eligible(sig.title):
                continue
            side, price = self.choose(sig.direction, sig.new_price)
            proposals.append(
                self.make_proposal(
                    sig.slug,
                    sig.title,
                    side,
                    price,
                    self.reason(sig.old_price, sig.new_price, sig.direction),
                )
            )
        return proposals

    def propose_historical(self, entry: EntryPoint) -> list[TradeProposal]:
        if abs(entry.delta) <= self.config.price_spike_threshold:
            return []
        market = entry.market
        if not self.eligible(market.title):
            return []
        direction = Direction.of(entry.delta)
        side, price = self.choose(direction, entry.price)
        reason = self.reason(entry.price - entry.delta, entry.price, direction)
        return [self.make_proposal(market.slug, market.title, side, price, reason)]
