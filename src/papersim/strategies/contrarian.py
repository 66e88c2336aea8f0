"""Contrarian: fade large price moves."""

from __future__ import annotations

from src.papersim.models import Direction, Side, StrategyName
from src.papersim.strategies.momentum import MomentumStrategy


class ContrarianStrategy(MomentumStrategy):
    """Same trigger as momentum, opposite side at the complementary price."""

    name = StrategyName.CONTRARIAN
    description = "Fade price spikes above the spike threshold"

    def choose(self, direction: Direction, yes_price: float) -> tuple[Side, float]:
        if direction is Direction.UP:
            return Side.NO, 1.0 - yes_price
        return Side.YES, yes_price

    def reason(self, old_price: float, new_price: float, direction: Direction) -> str:
        return f"contrarian: fading {direction.value} move ({old_price * 100:.1f}¢ -> {new_price * 100:.1f}¢)"
