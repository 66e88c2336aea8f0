"""Simulator configuration.

Every threshold the engine uses lives on :class:`SimConfig` so that tests and
alternative runs can construct their own instead of patching module state.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

from src.papersim.models import StrategyName

GAMMA_API = "https://gamma-api.polymarket.com"
CLOB_API = "https://clob.polymarket.com"


@dataclass(frozen=True)
class Sizing:
    """Fixed-fraction position sizing for one strategy.

    ``size_pct`` is the share of the strategy's current cash committed per
    proposal, ``cap`` an optional dollar ceiling.
    """

    size_pct: float
    cap: float | None = None


def _default_sizing() -> dict[StrategyName, Sizing]:
    return {
        StrategyName.MOMENTUM: Sizing(0.05, 200.0),
        StrategyName.CONTRARIAN: Sizing(0.05, 200.0),
        StrategyName.STATUS_QUO: Sizing(0.05),
        StrategyName.CHEAP_CONTRACTS: Sizing(0.01, 100.0),
        StrategyName.ARB: Sizing(0.03),
    }


def _default_max_proposals() -> dict[StrategyName, int]:
    return {
        StrategyName.STATUS_QUO: 5,
        StrategyName.CHEAP_CONTRACTS: 5,
        StrategyName.ARB: 3,
    }


@dataclass(frozen=True)
class SimConfig:
    initial_cash: float = 2_000.0

    # Signal detection
    price_spike_threshold: float = 0.10
    volume_spike_threshold: float = 2.0

    # Execution guards
    min_price: float = 0.01
    cheap_min_price: float = 0.0001
    max_price: float = 0.99
    max_bet_fraction: float = 0.5
    min_bet: float = 1.0

    # Strategy rules
    sizing: dict[StrategyName, Sizing] = field(default_factory=_default_sizing)
    max_proposals: dict[StrategyName, int] = field(default_factory=_default_max_proposals)
    status_quo_band: tuple[float, float] = (0.10, 0.40)
    cheap_max_price: float = 0.05
    arb_live_band: tuple[float, float] = (0.45, 0.55)
    arb_max_liquidity: float = 5_000.0
    arb_backtest_band: tuple[float, float] = (0.40, 0.60)
    arb_volume_band: tuple[float, float] = (5_000.0, 50_000.0)
    arb_edge: float = 0.02

    # Backtest
    backtest_min_entry: float = 0.01
    backtest_max_entry: float = 0.99
    sharpe_clamp: float = 10.0

    # Store / provider
    data_dir: Path = Path("data")
    gamma_url: str = GAMMA_API
    clob_url: str = CLOB_API
    request_timeout: float = 15.0

    @property
    def strategies(self) -> tuple[StrategyName, ...]:
        return tuple(StrategyName)

    @property
    def total_initial(self) -> float:
        return self.initial_cash * len(self.strategies)

    def min_price_for(self, strategy: StrategyName) -> float:
        """Exclusive price floor applied to a strategy's proposals."""
        if strategy is StrategyName.CHEAP_CONTRACTS:
            return self.cheap_min_price
        return self.min_price

    def arb_leg_price(self, price: float) -> float:
        """Leg price after the synthetic spread edge, split across both legs."""
        return price * (1.0 - self.arb_edge / 2.0)

    def with_data_dir(self, data_dir: Path | str) -> SimConfig:
        return replace(self, data_dir=Path(data_dir))
