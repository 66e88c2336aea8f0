"""The closed set of strategy variants."""

from __future__ import annotations

from src.papersim.config import SimConfig
from src.papersim.models import StrategyName
from src.papersim.strategies.arb import ArbProxyStrategy
from src.papersim.strategies.cheap_contracts import CheapContractsStrategy
from src.papersim.strategies.contrarian import ContrarianStrategy
from src.papersim.strategies.momentum import MomentumStrategy
from src.papersim.strategies.status_quo import StatusQuoStrategy
from src.papersim.strategy import Strategy


def build_strategy(name: StrategyName, config: SimConfig | None = None) -> Strategy:
    match name:
        case StrategyName.MOMENTUM:
            return MomentumStrategy(config)
        case StrategyName.CONTRARIAN:
            return ContrarianStrategy(config)
        case StrategyName.STATUS_QUO:
            return StatusQuoStrategy(config)
        case StrategyName.CHEAP_CONTRACTS:
            return CheapContractsStrategy(config)
        case StrategyName.ARB:
            return ArbProxyStrategy(config)
    raise AssertionError(f"unhandled strategy {name!r}")


def build_strategies(config: SimConfig | None = None) -> list[Strategy]:
    """One instance per strategy, in canonical order."""
    config = config or SimConfig()
    return [build_strategy(name, config) for name in config.strategies]


__all__ = [
    "ArbProxyStrategy",
    "CheapContractsStrategy",
    "ContrarianStrategy",
    "MomentumStrategy",
    "StatusQuoStrategy",
    "build_strategies",
    "build_strategy",
]
