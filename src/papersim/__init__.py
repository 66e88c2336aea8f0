"""Multi-strategy paper trading simulator for prediction markets.

Runs five fixed strategies against live Polymarket snapshots with fake
capital, and replays the same rules over resolved markets with bias-free
entry pricing.
"""

from src.papersim.backtest import Replayer, run_case_study
from src.papersim.config import SimConfig, Sizing
from src.papersim.errors import (
    InsufficientBalance,
    InvalidPrice,
    InvalidStrategy,
    MarketNotFound,
    PositionNotFound,
    ProviderUnavailable,
    SimError,
    StoreConflict,
)
from src.papersim.lifecycle import PositionManager
from src.papersim.logger import SimLogger
from src.papersim.models import (
    BacktestResult,
    ClosedRecord,
    MarketRecord,
    Position,
    PositionStatus,
    Side,
    Signal,
    Snapshot,
    StrategyName,
    TradeProposal,
)
from src.papersim.portfolio import Ledger, Portfolio
from src.papersim.simulator import Simulator
from src.papersim.store import JsonStore
from src.papersim.strategy import Strategy, StrategyContext

__all__ = [
    "BacktestResult",
    "ClosedRecord",
    "InsufficientBalance",
    "InvalidPrice",
    "InvalidStrategy",
    "JsonStore",
    "Ledger",
    "MarketNotFound",
    "MarketRecord",
    "Portfolio",
    "Position",
    "PositionManager",
    "PositionNotFound",
    "PositionStatus",
    "ProviderUnavailable",
    "Replayer",
    "Side",
    "Signal",
    "SimConfig",
    "SimError",
    "SimLogger",
    "Simulator",
    "Sizing",
    "Snapshot",
    "StoreConflict",
    "Strategy",
    "StrategyContext",
    "StrategyName",
    "TradeProposal",
    "run_case_study",
]
