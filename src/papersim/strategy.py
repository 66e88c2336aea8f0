"""Abstract Strategy base class for the multi-strategy simulator.

A strategy is a pure rule set. It never touches cash or positions: it reads a
:class:`StrategyContext` (live) or an :class:`EntryPoint` (backtest) and emits
:class:`TradeProposal` objects that the position manager or the replayer
executes. The closed set of variants is built by
:func:`src.papersim.strategies.build_strategy`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from src.papersim.classifier import is_sports_market
from src.papersim.config import SimConfig
from src.papersim.errors import InvalidStrategy
from src.papersim.models import (
    EntryPoint,
    MarketObservation,
    Side,
    Signal,
    Snapshot,
    StrategyName,
    TradeProposal,
)


@dataclass(frozen=True)
class StrategyContext:
    """Everything a live strategy may look at in one auto-bet run."""

    signals: Sequence[Signal] = ()
    snapshot: Snapshot | None = None

    @property
    def markets(self) -> list[MarketObservation]:
        """Priced markets of the latest snapshot, in snapshot order."""
        if self.snapshot is None:
            return []
        return [m for m in self.snapshot.markets if m.price is not None]


def parse_strategy(name: str) -> StrategyName:
    """Map a user-supplied name onto the closed strategy set."""
    try:
        return StrategyName(name)
    except ValueError:
        raise InvalidStrategy(name, [s.value for s in StrategyName]) from None


class Strategy(ABC):
    """Base class for the five rule sets.

    Subclasses set ``name`` and ``description`` and implement ``propose()``
    for live snapshots/signals and ``propose_historical()`` for a single
    backtest entry. Sizing comes from ``config.sizing[name]``.
    """

    name: StrategyName
    description: str = ""
    excludes_sports: bool = True

    def __init__(self, config: SimConfig | None = None):
        self.config = config or SimConfig()

    @property
    def size_pct(self) -> float:
        return self.config.sizing[self.name].size_pct

    @property
    def size_cap(self) -> float | None:
        return self.config.sizing[self.name].cap

    def make_proposal(self, slug: str, title: str, side: Side, price: float, reason: str) -> TradeProposal:
        return TradeProposal(
            strategy=self.name,
            slug=slug,
            title=title,
            side=side,
            price=price,
            size_pct=self.size_pct,
            reason=reason,
            size_cap=self.size_cap,
        )

    def eligible(self, title: str) -> bool:
        """Whether a market title is inside this strategy's universe."""
        return not (self.excludes_sports and is_sports_market(title))

    def limit(self, proposals: list[TradeProposal]) -> list[TradeProposal]:
        cap = self.config.max_proposals.get(self.name)
        return proposals[:cap] if cap is not None else proposals

    # -- Rule hooks --

    @abstractmethod
    def propose(self, context: StrategyContext) -> list[TradeProposal]:
        """Evaluate live market state and return trade proposals."""
        ...

    @abstractmethod
    def propose_historical(self, entry: EntryPoint) -> list[TradeProposal]:
        """Evaluate one historical entry point and return trade proposals."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name.value!r})"
