"""Exception hierarchy for simulator commands."""

from __future__ import annotations


class SimError(Exception):
    """Base class for every failure a command can surface to the user."""


class MarketNotFound(SimError):
    def __init__(self, slug: str):
        super().__init__(f"Market not found: {slug}")
        self.slug = slug


class InvalidPrice(SimError):
    def __init__(self, price: float | None, detail: str = ""):
        msg = f"Invalid price {price!r}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)
        self.price = price


class InsufficientBalance(SimError):
    def __init__(self, strategy: str, cash: float, amount: float):
        super().__init__(f"Insufficient balance for [{strategy}]. Have ${cash:,.2f}, need ${amount:,.2f}")
        self.strategy = strategy
        self.cash = cash
        self.amount = amount


class InvalidStrategy(SimError):
    def __init__(self, name: str, choices: list[str]):
        super().__init__(f"Invalid strategy: {name}. Choose from: {', '.join(choices)}")
        self.name = name


class PositionNotFound(SimError):
    def __init__(self, position_id: str):
        super().__init__(f"Position not found: {position_id}")
        self.position_id = position_id


class ProviderUnavailable(SimError):
    """The market data provider could not be reached or returned garbage."""


class StoreConflict(SimError):
    """Another writer committed to the store during this command."""
