from src.papersim.feeds.base import MarketDataProvider
from src.papersim.feeds.gamma import GammaProvider
from src.papersim.feeds.historical import HistoricalFeed, historical_from_gamma

__all__ = ["GammaProvider", "HistoricalFeed", "MarketDataProvider", "historical_from_gamma"]
