"""First-time setup smoke tests.

These tests verify that the project is correctly installed and ready to use.
They are deliberately simple: if any of them fail, the user knows exactly
which part of the setup is broken.

Failure modes caught here:
  * Missing Python dependency  (ImportError on runtime packages)
  * Broken module structure    (ImportError on internal modules)
  * Strategy registry broken   (a strategy name with no implementation)
"""

from __future__ import annotations

import importlib

import pytest

from src.papersim.models import StrategyName

# ---------------------------------------------------------------------------
# Import checks
# ---------------------------------------------------------------------------


class TestImports:
    """All public modules must be importable after `pip install -e .[test]`."""

    def test_models_importable(self) -> None:
        from src.papersim.models import (  # noqa: F401
            BacktestResult,
            ClosedRecord,
            HistoricalMarket,
            MarketRecord,
            Position,
            Side,
            Signal,
            Snapshot,
            TradeProposal,
        )

    def test_strategy_base_importable(self) -> None:
        from src.papersim.strategy import Strategy, StrategyContext  # noqa: F401

    def test_feeds_importable(self) -> None:
        from src.papersim.feeds import GammaProvider, HistoricalFeed, MarketDataProvider  # noqa: F401

    def test_metrics_importable(self) -> None:
        from src.papersim.metrics import compute_stats, sharpe_ratio  # noqa: F401

    def test_plotting_importable(self) -> None:
        import src.papersim.plotting  # noqa: F401

    def test_simulator_importable(self) -> None:
        from src.papersim.simulator import Simulator  # noqa: F401

    def test_cli_importable(self) -> None:
        import main

        assert callable(main.main)


# ---------------------------------------------------------------------------
# Runtime dependencies
# ---------------------------------------------------------------------------


class TestRuntimeDependencies:
    """All packages listed in pyproject.toml's [project.dependencies] must be importable."""

    @pytest.mark.parametrize(
        "package",
        [
            "bokeh",
            "duckdb",
            "numpy",
            "pandas",
            "pyarrow",
            "simple_term_menu",
            "tqdm",
        ],
    )
    def test_dependency_importable(self, package: str) -> None:
        try:
            importlib.import_module(package)
        except ImportError:
            pytest.fail(f"Required dependency '{package}' is not installed.\nFix: pip install -e .")


# ---------------------------------------------------------------------------
# Registry smoke test
# ---------------------------------------------------------------------------


class TestStrategyRegistry:
    def test_every_name_builds(self) -> None:
        from src.papersim.config import SimConfig
        from src.papersim.strategies import build_strategies

        strategies = build_strategies(SimConfig())
        assert [s.name for s in strategies] == list(StrategyName)
        assert all(s.description for s in strategies)
