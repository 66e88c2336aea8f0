"""Smoke tests for the plotting module."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from src.papersim.backtest import Replayer
from src.papersim.config import SimConfig
from src.papersim.logger import SimLogger
from src.papersim.models import BacktestResult, EquityPoint, Side, StrategyName
from src.papersim.plotting import equity_frame, plot_results
from tests.helpers import T0, historical


def _results() -> dict[StrategyName, BacktestResult]:
    """Replay a small synthetic corpus with winners, losers and an arb pair."""
    markets = []
    for i in range(30):
        end = T0 + timedelta(days=i)
        if i % 3 == 0:
            markets.append(historical(f"up{i}", 0.97, 0.30, Side.YES, end=end))
        elif i % 3 == 1:
            markets.append(historical(f"down{i}", 0.04, -0.25, Side.YES, end=end))
        else:
            markets.append(historical(f"arb{i}", 0.50, 0.02, Side.NO, end=end, volume=10_000.0))
    return Replayer(SimConfig(), logger=SimLogger(print_live=False)).run(markets)


class TestEquityFrame:
    def test_columns_and_drawdown(self) -> None:
        result = BacktestResult(
            strategy=StrategyName.MOMENTUM,
            initial_cash=100.0,
            final_cash=90.0,
            trades=[],
            equity_curve=[EquityPoint("start", 100.0), EquityPoint("a", 120.0), EquityPoint("b", 90.0)],
            metrics={},
        )
        df = equity_frame(result)
        assert list(df["index"]) == [0, 1, 2]
        assert list(df["date"]) == ["start", "a", "b"]
        assert df["eq_plot"].tolist() == pytest.approx([1.0, 1.2, 0.9])
        assert df["drawdown_pct"].tolist() == pytest.approx([0.0, 0.0, 0.25])

    def test_absolute(self) -> None:
        result = BacktestResult(
            strategy=StrategyName.ARB,
            initial_cash=100.0,
            final_cash=100.0,
            trades=[],
            equity_curve=[EquityPoint("start", 100.0)],
            metrics={},
        )
        assert equity_frame(result, relative=False)["eq_plot"].tolist() == [100.0]


class TestPlotResults:
    def test_plot_full(self, tmp_path: Path) -> None:
        target = tmp_path / "full"
        fig = plot_results(_results(), filename=str(target), open_browser=False)
        assert fig is not None
        assert (tmp_path / "full.html").exists()

    def test_plot_absolute_equity_without_drawdown(self, tmp_path: Path) -> None:
        target = tmp_path / "absolute.html"
        fig = plot_results(
            _results(), filename=str(target), relative_equity=False, plot_drawdown=False, open_browser=False
        )
        assert fig is not None
        assert target.exists()

    def test_plot_empty_results(self, tmp_path: Path) -> None:
        results = Replayer(SimConfig(), logger=SimLogger(print_live=False)).run([])
        fig = plot_results(results, filename=str(tmp_path / "empty"), open_browser=False, plot_width=800)
        assert fig is not None
