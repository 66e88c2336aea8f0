"""Bokeh charts for backtest results.

One equity line per strategy on a shared trade-ordinal axis, with a
drawdown panel underneath. Backtest curves hold one point per trade rather
than per date, so the x axis is the trade number.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from itertools import cycle
from typing import Any

import numpy as np
import pandas as pd  # type: ignore[import-untyped]
from bokeh.io import output_file, show
from bokeh.io.state import curstate
from bokeh.layouts import column
from bokeh.models import ColumnDataSource, HoverTool, Legend, NumeralTickFormatter, Span  # type: ignore[attr-defined]
from bokeh.palettes import Category10
from bokeh.plotting import figure as _figure

from src.papersim.models import BacktestResult, StrategyName


def _bokeh_reset(filename: str | None = None) -> None:
    """Reset Bokeh state and configure output target."""
    curstate().reset()
    if filename:
        if not filename.endswith(".html"):
            filename += ".html"
        output_file(filename, title=os.path.basename(filename))


def colorgen():
    """Yield an infinite cycle of Category10 colors."""
    yield from cycle(Category10[10])


def equity_frame(result: BacktestResult, relative: bool = True) -> pd.DataFrame:
    """Equity, relative equity and drawdown per curve point."""
    equity = pd.Series([p.equity for p in result.equity_curve], dtype=float)
    peak = equity.cummax()
    df = pd.DataFrame(
        {
            "index": np.arange(len(equity)),
            "date": [p.date for p in result.equity_curve],
            "equity": equity,
            "drawdown_pct": np.where(peak > 0, (peak - equity) / peak, 0.0),
        }
    )
    df["equity_pct"] = df["equity"] / result.initial_cash if result.initial_cash else 0.0
    df["eq_plot"] = df["equity_pct"] if relative else df["equity"]
    return df


def plot_results(
    results: Mapping[StrategyName, BacktestResult],
    *,
    filename: str = "",
    title: str = "Backtest equity by strategy",
    relative_equity: bool = True,
    plot_drawdown: bool = True,
    plot_width: int | None = None,
    open_browser: bool = True,
) -> Any:
    """Render an interactive Bokeh chart comparing strategies.

    Parameters
    ----------
    results : mapping of StrategyName to BacktestResult
        Output of ``Replayer.run()``.
    filename : str
        Save to this HTML path. Empty string = ``output/backtest_strategies.html``.
    open_browser : bool
        Open the chart in the default browser after rendering.
    """
    if not filename:
        filename = "output/backtest_strategies"
    elif not filename.startswith("output/") and not os.path.isabs(filename):
        filename = f"output/{filename}"
    os.makedirs(os.path.dirname(filename) or "output", exist_ok=True)
    _bokeh_reset(filename)

    sizing: dict[str, Any] = {"width": plot_width} if plot_width else {"sizing_mode": "stretch_width"}
    tools = "xpan,xwheel_zoom,box_zoom,undo,redo,reset,save"

    fig_eq = _figure(title=title, height=380, tools=tools, active_drag="xpan", active_scroll="xwheel_zoom", **sizing)
    fig_eq.add_layout(Legend(), "right")
    fig_eq.legend.click_policy = "hide"
    fig_eq.yaxis.axis_label = "Equity"
    fig_eq.xaxis.axis_label = "Trade #"
    fig_eq.add_layout(
        Span(location=1.0 if relative_equity else 0.0, dimension="width", line_color="#666666", line_dash="dashed")
    )
    fig_eq.yaxis.formatter = NumeralTickFormatter(format="0,0.[00]%" if relative_equity else "$ 0.0 a")

    fig_dd = None
    if plot_drawdown:
        fig_dd = _figure(height=140, x_range=fig_eq.x_range, tools=tools, active_drag="xpan", **sizing)
        fig_dd.yaxis.axis_label = "Drawdown"
        fig_dd.yaxis.formatter = NumeralTickFormatter(format="-0.[0]%")
        fig_dd.add_layout(Legend(), "right")

    renderers = []
    colors = colorgen()
    for name, result in results.items():
        if not result.equity_curve:
            continue
        color = next(colors)
        source = ColumnDataSource(equity_frame(result, relative_equity))
        label = f"{name.value} ({result.metrics.get('roi') or 0.0:+.1f}%)"
        renderers.append(
            fig_eq.line("index", "eq_plot", source=source, line_width=1.6, color=color, legend_label=label)
        )
        if fig_dd is not None:
            fig_dd.line("index", "drawdown_pct", source=source, line_width=1.2, color=color, legend_label=name.value)

    fmt_tip = "@eq_plot{+0,0.[000]%}" if relative_equity else "@eq_plot{$ 0,0.00}"
    fig_eq.add_tools(
        HoverTool(
            renderers=renderers,
            tooltips=[("Trade", "@index"), ("Date", "@date"), ("Equity", fmt_tip)],
            mode="mouse",
        )
    )

    layout = column(fig_eq, fig_dd, **sizing) if fig_dd is not None else fig_eq
    show(layout, browser=None if open_browser else "none")
    return layout
