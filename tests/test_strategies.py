"""Tests for the five strategy rule sets and the lexical classifier."""

from __future__ import annotations

from datetime import timedelta

import pytest

from src.papersim.classifier import is_sports_market, is_will_question
from src.papersim.config import SimConfig
from src.papersim.errors import InvalidStrategy
from src.papersim.models import EntryPoint, Side, StrategyName
from src.papersim.signals import detect
from src.papersim.strategies import (
    ArbProxyStrategy,
    CheapContractsStrategy,
    ContrarianStrategy,
    MomentumStrategy,
    StatusQuoStrategy,
    build_strategies,
    build_strategy,
)
from src.papersim.strategy import StrategyContext, parse_strategy
from tests.helpers import T0, historical, snapshot

T1 = T0 + timedelta(hours=4)


def _spike_context(old: float, new: float, title: str = "Will the treaty be signed?") -> StrategyContext:
    older = snapshot(T0, ("m", title, old, 1_000.0))
    newer = snapshot(T1, ("m", title, new, 1_000.0))
    return StrategyContext(signals=detect(older, newer), snapshot=newer)


def _snapshot_context(*rows: tuple) -> StrategyContext:
    return StrategyContext(snapshot=snapshot(T1, *rows))


class TestClassifier:
    @pytest.mark.parametrize(
        "title",
        [
            "NBA Finals: Celtics to win game 7?",
            "Will Real Madrid win the Champions League?",
            "Lakers vs. Warriors: who will win the game?",
            "Navi vs. FaZe map 2 winner",
        ],
    )
    def test_sports_titles(self, title: str) -> None:
        assert is_sports_market(title)

    @pytest.mark.parametrize(
        "title",
        [
            "Will the Fed cut rates in March?",
            "Trump vs. Supreme Court: ruling by June?",
            "Trump vs. Harris: who will win?",
            "Manchester City Council vs. Labour: who wins the round of talks?",
            "Will Bitcoin reach $100k in 2024?",
        ],
    )
    def test_non_sports_titles(self, title: str) -> None:
        assert not is_sports_market(title)

    def test_will_question(self) -> None:
        assert is_will_question("Will the Fed cut rates?")
        assert is_will_question("Is the bill expected to pass?")
        assert not is_will_question("Bitcoin above $100k on Friday?")
        assert not is_will_question("Willamette river flood level")


class TestRegistry:
    def test_build_strategy_covers_every_name(self) -> None:
        for name in StrategyName:
            assert build_strategy(name).name is name

    def test_build_strategies_canonical_order(self) -> None:
        assert [s.name for s in build_strategies()] == list(StrategyName)

    def test_parse_strategy_rejects_unknown(self) -> None:
        with pytest.raises(InvalidStrategy, match="Choose from"):
            parse_strategy("kelly")

    def test_parse_strategy(self) -> None:
        assert parse_strategy("status_quo") is StrategyName.STATUS_QUO


class TestMomentum:
    def test_up_spike_buys_yes_at_new_price(self) -> None:
        [prop] = MomentumStrategy().propose(_spike_context(0.30, 0.45))
        assert prop.side is Side.YES
        assert prop.price == pytest.approx(0.45)
        assert prop.size_pct == 0.05
        assert prop.size_cap == 200.0
        assert prop.strategy is StrategyName.MOMENTUM

    def test_down_spike_buys_no_at_complement(self) -> None:
        [prop] = MomentumStrategy().propose(_spike_context(0.70, 0.40))
        assert prop.side is Side.NO
        assert prop.price == pytest.approx(0.60)

    def test_volume_only_signals_ignored(self) -> None:
        older = snapshot(T0, ("m", "Will X?", 0.50, 1_000.0))
        newer = snapshot(T1, ("m", "Will X?", 0.52, 9_000.0))
        ctx = StrategyContext(signals=detect(older, newer), snapshot=newer)
        assert len(ctx.signals) == 1
        assert MomentumStrategy().propose(ctx) == []

    def test_sports_markets_excluded(self) -> None:
        assert MomentumStrategy().propose(_spike_context(0.30, 0.45, "NBA: Celtics vs. Heat game 3")) == []

    def test_historical_uses_delta_as_trigger(self) -> None:
        m = historical("m", 0.97, 0.40, Side.YES)
        [prop] = MomentumStrategy().propose_historical(EntryPoint(market=m, price=0.57, delta=0.40))
        assert prop.side is Side.YES
        assert prop.price == pytest.approx(0.57)

    def test_historical_small_delta_no_trade(self) -> None:
        m = historical("m", 0.55, 0.05, Side.YES)
        assert MomentumStrategy().propose_historical(EntryPoint(market=m, price=0.50, delta=0.05)) == []


class TestContrarian:
    def test_up_spike_buys_no_at_complement(self) -> None:
        [prop] = ContrarianStrategy().propose(_spike_context(0.30, 0.45))
        assert prop.side is Side.NO
        assert prop.price == pytest.approx(0.55)
        assert prop.strategy is StrategyName.CONTRARIAN

    def test_down_spike_buys_yes(self) -> None:
        [prop] = ContrarianStrategy().propose(_spike_context(0.70, 0.40))
        assert prop.side is Side.YES
        assert prop.price == pytest.approx(0.40)

    def test_historical_fades_the_move(self) -> None:
        m = historical("m", 0.03, -0.22, Side.NO)
        [prop] = ContrarianStrategy().propose_historical(EntryPoint(market=m, price=0.25, delta=-0.22))
        assert prop.side is Side.YES
        assert prop.price == pytest.approx(0.25)


class TestStatusQuo:
    def test_buys_no_on_will_question_in_band(self) -> None:
        [prop] = StatusQuoStrategy().propose(_snapshot_context(("m", "Will the senate pass the bill?", 0.25, 1.0)))
        assert prop.side is Side.NO
        assert prop.price == pytest.approx(0.75)
        assert prop.size_cap is None

    @pytest.mark.parametrize("price", [0.10, 0.40])
    def test_band_is_inclusive(self, price: float) -> None:
        props = StatusQuoStrategy().propose(_snapshot_context(("m", "Will it rain?", price, 1.0)))
        assert len(props) == 1

    @pytest.mark.parametrize("price", [0.09, 0.41])
    def test_outside_band(self, price: float) -> None:
        assert StatusQuoStrategy().propose(_snapshot_context(("m", "Will it rain?", price, 1.0))) == []

    def test_requires_will_question(self) -> None:
        assert StatusQuoStrategy().propose(_snapshot_context(("m", "Bitcoin above $100k?", 0.25, 1.0))) == []

    def test_capped_at_five(self) -> None:
        rows = [(f"m{i}", f"Will event {i} happen?", 0.20, 1.0) for i in range(8)]
        props = StatusQuoStrategy().propose(_snapshot_context(*rows))
        assert [p.slug for p in props] == ["m0", "m1", "m2", "m3", "m4"]


class TestCheapContracts:
    def test_buys_yes_below_five_cents(self) -> None:
        [prop] = CheapContractsStrategy().propose(_snapshot_context(("m", "Will aliens land?", 0.02, 1.0)))
        assert prop.side is Side.YES
        assert prop.price == pytest.approx(0.02)
        assert prop.size_pct == 0.01
        assert prop.size_cap == 100.0

    @pytest.mark.parametrize("price", [0.0, 0.05, 0.10])
    def test_excluded_prices(self, price: float) -> None:
        assert CheapContractsStrategy().propose(_snapshot_context(("m", "Will aliens land?", price, 1.0))) == []

    def test_cheapest_first_capped_at_five(self) -> None:
        prices = [0.04, 0.01, 0.03, 0.02, 0.045, 0.015, 0.035]
        rows = [(f"m{i}", f"Long shot {i}", p, 1.0) for i, p in enumerate(prices)]
        props = CheapContractsStrategy().propose(_snapshot_context(*rows))
        assert [p.price for p in props] == [0.01, 0.015, 0.02, 0.03, 0.035]


class TestArbProxy:
    def test_pair_at_discounted_legs(self) -> None:
        [prop] = ArbProxyStrategy().propose(_snapshot_context(("m", "Thin market", 0.50, 1.0, 1_200.0)))
        assert prop.is_pair
        assert prop.side is None
        legs = prop.legs()
        assert [s for s, _ in legs] == [Side.YES, Side.NO]
        assert [p for _, p in legs] == [pytest.approx(0.495), pytest.approx(0.495)]
        assert prop.size_pct == 0.03

    def test_liquid_markets_skipped(self) -> None:
        assert ArbProxyStrategy().propose(_snapshot_context(("m", "Deep market", 0.50, 1.0, 5_000.0))) == []

    @pytest.mark.parametrize("price,expected", [(0.45, 1), (0.55, 1), (0.44, 0), (0.56, 0)])
    def test_live_band_inclusive(self, price: float, expected: int) -> None:
        props = ArbProxyStrategy().propose(_snapshot_context(("m", "Thin market", price, 1.0, 100.0)))
        assert len(props) == expected

    def test_sports_filter_not_applied(self) -> None:
        props = ArbProxyStrategy().propose(_snapshot_context(("m", "NBA: Celtics vs. Heat game 3", 0.50, 1.0, 100.0)))
        assert len(props) == 1

    def test_capped_at_three(self) -> None:
        rows = [(f"m{i}", "Thin", 0.50, 1.0, 100.0) for i in range(5)]
        assert len(ArbProxyStrategy().propose(_snapshot_context(*rows))) == 3

    @pytest.mark.parametrize(
        "price,volume,expected",
        [(0.40, 5_000.0, 1), (0.60, 49_999.0, 1), (0.50, 50_000.0, 0), (0.50, 4_999.0, 0), (0.61, 10_000.0, 0)],
    )
    def test_historical_band(self, price: float, volume: float, expected: int) -> None:
        m = historical("m", price, 0.0, Side.YES, volume=volume)
        assert len(ArbProxyStrategy().propose_historical(EntryPoint(market=m, price=price, delta=0.0))) == expected

    def test_edge_from_config(self) -> None:
        cfg = SimConfig(arb_edge=0.10)
        [prop] = ArbProxyStrategy(cfg).propose(_snapshot_context(("m", "Thin", 0.50, 1.0, 100.0)))
        assert prop.yes_price == pytest.approx(0.475)
