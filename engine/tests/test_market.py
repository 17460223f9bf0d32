"""Tests for the per-tick market model."""

from __future__ import annotations

import math
import statistics

import pytest

from engine.market import MarketSimulator
from engine.random_variate import RandomVariate
from models.config import MarketConfig
from models.holding import Holding, HoldingStatus


def _holding(value: float, status: HoldingStatus = HoldingStatus.ACTIVE, hid: str = "h1") -> Holding:
    return Holding(
        id=hid,
        user_id="u1",
        startup_id="s1",
        invested_amount=10_000,
        equity_fraction=0.01,
        current_value=value,
        status=status,
    )


class _FixedNormal:
    """Random source whose normal draw is always *z*."""

    def __init__(self, z: float) -> None:
        self.z = z
        self.calls = 0

    def next_standard_normal(self) -> float:
        self.calls += 1
        return self.z


@pytest.fixture
def simulator() -> MarketSimulator:
    return MarketSimulator(MarketConfig(), RandomVariate(11))


class TestTickStep:
    def test_update_formula(self):
        sim = MarketSimulator(MarketConfig(drift=0.0005, volatility=0.01), _FixedNormal(1.0))
        [after] = sim.tick([_holding(10_000)])
        assert after.current_value == pytest.approx(10_000 * 1.0105)
        assert after.change_percent == pytest.approx(1.05)

    def test_change_percent_matches_values_exactly(self, simulator):
        before = [_holding(v, hid=f"h{i}") for i, v in enumerate([10_000, 1.5, 250_000])]
        after = simulator.tick(before)
        for old, new in zip(before, after):
            expected = (new.current_value - old.current_value) / old.current_value * 100
            assert new.change_percent == expected

    def test_zero_value_is_fixed_point(self, simulator):
        [after] = simulator.tick([_holding(0.0)])
        assert after.current_value == 0
        assert after.change_percent == 0

    def test_sold_holdings_pass_through(self):
        rng = _FixedNormal(2.0)
        sim = MarketSimulator(MarketConfig(), rng)
        sold = _holding(5_000, status=HoldingStatus.SOLD)
        [after] = sim.tick([sold])
        assert after is sold
        assert rng.calls == 0

    def test_input_is_not_mutated(self, simulator):
        before = _holding(10_000)
        simulator.tick([before])
        assert before.current_value == 10_000
        assert before.change_percent == 0.0

    def test_empty_portfolio(self, simulator):
        assert simulator.tick([]) == []


class TestStatistics:
    def test_single_step_swings_are_bounded(self, simulator):
        config = simulator.config
        # Six sigma on the per-step return, in percent.
        bound = (6 * config.volatility + abs(config.drift)) * 100
        holding = _holding(10_000)
        for _ in range(10_000):
            [holding] = simulator.tick([holding])
            assert abs(holding.change_percent) < bound
            assert holding.current_value > 0

    def test_hundred_ticks_track_expected_growth(self):
        sim = MarketSimulator(MarketConfig(drift=0.0005, volatility=0.01), RandomVariate(5))
        holdings = [_holding(10_000, hid=f"h{i}") for i in range(200)]
        for _ in range(100):
            holdings = sim.tick(holdings)
        finals = [h.current_value for h in holdings]
        expected = 10_000 * math.exp(100 * 0.0005)  # ~10 512
        assert statistics.fmean(finals) == pytest.approx(expected, rel=0.05)
        # Order-of-magnitude stability for every path.
        assert all(5_000 < v < 20_000 for v in finals)
