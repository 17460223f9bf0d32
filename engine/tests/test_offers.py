"""Tests for equity arithmetic and offer validation."""

from __future__ import annotations

import pytest

from engine.errors import ValidationError
from engine.offers import (
    compute_equity,
    compute_equity_of_ask,
    default_offer_amount,
    default_requested_equity,
    max_offer_amount,
    projected_return,
    requested_equity_bounds,
    validate_offer_amount,
)
from engine.random_variate import RandomVariate
from models.catalog import StartupCatalogEntry
from models.config import NegotiationConfig


class TestComputeEquity:
    def test_fair_value_stake(self):
        assert compute_equity(10_000, 1_000_000) == 0.01

    def test_full_valuation_buys_everything(self):
        assert compute_equity(250_000, 250_000) == 1

    def test_amount_capped_at_valuation(self):
        assert compute_equity(5_000_000, 1_000_000) == 1

    @pytest.mark.parametrize("valuation", [0, -10, None, "n/a"])
    def test_degenerate_valuation_is_zero(self, valuation):
        assert compute_equity(10_000, valuation) == 0

    @pytest.mark.parametrize("amount", [-1, -10_000, None, "abc", float("nan"), True])
    def test_bad_amount_treated_as_zero(self, amount):
        assert compute_equity(amount, 1_000_000) == 0

    @pytest.mark.parametrize("amount", [0, 1, 999.99, 10_000, 1_000_000, 7e9])
    def test_always_a_fraction(self, amount):
        assert 0 <= compute_equity(amount, 1_000_000) <= 1


class TestComputeEquityOfAsk:
    def test_share_of_offered_equity(self):
        assert compute_equity_of_ask(50_000, 100_000, 0.2) == pytest.approx(0.1)

    def test_clamped_to_equity_offered(self):
        assert compute_equity_of_ask(400_000, 100_000, 0.2) == pytest.approx(0.2)

    def test_zero_goal(self):
        assert compute_equity_of_ask(50_000, 0, 0.2) == 0

    def test_negative_amount(self):
        assert compute_equity_of_ask(-5, 100_000, 0.2) == 0

    def test_formulas_are_distinct(self):
        # Same amount, same "size" of company, different answers.
        assert compute_equity(50_000, 100_000) == 0.5
        assert compute_equity_of_ask(50_000, 100_000, 0.2) == pytest.approx(0.1)


class TestValidateOfferAmount:
    def test_accepts_valid_amount(self):
        assert validate_offer_amount(5_000, 100_000, 1_000) == 5_000.0

    @pytest.mark.parametrize("amount", [0, -5, None])
    def test_rejects_non_positive(self, amount):
        with pytest.raises(ValidationError, match="greater than 0"):
            validate_offer_amount(amount, 100_000, 1_000)

    def test_rejects_insufficient_funds(self):
        with pytest.raises(ValidationError, match="Insufficient funds"):
            validate_offer_amount(150_000, 100_000, 1_000)

    def test_rejects_below_minimum(self):
        with pytest.raises(ValidationError, match="Minimum investment is \\$5,000"):
            validate_offer_amount(4_999, 100_000, 5_000)


class TestOfferHelpers:
    @pytest.fixture
    def entry(self) -> StartupCatalogEntry:
        return StartupCatalogEntry(id="s1", valuation=1_000_000, ask_amount=150_000)

    def test_default_amount_is_tenth_of_ask_without_declared_minimum(self, entry):
        assert default_offer_amount(entry) == 15_000

    def test_default_amount_is_declared_minimum(self):
        entry = StartupCatalogEntry(id="s2", valuation=1_000_000, ask_amount=150_000, min_investment=5_000)
        assert default_offer_amount(entry) == 5_000

    def test_max_amount_limited_by_cash(self, entry):
        assert max_offer_amount(entry, 100_000) == 100_000
        assert max_offer_amount(entry, 1_000_000) == 300_000

    def test_requested_equity_bounds(self):
        low, high = requested_equity_bounds(10_000, 1_000_000, NegotiationConfig())
        assert low == pytest.approx(0.008)
        assert high == pytest.approx(0.015)

    def test_requested_equity_bounds_capped_at_one(self):
        _, high = requested_equity_bounds(900_000, 1_000_000, NegotiationConfig())
        assert high == 1.0

    def test_default_requested_equity_premium(self):
        assert default_requested_equity(10_000, 1_000_000, NegotiationConfig()) == pytest.approx(0.012)

    def test_projected_return_range(self):
        rng = RandomVariate(4)
        for _ in range(100):
            assert 0 <= projected_return(10_000, rng) <= 15_000
