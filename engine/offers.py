"""Offer arithmetic: cash amount to equity stake, and offer validation.

Two equity formulas coexist.  ``compute_equity`` bounds the stake by the
company valuation; ``compute_equity_of_ask`` prices against the funding goal
and bounds the stake by the equity the founders put on the table.  They are
not algebraically equivalent and are kept separate on purpose.
"""

from __future__ import annotations

import math
from typing import Any

from engine.errors import ValidationError
from engine.random_variate import RandomVariate
from models.catalog import StartupCatalogEntry
from models.config import NegotiationConfig


def _as_amount(value: Any) -> float:
    """Coerce *value* to a non-negative finite amount; anything else is 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(amount) or amount < 0:
        return 0.0
    return amount


def compute_equity(amount: Any, valuation: Any) -> float:
    """Equity fraction bought by *amount* at *valuation*.

    The amount is capped at the valuation, so the result lies in ``[0, 1]``.
    A non-positive valuation yields 0.
    """
    amount = _as_amount(amount)
    valuation = _as_amount(valuation)
    if valuation <= 0:
        return 0.0
    return min(amount, valuation) / valuation


def compute_equity_of_ask(amount: Any, funding_goal: Any, equity_offered: Any) -> float:
    """Equity fraction for *amount* as a share of the founders' ask.

    ``(amount / funding_goal) * equity_offered``, never more than
    *equity_offered*.  A non-positive funding goal yields 0.
    """
    amount = _as_amount(amount)
    funding_goal = _as_amount(funding_goal)
    equity_offered = _as_amount(equity_offered)
    if funding_goal <= 0:
        return 0.0
    raw = min(amount, funding_goal) / funding_goal * equity_offered
    return min(raw, equity_offered)


def validate_offer_amount(amount: Any, cash_available: float, min_investment: float) -> float:
    """Return *amount* as a float or raise ``ValidationError``.

    Checks run in the order users see them: positive, affordable, above the
    startup's minimum.
    """
    amount = _as_amount(amount)
    if amount <= 0:
        raise ValidationError("Investment amount must be greater than 0")
    if amount > cash_available:
        raise ValidationError("Insufficient funds")
    if amount < min_investment:
        raise ValidationError(f"Minimum investment is ${min_investment:,.0f}")
    return amount


def default_offer_amount(entry: StartupCatalogEntry) -> float:
    """Opening amount for an offer flow."""
    return entry.suggested_investment or entry.min_investment


def max_offer_amount(entry: StartupCatalogEntry, cash_available: float) -> float:
    """Upper end of the amount slider: twice the ask, limited by cash."""
    return max(min(entry.ask_amount * 2, cash_available), 0.0)


def requested_equity_bounds(
    amount: Any,
    valuation: Any,
    config: NegotiationConfig,
) -> tuple[float, float]:
    """Range a user may ask for, around the fair-value equity for *amount*."""
    fair = compute_equity(amount, valuation)
    return (
        min(fair * config.equity_lower_factor, 1.0),
        min(fair * config.equity_upper_factor, 1.0),
    )


def default_requested_equity(amount: Any, valuation: Any, config: NegotiationConfig) -> float:
    """Opening ask: a premium over fair value."""
    return min(compute_equity(amount, valuation) * config.default_equity_premium, 1.0)


def projected_return(amount: Any, rng: RandomVariate) -> float:
    """Illustrative profit figure shown on the offer screen (not a forecast)."""
    amount = _as_amount(amount)
    multiplier = 1 + rng.random() * 1.5
    return float(round(multiplier * amount - amount))
