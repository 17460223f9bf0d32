"""Holding and portfolio state models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class HoldingStatus(str, Enum):
    """Lifecycle of a holding. ``SOLD`` is terminal."""

    ACTIVE = "active"
    SOLD = "sold"


class Holding(BaseModel):
    """One active investment in a startup.

    ``current_value`` is the only field the market simulator changes on its
    own; partial sales scale ``invested_amount``, ``equity_fraction`` and
    ``current_value`` together.
    """

    id: str
    user_id: str
    startup_id: str
    invested_amount: float = Field(ge=0)
    equity_fraction: float = Field(ge=0, le=1)
    current_value: float = Field(ge=0)
    change_percent: float = 0.0  # Percentage move on the most recent tick
    status: HoldingStatus = HoldingStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status is HoldingStatus.ACTIVE

    @property
    def total_return_percent(self) -> float:
        """Gain or loss since purchase, in percent of the invested amount."""
        if not self.invested_amount:
            return 0.0
        return (self.current_value - self.invested_amount) / self.invested_amount * 100


class PortfolioSnapshot(BaseModel):
    """Cash and active holdings at a point in time.

    Sold holdings never appear here, and ``portfolio_value`` sums only the
    holdings that do.
    """

    user_id: str
    cash: float
    holdings: list[Holding] = []

    @property
    def portfolio_value(self) -> float:
        return sum(h.current_value for h in self.holdings if h.is_active)

    @property
    def net_worth(self) -> float:
        return self.cash + self.portfolio_value
