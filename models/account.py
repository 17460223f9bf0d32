"""Account and ledger result models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class Account(BaseModel):
    """Cached view of a user's account.

    ``cash_available`` is owned by the balance ledger and only changes after a
    remote write succeeds.  ``portfolio_value`` is derived from the active
    holdings and refreshed by the portfolio service.
    """

    user_id: str
    username: str = ""
    cash_available: float = Field(default=0.0, ge=0)
    portfolio_value: float = 0.0
    experience_points: int = 0
    level: int = 0
    experience_to_next_level: int = 100

    @property
    def net_worth(self) -> float:
        return self.cash_available + self.portfolio_value


class LedgerWrite(BaseModel):
    """Outcome of one ``BalanceLedger.apply_delta`` call.

    ``path`` records which remote route committed the balance: the privileged
    update, the direct fallback, or (degraded mode only) neither.
    """

    user_id: str
    previous_balance: float
    new_balance: float
    success: bool
    path: Literal["privileged", "direct", "optimistic"] | None = None
    errors: list[str] = []

    @property
    def degraded(self) -> bool:
        return self.path == "optimistic"

    def __bool__(self) -> bool:
        return self.success
