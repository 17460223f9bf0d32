"""Logging and session storage models.

- ``ActionLog``: per-action audit with before/after balances.
- ``SessionLog``: run-level log with embedded config for reproducibility.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from models.account import Account, LedgerWrite
from models.config import EngineConfig
from models.holding import PortfolioSnapshot


class ActionLog(BaseModel):
    """Per-action audit record.

    Captures cash and portfolio value on both sides of the action so the
    effect of each step can be inspected without replaying the session.
    """

    index: int
    action: str
    status: Literal["ok", "rejected", "failed"]
    message: str = ""
    cash_before: float
    cash_after: float
    portfolio_value_before: float
    portfolio_value_after: float
    elapsed_seconds: float = 0.0


class SessionLog(BaseModel):
    """Run-level log with embedded configuration for reproducibility.

    ``run_name`` is derived from the configuration file path by the runner.
    """

    run_name: str
    config: EngineConfig
    actions: list[ActionLog] = []
    ledger_writes: list[LedgerWrite] = []
    ticks: int = 0
    final_portfolio: PortfolioSnapshot | None = None
    final_account: Account | None = None
    errors: list[str] = []
