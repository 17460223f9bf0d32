"""Engine configuration models, loaded from YAML.

These live in ``models/`` because they are shared data contracts used by the
engine services, the session runner, and the CLI entrypoint.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, Union

import yaml
from pydantic import BaseModel, Field, model_validator


class MarketConfig(BaseModel):
    """Parameters of the per-tick value model."""

    drift: float = Field(
        default=0.0005,
        description="Mean return per tick (mu), ~0.05% per update.",
    )
    volatility: float = Field(
        default=0.01,
        ge=0.0,
        description="Standard deviation of the return per tick (sigma), ~1% per update.",
    )
    tick_interval_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Cadence of the background market ticker.",
    )


class NegotiationConfig(BaseModel):
    """Knobs for the offer / counter-offer flow."""

    default_min_investment: float = Field(
        default=1000.0,
        gt=0,
        description="Minimum investment applied when a catalog entry does not specify one.",
    )
    counter_low: float = Field(
        default=0.80,
        gt=0,
        le=1.0,
        description="Lower bound of the counter-offer multiplier on requested equity.",
    )
    counter_high: float = Field(
        default=0.95,
        gt=0,
        le=1.0,
        description="Upper bound of the counter-offer multiplier on requested equity.",
    )
    equity_lower_factor: float = Field(
        default=0.8,
        gt=0,
        description="Lowest requested equity allowed, as a multiple of fair-value equity.",
    )
    equity_upper_factor: float = Field(
        default=1.5,
        gt=0,
        description="Highest requested equity allowed, as a multiple of fair-value equity.",
    )
    default_equity_premium: float = Field(
        default=1.2,
        gt=0,
        description="Default requested equity as a multiple of fair-value equity.",
    )
    decision_delay_seconds: float = Field(
        default=0.0,
        ge=0,
        description="Simulated founder decision time before a counter-offer arrives.",
    )

    @model_validator(mode="after")
    def _check_ranges(self) -> NegotiationConfig:
        if self.counter_low > self.counter_high:
            raise ValueError("counter_low must not exceed counter_high.")
        if self.equity_lower_factor > self.equity_upper_factor:
            raise ValueError("equity_lower_factor must not exceed equity_upper_factor.")
        return self


class LedgerConfig(BaseModel):
    """Remote-write policy for the balance ledger."""

    remote_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout applied to each remote balance write.",
    )
    optimistic_on_failure: bool = Field(
        default=False,
        description="Degraded demo mode: update the local balance even when both "
        "remote paths fail. Results are flagged as degraded.",
    )
    round_balances: bool = Field(
        default=True,
        description="Round balances to whole currency units before writing them.",
    )


class RemoteConfig(BaseModel):
    """Availability switches for the in-memory backend used by the CLI."""

    privileged_available: bool = True
    direct_available: bool = True
    holdings_available: bool = True


# ------------------------------------------------------------------
# Scripted session actions (CLI runner)
# ------------------------------------------------------------------

class InvestAction(BaseModel):
    """Accept fair-value terms for a startup ("Invest now")."""

    action: Literal["invest"]
    startup_id: str
    amount: float | None = None


class NegotiateAction(BaseModel):
    """Run the offer / counter-offer flow and finish with *decision*."""

    action: Literal["negotiate"]
    startup_id: str
    amount: float | None = None
    requested_equity: float | None = None
    decision: Literal["accept", "revise", "cancel"] = "accept"


class TickAction(BaseModel):
    """Advance the market *count* steps."""

    action: Literal["tick"]
    count: int = Field(default=1, ge=1)


class PassAction(BaseModel):
    """Swipe past a pitch; nudges the market one step."""

    action: Literal["pass"]
    startup_id: str | None = None


class SellAction(BaseModel):
    """Sell part or all of a holding at its current value."""

    action: Literal["sell"]
    holding_index: int = Field(default=0, ge=0)
    sell_fraction: float = Field(default=1.0, gt=0, le=1.0)


class ExitAction(BaseModel):
    """Resolve a liquidity event for a holding."""

    action: Literal["exit"]
    holding_index: int = Field(default=0, ge=0)
    exit_type: Literal["IPO", "Acquisition", "Liquidation"]
    sell_fraction: float = Field(default=1.0, gt=0, le=1.0)


SessionAction = Annotated[
    Union[InvestAction, NegotiateAction, TickAction, PassAction, SellAction, ExitAction],
    Field(discriminator="action"),
]


class EngineConfig(BaseModel):
    """Top-level configuration for a simulated session, loaded from YAML.

    The run name is derived from the config file path at load time rather
    than being specified inside the YAML itself.
    """

    catalog_path: str = Field(description="Path to the startup catalog (directory or file).")
    user_id: str = Field(default="demo-user", description="Identifier of the simulated user.")
    initial_cash: float = Field(
        default=100_000.0,
        ge=0,
        description="Starting cash balance for the account.",
    )
    seed: int | None = Field(
        default=None,
        description="Seed for the random source; None draws from system entropy.",
    )
    market: MarketConfig = Field(default_factory=MarketConfig)
    negotiation: NegotiationConfig = Field(default_factory=NegotiationConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    background_ticker: bool = Field(
        default=False,
        description="Run the periodic market ticker while the script executes.",
    )
    actions: list[SessionAction] = Field(
        default_factory=list,
        description="Scripted user actions replayed by the session runner.",
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        """Load and validate an ``EngineConfig`` from a YAML file.

        Raises ``FileNotFoundError`` if the file does not exist and
        ``ValueError`` if the content is not a valid YAML mapping.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with path.open(encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)

        if not isinstance(raw, dict):
            raise ValueError(
                f"Expected a YAML mapping in {path}, got {type(raw).__name__}."
            )

        return cls(**raw)
