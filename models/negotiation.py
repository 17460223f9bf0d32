"""Offer, negotiation and exit models."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from models.holding import Holding


class NegotiationStage(str, Enum):
    """Stages of a negotiation session. ``RESOLVED`` and ``CANCELLED`` are terminal."""

    OFFERED = "offered"
    COUNTERED = "countered"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class NegotiationSession(BaseModel):
    """Ephemeral state of one offer attempt. Never persisted."""

    session_id: str
    user_id: str
    startup_id: str
    stage: NegotiationStage = NegotiationStage.OFFERED
    requested_amount: float
    requested_equity: float
    counter_amount: float | None = None
    counter_equity: float | None = None

    @property
    def is_terminal(self) -> bool:
        return self.stage in (NegotiationStage.RESOLVED, NegotiationStage.CANCELLED)


class ResolvedOffer(BaseModel):
    """Finalized terms ready to be committed by the portfolio service."""

    user_id: str
    startup_id: str
    amount: float = Field(gt=0)
    equity: float = Field(ge=0, le=1)
    via: Literal["direct", "accept", "revise"]


class ExitType(str, Enum):
    """Liquidity events a holding can go through."""

    IPO = "IPO"
    ACQUISITION = "Acquisition"
    LIQUIDATION = "Liquidation"


class ExitOutcome(BaseModel):
    """Result of resolving an exit (or a plain sale when ``exit_type`` is None).

    ``holding`` is the post-event state: sold when the whole stake was sold,
    otherwise the remaining active stake.
    """

    holding_id: str
    exit_type: ExitType | None = None
    sell_fraction: float
    multiplier: float
    payout: float
    message: str
    holding: Holding
