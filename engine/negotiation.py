"""Offer / counter-offer negotiation state machine.

Lifecycle of a session::

    open()  ->  OFFERED  --submit()-->  COUNTERED  --accept()-->  RESOLVED (counter equity)
                                                   --revise()-->  RESOLVED (requested equity)
    cancel() from any non-terminal stage -> CANCELLED

Validation happens in ``open`` so a bad amount never produces a session.
The protocol itself never touches money; the caller commits the
``ResolvedOffer`` through the portfolio service.
"""

from __future__ import annotations

import asyncio
import logging
import uuid

from engine.errors import NegotiationStateError, ValidationError
from engine.offers import requested_equity_bounds, validate_offer_amount
from engine.random_variate import RandomVariate
from models.catalog import StartupCatalogEntry
from models.config import NegotiationConfig
from models.negotiation import NegotiationSession, NegotiationStage, ResolvedOffer

logger = logging.getLogger(__name__)


class NegotiationProtocol:
    """Drives ``NegotiationSession`` objects through their stages."""

    def __init__(self, config: NegotiationConfig, rng: RandomVariate) -> None:
        self._config = config
        self._rng = rng

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def open(
        self,
        user_id: str,
        entry: StartupCatalogEntry,
        amount: float,
        requested_equity: float,
        cash_available: float,
    ) -> NegotiationSession:
        """Validate the offer and start a session in ``OFFERED``.

        Raises ``ValidationError`` for a non-positive, unaffordable or
        below-minimum amount, or a requested equity outside the allowed band.
        """
        amount = validate_offer_amount(amount, cash_available, entry.min_investment)
        low, high = requested_equity_bounds(amount, entry.valuation, self._config)
        # Tolerate float noise from slider arithmetic.
        if not (low - 1e-12 <= requested_equity <= high + 1e-12) or requested_equity <= 0:
            raise ValidationError(
                f"Requested equity {requested_equity:.4%} is outside the allowed "
                f"range {low:.4%} - {high:.4%}."
            )
        session = NegotiationSession(
            session_id=uuid.uuid4().hex[:12],
            user_id=user_id,
            startup_id=entry.id,
            requested_amount=amount,
            requested_equity=requested_equity,
        )
        logger.info(
            "Negotiation %s opened: %.2f for %.4f equity in '%s'.",
            session.session_id,
            amount,
            requested_equity,
            entry.id,
        )
        return session

    async def submit(self, session: NegotiationSession) -> NegotiationSession:
        """Send the offer and wait for the founder's counter.

        The founders always counter with 80-95% of the requested equity for
        the same amount.
        """
        self._require(session, NegotiationStage.OFFERED, "submit")
        if self._config.decision_delay_seconds > 0:
            await asyncio.sleep(self._config.decision_delay_seconds)
        # A cancel may have landed while we were waiting.
        self._require(session, NegotiationStage.OFFERED, "submit")

        ratio = self._rng.uniform(self._config.counter_low, self._config.counter_high)
        session.counter_amount = session.requested_amount
        session.counter_equity = session.requested_equity * ratio
        session.stage = NegotiationStage.COUNTERED
        logger.info(
            "Negotiation %s countered at %.4f equity (%.1f%% of ask).",
            session.session_id,
            session.counter_equity,
            ratio * 100,
        )
        return session

    def accept(self, session: NegotiationSession) -> ResolvedOffer:
        """Take the counter-offer as is."""
        self._require(session, NegotiationStage.COUNTERED, "accept")
        session.stage = NegotiationStage.RESOLVED
        return ResolvedOffer(
            user_id=session.user_id,
            startup_id=session.startup_id,
            amount=session.counter_amount,
            equity=session.counter_equity,
            via="accept",
        )

    def revise(self, session: NegotiationSession) -> ResolvedOffer:
        """Push back on the counter; the requested terms are granted."""
        self._require(session, NegotiationStage.COUNTERED, "revise")
        session.stage = NegotiationStage.RESOLVED
        return ResolvedOffer(
            user_id=session.user_id,
            startup_id=session.startup_id,
            amount=session.requested_amount,
            equity=session.requested_equity,
            via="revise",
        )

    def cancel(self, session: NegotiationSession) -> None:
        """Abandon the session. No funds move; terminal sessions are left alone."""
        if session.is_terminal:
            return
        session.stage = NegotiationStage.CANCELLED
        logger.info("Negotiation %s cancelled.", session.session_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require(session: NegotiationSession, stage: NegotiationStage, op: str) -> None:
        if session.stage is not stage:
            raise NegotiationStateError(
                f"Cannot {op} negotiation {session.session_id} in stage "
                f"'{session.stage.value}' (expected '{stage.value}')."
            )
