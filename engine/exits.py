"""Exit resolution: IPO, acquisition and liquidation payouts.

Each exit type maps a uniform draw onto payout bands; each band draws its
multiplier from its own uniform sub-range::

    IPO          r < 0.60 -> [2.0, 3.0)   r < 0.90 -> [1.0, 2.0)   else [0.2, 0.4)
    Acquisition  r < 0.50 -> [1.5, 2.5)   r < 0.85 -> [1.0, 1.5)   else [0.3, 0.6)
    Liquidation  r < 0.30 -> [1.0, 1.2)                            else 0 (total loss)

The resolver is pure with respect to the holding: it returns the post-exit
state and leaves committing it (ledger credit, persistence, local update) to
the portfolio service.
"""

from __future__ import annotations

from typing import NamedTuple

from engine.errors import ValidationError
from engine.random_variate import RandomVariate
from models.holding import Holding, HoldingStatus
from models.negotiation import ExitOutcome, ExitType


class PayoutBand(NamedTuple):
    threshold: float  # Band applies when the outcome draw is below this
    low: float
    high: float
    message: str


EXIT_BANDS: dict[ExitType, tuple[PayoutBand, ...]] = {
    ExitType.IPO: (
        PayoutBand(0.6, 2.0, 3.0, "IPO Success! Your investment doubled."),
        PayoutBand(0.9, 1.0, 2.0, "IPO was modest. You get your money back plus a little."),
        PayoutBand(1.0, 0.2, 0.4, "IPO failed. You lost most of your investment."),
    ),
    ExitType.ACQUISITION: (
        PayoutBand(0.5, 1.5, 2.5, "Acquisition was lucrative!"),
        PayoutBand(0.85, 1.0, 1.5, "Acquisition was average."),
        PayoutBand(1.0, 0.3, 0.6, "Acquisition was a fire sale."),
    ),
    ExitType.LIQUIDATION: (
        PayoutBand(0.3, 1.0, 1.2, "Liquidation returned some value."),
        PayoutBand(1.0, 0.0, 0.0, "Liquidation failed. Investment lost."),
    ),
}


def check_sell_fraction(sell_fraction: float) -> float:
    if not 0 < sell_fraction <= 1:
        raise ValidationError(f"Sell fraction must be in (0, 1], got {sell_fraction}.")
    return float(sell_fraction)


def divest(holding: Holding, sell_fraction: float) -> Holding:
    """State of *holding* after selling *sell_fraction* of it.

    Selling everything marks it sold; otherwise amount, equity and value all
    shrink by the same factor and the holding stays active.
    """
    sell_fraction = check_sell_fraction(sell_fraction)
    if sell_fraction == 1:
        return holding.model_copy(update={"status": HoldingStatus.SOLD})
    remaining = 1 - sell_fraction
    return holding.model_copy(
        update={
            "invested_amount": holding.invested_amount * remaining,
            "equity_fraction": holding.equity_fraction * remaining,
            "current_value": holding.current_value * remaining,
        }
    )


class ExitResolver:
    """Draws exit outcomes from ``EXIT_BANDS``."""

    def __init__(self, rng: RandomVariate) -> None:
        self._rng = rng

    def resolve_exit(
        self,
        holding: Holding,
        exit_type: ExitType | str,
        sell_fraction: float = 1.0,
    ) -> ExitOutcome:
        """Resolve a liquidity event for *sell_fraction* of *holding*.

        ``payout = current_value * multiplier * sell_fraction``.
        """
        exit_type = ExitType(exit_type)
        sell_fraction = check_sell_fraction(sell_fraction)
        if not holding.is_active:
            raise ValidationError(f"Holding {holding.id} is already sold.")

        band = self._pick_band(exit_type)
        multiplier = self._rng.uniform(band.low, band.high) if band.high > 0 else 0.0
        payout = holding.current_value * multiplier * sell_fraction
        return ExitOutcome(
            holding_id=holding.id,
            exit_type=exit_type,
            sell_fraction=sell_fraction,
            multiplier=multiplier,
            payout=payout,
            message=f"{band.message} You receive ${payout:,.2f}",
            holding=divest(holding, sell_fraction),
        )

    @staticmethod
    def sell_at_market(holding: Holding, sell_fraction: float = 1.0) -> ExitOutcome:
        """Plain sale of *sell_fraction* of *holding* at its current value."""
        sell_fraction = check_sell_fraction(sell_fraction)
        if not holding.is_active:
            raise ValidationError(f"Holding {holding.id} is already sold.")
        payout = holding.current_value * sell_fraction
        return ExitOutcome(
            holding_id=holding.id,
            sell_fraction=sell_fraction,
            multiplier=1.0,
            payout=payout,
            message=f"Sold {sell_fraction:.0%} of your stake for ${payout:,.2f}",
            holding=divest(holding, sell_fraction),
        )

    def _pick_band(self, exit_type: ExitType) -> PayoutBand:
        draw = self._rng.random()
        bands = EXIT_BANDS[exit_type]
        for band in bands:
            if draw < band.threshold:
                return band
        return bands[-1]
