"""Market model: one geometric-Brownian-motion-like step per tick."""

from __future__ import annotations

import logging

from engine.random_variate import RandomVariate
from models.config import MarketConfig
from models.holding import Holding

logger = logging.getLogger(__name__)


class MarketSimulator:
    """Advances the paper value of open holdings.

    ``tick`` has no side effects beyond the draws it takes from the random
    source: it returns updated copies and leaves its input untouched.  The
    periodic ticker and user-triggered nudges (e.g. a "pass" swipe) both go
    through this method.
    """

    def __init__(self, config: MarketConfig, rng: RandomVariate) -> None:
        self._config = config
        self._rng = rng

    @property
    def config(self) -> MarketConfig:
        return self._config

    def tick(self, holdings: list[Holding]) -> list[Holding]:
        """Return *holdings* advanced by one step. Sold holdings pass through."""
        updated: list[Holding] = []
        for holding in holdings:
            if not holding.is_active:
                updated.append(holding)
                continue
            updated.append(self._step(holding))
        logger.debug("Ticked %d holding(s).", len(updated))
        return updated

    def _step(self, holding: Holding) -> Holding:
        old_value = holding.current_value
        delta = self._rng.next_standard_normal() * self._config.volatility + self._config.drift
        new_value = old_value * (1 + delta)
        if old_value > 0:
            change_percent = (new_value - old_value) / old_value * 100
        else:
            # Zero stays zero; no percentage is defined.
            new_value = 0.0
            change_percent = 0.0
        return holding.model_copy(
            update={"current_value": new_value, "change_percent": change_percent}
        )
