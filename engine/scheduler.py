"""Background market ticker: one scheduled task per user session."""

from __future__ import annotations

import asyncio
import logging

from engine.portfolio import PortfolioService

logger = logging.getLogger(__name__)


class MarketTicker:
    """Calls ``PortfolioService.tick`` every *interval* seconds until stopped.

    ``start`` is idempotent, so screens or callers that start the ticker
    repeatedly still share one cadence.
    """

    def __init__(self, service: PortfolioService, interval: float) -> None:
        if interval <= 0:
            raise ValueError(f"Tick interval must be positive, got {interval}.")
        self._service = service
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking on the running event loop (no-op if already running)."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"market-ticker-{self._service.user_id}"
        )
        logger.info(
            "Market ticker started for user %s every %.1fs.", self._service.user_id, self._interval
        )

    async def stop(self) -> None:
        """Cancel the ticker and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Market ticker stopped for user %s.", self._service.user_id)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._service.tick()
            except Exception:
                logger.exception("Market tick failed for user %s.", self._service.user_id)
