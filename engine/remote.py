"""Remote store boundary: balance writers and holding persistence.

The engine talks to the hosted backend only through these protocols.  The
transport is not ours to specify, so implementations just need to raise on
failure.  ``InMemoryBackend`` is the stand-in used by the CLI and tests; its
availability switches simulate outages of individual paths.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class BalanceWriter(Protocol):
    """One route for committing a user's cash balance remotely."""

    async def write_balance(self, user_id: str, new_balance: float) -> None:
        ...


class HoldingStore(Protocol):
    """Persistence for holding records (schema owned by the backend)."""

    async def create_holding(self, record: dict[str, Any]) -> str:
        """Persist a new holding and return its id."""
        ...

    async def update_holding(self, holding_id: str, fields: dict[str, Any]) -> None:
        ...

    async def mark_sold(self, holding_id: str) -> None:
        ...


class RemoteUnavailable(ConnectionError):
    """Raised by the in-memory backend when a path is switched off."""


class InMemoryBackend:
    """Dict-backed system of record with per-path outage switches.

    ``privileged`` and ``direct`` expose the two balance routes as separate
    ``BalanceWriter`` objects so the ledger can be wired exactly as it would
    be against the real backend.  ``latency_seconds`` lets tests exercise the
    ledger timeout.
    """

    def __init__(
        self,
        privileged_available: bool = True,
        direct_available: bool = True,
        holdings_available: bool = True,
        latency_seconds: float = 0.0,
    ) -> None:
        self.privileged_available = privileged_available
        self.direct_available = direct_available
        self.holdings_available = holdings_available
        self.latency_seconds = latency_seconds
        self.balances: dict[str, float] = {}
        self.holdings: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.privileged = _BalanceRoute(self, "privileged")
        self.direct = _BalanceRoute(self, "direct")

    async def _wait(self) -> None:
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)

    async def _write(self, path: str, user_id: str, new_balance: float) -> None:
        self.calls.append((path, user_id))
        await self._wait()
        available = self.privileged_available if path == "privileged" else self.direct_available
        if not available:
            raise RemoteUnavailable(f"{path} balance update unavailable")
        self.balances[user_id] = new_balance

    # ------------------------------------------------------------------
    # HoldingStore
    # ------------------------------------------------------------------

    async def create_holding(self, record: dict[str, Any]) -> str:
        self.calls.append(("create_holding", record["user_id"]))
        await self._wait()
        self._require_holdings()
        holding_id = uuid.uuid4().hex[:12]
        self.holdings[holding_id] = dict(record)
        return holding_id

    async def update_holding(self, holding_id: str, fields: dict[str, Any]) -> None:
        self.calls.append(("update_holding", holding_id))
        await self._wait()
        self._require_holdings()
        self.holdings[holding_id].update(fields)

    async def mark_sold(self, holding_id: str) -> None:
        self.calls.append(("mark_sold", holding_id))
        await self._wait()
        self._require_holdings()
        self.holdings[holding_id]["status"] = "sold"

    def _require_holdings(self) -> None:
        if not self.holdings_available:
            raise RemoteUnavailable("holding store unavailable")


class _BalanceRoute:
    """``BalanceWriter`` view over one route of an ``InMemoryBackend``."""

    def __init__(self, backend: InMemoryBackend, path: str) -> None:
        self._backend = backend
        self._path = path

    async def write_balance(self, user_id: str, new_balance: float) -> None:
        await self._backend._write(self._path, user_id, new_balance)
