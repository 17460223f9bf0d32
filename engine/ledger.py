"""Balance ledger: the only component allowed to change cash balances.

Every balance change goes to the remote system of record first and is only
mirrored into the local cache once a remote write has succeeded::

    privileged update  --fails/times out-->  direct update  --fails-->  not committed
           |                                       |
           +------------ success ------------------+--> local cache updated

When both routes fail the cached balance keeps its previous value and the
caller must treat the economic action as not committed.
"""

from __future__ import annotations

import asyncio
import logging
import math

from engine.errors import RemoteWriteFailure, ValidationError
from engine.remote import BalanceWriter
from models.account import Account, LedgerWrite
from models.config import LedgerConfig

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> float:
    """Round to a whole unit with halves going up (``90000.5 -> 90001``)."""
    return float(math.floor(value + 0.5))


class BalanceLedger:
    """Owns cached ``Account`` records and synchronises balances remotely.

    Instantiate one ledger per process and share it between the per-user
    portfolio services.  Each user has one ``asyncio.Lock``: ``debit`` and
    ``credit`` read the cached balance and write the new one under it, so
    overlapping calls for the same user never lose an update.
    """

    def __init__(
        self,
        config: LedgerConfig,
        privileged: BalanceWriter,
        direct: BalanceWriter,
    ) -> None:
        self._config = config
        self._privileged = privileged
        self._direct = direct
        self._accounts: dict[str, Account] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._journal: list[LedgerWrite] = []

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def register(self, account: Account) -> Account:
        """Seed the cache with an account read at session start."""
        self._accounts[account.user_id] = account
        self._locks.setdefault(account.user_id, asyncio.Lock())
        return account

    def account(self, user_id: str) -> Account:
        try:
            return self._accounts[user_id]
        except KeyError:
            raise KeyError(f"No account cached for user '{user_id}'.") from None

    def balance(self, user_id: str) -> float:
        return self.account(user_id).cash_available

    def round_amount(self, amount: float) -> float:
        """*amount* as the ledger will book it (whole units when rounding is on)."""
        return round_half_up(amount) if self._config.round_balances else float(amount)

    @property
    def journal(self) -> list[LedgerWrite]:
        """Every write attempted so far, successful or not."""
        return list(self._journal)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def apply_delta(self, user_id: str, new_balance: float) -> LedgerWrite:
        """Commit *new_balance* remotely, then locally.

        Returns a ``LedgerWrite`` that is truthy when the balance was
        committed.  Never raises for remote failures.
        """
        self.account(user_id)
        async with self._locks[user_id]:
            return await self._write(user_id, new_balance)

    async def debit(self, user_id: str, amount: float) -> LedgerWrite:
        """Remove *amount* from the cash balance; overdrafts are rejected."""
        if amount < 0:
            raise ValidationError(f"Debit amount must be non-negative, got {amount}.")
        self.account(user_id)
        async with self._locks[user_id]:
            balance = self.balance(user_id)
            if amount > balance:
                raise ValidationError("Insufficient funds")
            return await self._commit(user_id, balance - amount)

    async def credit(self, user_id: str, amount: float) -> LedgerWrite:
        """Add *amount* to the cash balance."""
        if amount < 0:
            raise ValidationError(f"Credit amount must be non-negative, got {amount}.")
        self.account(user_id)
        async with self._locks[user_id]:
            return await self._commit(user_id, self.balance(user_id) + amount)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _commit(self, user_id: str, new_balance: float) -> LedgerWrite:
        result = await self._write(user_id, new_balance)
        if not result.success:
            raise RemoteWriteFailure(
                f"Balance update not committed for user {user_id}: " + "; ".join(result.errors),
                path="direct",
            )
        return result

    async def _write(self, user_id: str, new_balance: float) -> LedgerWrite:
        # Caller holds the user's lock.
        account = self.account(user_id)
        previous = account.cash_available
        if self._config.round_balances:
            new_balance = round_half_up(new_balance)
        if new_balance < 0:
            raise ValidationError(f"Balance cannot go negative (requested {new_balance:.2f}).")

        errors: list[str] = []
        path = None
        for name, writer in (("privileged", self._privileged), ("direct", self._direct)):
            try:
                await asyncio.wait_for(
                    writer.write_balance(user_id, new_balance),
                    timeout=self._config.remote_timeout_seconds,
                )
            except asyncio.TimeoutError:
                errors.append(f"{name}: timed out after {self._config.remote_timeout_seconds}s")
                logger.warning("Balance update via %s path timed out for user %s.", name, user_id)
            except Exception as exc:
                errors.append(f"{name}: {exc}")
                logger.warning("Balance update via %s path failed for user %s: %s", name, user_id, exc)
            else:
                path = name
                break

        if path is None and self._config.optimistic_on_failure:
            logger.warning(
                "Both balance paths failed for user %s; applying locally (degraded mode).",
                user_id,
            )
            path = "optimistic"

        if path is None:
            logger.error(
                "Balance update for user %s not committed; keeping %.2f.", user_id, previous
            )
        else:
            account.cash_available = new_balance
            logger.info(
                "Balance for user %s: %.2f -> %.2f (via %s).", user_id, previous, new_balance, path
            )

        result = LedgerWrite(
            user_id=user_id,
            previous_balance=previous,
            new_balance=new_balance,
            success=path is not None,
            path=path,
            errors=errors,
        )
        self._journal.append(result)
        return result
