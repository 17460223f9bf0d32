"""Per-user portfolio service: the engine's single writer for one user.

The service owns the user's active holdings and routes every economic action
through the same sequence:

1. validate (raises ``ValidationError`` before anything changes);
2. commit the balance through the ``BalanceLedger``;
3. persist the holding change remotely, rolling the balance back if that fails;
4. only then mutate the local holdings and refresh the portfolio value.

All mutations (market ticks included) run under one ``asyncio.Lock`` so a
background tick can never interleave with a sale or exit on the same holding.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from engine.errors import EngineError, HoldingNotFound, RemoteWriteFailure, ValidationError
from engine.exits import ExitResolver
from engine.ledger import BalanceLedger
from engine.market import MarketSimulator
from engine.negotiation import NegotiationProtocol
from engine.offers import compute_equity, validate_offer_amount
from engine.persistence import divestiture_fields, holding_record
from engine.progression import award_investment_xp
from engine.remote import HoldingStore
from models.account import Account
from models.catalog import StartupCatalogEntry
from models.holding import Holding, PortfolioSnapshot
from models.negotiation import ExitOutcome, ExitType, NegotiationSession, ResolvedOffer

logger = logging.getLogger(__name__)


class PortfolioService:
    """Stateful portfolio for one user.

    Instantiate one ``PortfolioService`` per authenticated user session.  The
    ledger may be shared between services; the holdings may not.
    """

    def __init__(
        self,
        user_id: str,
        ledger: BalanceLedger,
        store: HoldingStore,
        market: MarketSimulator,
        negotiation: NegotiationProtocol,
        exits: ExitResolver,
    ) -> None:
        self._user_id = user_id
        self._ledger = ledger
        self._store = store
        self._market = market
        self._negotiation = negotiation
        self._exits = exits
        self._holdings: dict[str, Holding] = {}
        self._lock = asyncio.Lock()
        self._ticks = 0

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def account(self) -> Account:
        return self._ledger.account(self._user_id)

    @property
    def holdings(self) -> list[Holding]:
        """Active holdings, in creation order."""
        return list(self._holdings.values())

    @property
    def portfolio_value(self) -> float:
        return sum(h.current_value for h in self._holdings.values())

    @property
    def tick_count(self) -> int:
        return self._ticks

    def get_holding(self, holding_id: str) -> Holding:
        try:
            return self._holdings[holding_id]
        except KeyError:
            raise HoldingNotFound(f"No active holding '{holding_id}'.") from None

    def snapshot(self) -> PortfolioSnapshot:
        return PortfolioSnapshot(
            user_id=self._user_id,
            cash=self._ledger.balance(self._user_id),
            holdings=self.holdings,
        )

    def restore(self, holdings: list[Holding]) -> None:
        """Load holdings read from the store at session start. Sold ones are dropped."""
        self._holdings = {h.id: h for h in holdings if h.is_active and h.user_id == self._user_id}
        self._refresh()

    # ------------------------------------------------------------------
    # Market
    # ------------------------------------------------------------------

    async def tick(self) -> list[Holding]:
        """Advance every active holding one market step."""
        async with self._lock:
            updated = self._market.tick(self.holdings)
            self._holdings = {h.id: h for h in updated}
            self._ticks += 1
            self._refresh()
            return self.holdings

    # ------------------------------------------------------------------
    # Investing
    # ------------------------------------------------------------------

    def open_negotiation(
        self,
        entry: StartupCatalogEntry,
        amount: float,
        requested_equity: float,
    ) -> NegotiationSession:
        """Start an offer against *entry* using the user's current cash."""
        return self._negotiation.open(
            self._user_id,
            entry,
            amount,
            requested_equity,
            cash_available=self._ledger.balance(self._user_id),
        )

    async def invest(self, entry: StartupCatalogEntry, amount: Any) -> Holding:
        """Buy in at fair value ("Invest now"): equity = amount / valuation."""
        amount = validate_offer_amount(
            amount, self._ledger.balance(self._user_id), entry.min_investment
        )
        amount = self._ledger.round_amount(amount)
        offer = ResolvedOffer(
            user_id=self._user_id,
            startup_id=entry.id,
            amount=amount,
            equity=compute_equity(amount, entry.valuation),
            via="direct",
        )
        return await self.commit_offer(offer)

    async def commit_offer(self, offer: ResolvedOffer) -> Holding:
        """Debit cash and create the holding for finalized terms.

        The amount is booked as the ledger rounds it, so the holding's
        invested amount always equals the cash taken.  Raises
        ``ValidationError`` when cash no longer covers the amount and
        ``RemoteWriteFailure`` when either the balance or the holding could
        not be persisted; in both cases nothing is committed.
        """
        if offer.user_id != self._user_id:
            raise ValidationError(f"Offer belongs to user '{offer.user_id}'.")
        amount = self._ledger.round_amount(offer.amount)
        if amount <= 0:
            raise ValidationError("Investment amount must be greater than 0")
        async with self._lock:
            if amount > self._ledger.balance(self._user_id):
                raise ValidationError("Insufficient funds")
            record = holding_record(
                user_id=self._user_id,
                startup_id=offer.startup_id,
                amount=amount,
                equity=offer.equity,
                current_value=amount,
            )

            try:
                write = await self._ledger.debit(self._user_id, amount)
            except RemoteWriteFailure as exc:
                raise RemoteWriteFailure(
                    f"Investment not completed: {exc}", path=exc.path
                ) from exc

            try:
                holding_id = await self._store.create_holding(record)
            except Exception as exc:
                await self._roll_back(
                    write.previous_balance - write.new_balance, f"holding create failed: {exc}"
                )
                raise RemoteWriteFailure(
                    f"Investment not completed: {exc}", path="holdings"
                ) from exc

            holding = Holding(
                id=holding_id,
                user_id=self._user_id,
                startup_id=offer.startup_id,
                invested_amount=amount,
                equity_fraction=offer.equity,
                current_value=amount,
            )
            self._holdings[holding.id] = holding
            award_investment_xp(self.account, amount)
            self._refresh()
            logger.info(
                "User %s invested %.2f in '%s' for %.4f equity (%s).",
                self._user_id,
                amount,
                offer.startup_id,
                offer.equity,
                offer.via,
            )
            return holding

    # ------------------------------------------------------------------
    # Selling
    # ------------------------------------------------------------------

    async def exit(
        self,
        holding_id: str,
        exit_type: ExitType | str,
        sell_fraction: float = 1.0,
    ) -> ExitOutcome:
        """Resolve an IPO / acquisition / liquidation for a holding and settle it."""
        async with self._lock:
            holding = self.get_holding(holding_id)
            outcome = self._exits.resolve_exit(holding, exit_type, sell_fraction)
            await self._settle(outcome)
            return outcome

    async def sell(self, holding_id: str, sell_fraction: float = 1.0) -> ExitOutcome:
        """Sell part or all of a holding at its current value."""
        async with self._lock:
            holding = self.get_holding(holding_id)
            outcome = self._exits.sell_at_market(holding, sell_fraction)
            await self._settle(outcome)
            return outcome

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _settle(self, outcome: ExitOutcome) -> None:
        """Credit the payout, persist the holding change, then apply it locally."""
        after = outcome.holding
        fields = None if not after.is_active else divestiture_fields(after)

        try:
            write = await self._ledger.credit(self._user_id, outcome.payout)
        except RemoteWriteFailure as exc:
            raise RemoteWriteFailure(f"Sale not completed: {exc}", path=exc.path) from exc

        try:
            if fields is None:
                await self._store.mark_sold(after.id)
            else:
                await self._store.update_holding(after.id, fields)
        except Exception as exc:
            await self._roll_back(
                write.previous_balance - write.new_balance, f"holding update failed: {exc}"
            )
            raise RemoteWriteFailure(f"Sale not completed: {exc}", path="holdings") from exc

        if after.is_active:
            self._holdings[after.id] = after
        else:
            del self._holdings[after.id]
        self._refresh()
        logger.info(
            "User %s sold %.0f%% of holding %s for %.2f (multiplier %.3f).",
            self._user_id,
            outcome.sell_fraction * 100,
            outcome.holding_id,
            outcome.payout,
            outcome.multiplier,
        )

    async def _roll_back(self, delta: float, reason: str) -> None:
        """Undo a committed balance change by applying *delta* to the current balance."""
        logger.warning("Rolling back balance for user %s: %s", self._user_id, reason)
        try:
            if delta >= 0:
                await self._ledger.credit(self._user_id, delta)
            else:
                await self._ledger.debit(self._user_id, -delta)
        except EngineError as exc:
            logger.error(
                "Rollback failed for user %s; remote balance may be off by %.2f: %s",
                self._user_id,
                delta,
                exc,
            )

    def _refresh(self) -> None:
        self.account.portfolio_value = self.portfolio_value
