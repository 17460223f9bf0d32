"""Async session runner: replays a scripted user session.

Lifecycle:
    1. Load config and the startup catalog.
    2. Build the engine session (ledger, portfolio service, ticker).
    3. Optionally start the background market ticker.
    4. For each scripted action:
        - Snapshot cash and portfolio value.
        - Dispatch the action to the portfolio service.
        - Log the action, including rejections and remote failures.
    5. Stop the ticker, finalise and write the summary.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from engine.catalog_loader import load_catalog
from engine.errors import EngineError, RemoteWriteFailure
from engine.offers import default_offer_amount, default_requested_equity
from engine.progression import investor_title
from engine.session import EngineSession, create_session
from engine.session_logging import SessionLogger, run_name_from_config_path
from models.catalog import StartupCatalogEntry
from models.config import (
    EngineConfig,
    ExitAction,
    InvestAction,
    NegotiateAction,
    PassAction,
    SellAction,
    TickAction,
)
from models.holding import Holding
from models.log import ActionLog

logger = logging.getLogger(__name__)


class AsyncSessionRunner:
    """Drives one scripted session against a fresh engine."""

    def __init__(
        self,
        config: EngineConfig,
        config_yaml_path: str | None = None,
        output_dir: str = "results",
        run_name: str | None = None,
    ) -> None:
        self._config = config
        self._config_yaml_path = config_yaml_path
        self._run_name = run_name or (
            run_name_from_config_path(config_yaml_path) if config_yaml_path else "session"
        )
        self._session_logger = SessionLogger(output_dir, config, self._run_name)
        self._session: EngineSession | None = None
        self._catalog: dict[str, StartupCatalogEntry] = {}

    @property
    def session(self) -> EngineSession | None:
        return self._session

    async def run(self) -> dict[str, Any]:
        """Execute the full script and return the run summary."""
        self._session_logger.init_run(self._config_yaml_path)
        self._catalog = load_catalog(
            self._config.catalog_path,
            default_min_investment=self._config.negotiation.default_min_investment,
        )
        session = self._session = create_session(self._config)

        logger.info(
            "Starting session '%s': %d action(s), %d startup(s), cash $%.2f.",
            self._run_name,
            len(self._config.actions),
            len(self._catalog),
            session.ledger.balance(self._config.user_id),
        )

        if self._config.background_ticker:
            session.ticker.start()
        try:
            for idx, action in enumerate(self._config.actions):
                self._session_logger.session_log.actions.append(
                    await self._run_action(idx, action)
                )
        finally:
            await session.ticker.stop()

        log = self._session_logger.session_log
        log.ledger_writes = session.ledger.journal
        log.ticks = session.portfolio.tick_count
        log.final_portfolio = session.portfolio.snapshot()
        log.final_account = session.portfolio.account.model_copy()

        summary = self._build_summary()
        self._session_logger.finalize(summary)
        logger.info(
            "Session '%s' complete. Output: %s", self._run_name, self._session_logger.run_dir
        )
        return summary

    # ------------------------------------------------------------------
    # Action execution
    # ------------------------------------------------------------------

    async def _run_action(self, idx: int, action: Any) -> ActionLog:
        portfolio = self._session.portfolio
        cash_before = self._session.ledger.balance(portfolio.user_id)
        value_before = portfolio.portfolio_value

        t0 = time.monotonic()
        status = "ok"
        try:
            message = await self._dispatch(action)
        except RemoteWriteFailure as exc:
            status = "failed"
            message = str(exc)
            self._session_logger.record_error(f"Action {idx} ({action.action}): {exc}")
        except EngineError as exc:
            status = "rejected"
            message = str(exc)
            logger.warning("Action %d (%s) rejected: %s", idx, action.action, exc)

        elapsed = time.monotonic() - t0
        return ActionLog(
            index=idx,
            action=action.action,
            status=status,
            message=message,
            cash_before=cash_before,
            cash_after=self._session.ledger.balance(portfolio.user_id),
            portfolio_value_before=value_before,
            portfolio_value_after=portfolio.portfolio_value,
            elapsed_seconds=elapsed,
        )

    async def _dispatch(self, action: Any) -> str:
        portfolio = self._session.portfolio

        if isinstance(action, InvestAction):
            entry = self._entry(action.startup_id)
            amount = action.amount if action.amount is not None else default_offer_amount(entry)
            holding = await portfolio.invest(entry, amount)
            return f"Invested ${holding.invested_amount:,.2f} for {holding.equity_fraction:.2%} of {entry.id}."

        if isinstance(action, NegotiateAction):
            return await self._negotiate(action)

        if isinstance(action, TickAction):
            for _ in range(action.count):
                await portfolio.tick()
            return f"Market advanced {action.count} step(s)."

        if isinstance(action, PassAction):
            await portfolio.tick()
            return f"Passed on {action.startup_id or 'pitch'}."

        if isinstance(action, SellAction):
            holding = self._holding_at(action.holding_index)
            outcome = await portfolio.sell(holding.id, action.sell_fraction)
            return outcome.message

        if isinstance(action, ExitAction):
            holding = self._holding_at(action.holding_index)
            outcome = await portfolio.exit(holding.id, action.exit_type, action.sell_fraction)
            return outcome.message

        raise TypeError(f"Unsupported action: {action!r}")

    async def _negotiate(self, action: NegotiateAction) -> str:
        entry = self._entry(action.startup_id)
        cfg = self._config.negotiation
        amount = action.amount if action.amount is not None else default_offer_amount(entry)
        requested = (
            action.requested_equity
            if action.requested_equity is not None
            else default_requested_equity(amount, entry.valuation, cfg)
        )
        protocol = self._session.negotiation
        session = self._session.portfolio.open_negotiation(entry, amount, requested)
        await protocol.submit(session)

        if action.decision == "cancel":
            protocol.cancel(session)
            return f"Negotiation with {entry.id} cancelled."
        if action.decision == "accept":
            offer = protocol.accept(session)
        else:
            offer = protocol.revise(session)
        holding = await self._session.portfolio.commit_offer(offer)
        return (
            f"Negotiated ${holding.invested_amount:,.2f} for "
            f"{holding.equity_fraction:.2%} of {entry.id} ({offer.via})."
        )

    def _entry(self, startup_id: str) -> StartupCatalogEntry:
        try:
            return self._catalog[startup_id]
        except KeyError:
            raise _ScriptReferenceError(f"Startup '{startup_id}' is not in the catalog.") from None

    def _holding_at(self, index: int) -> Holding:
        holdings = self._session.portfolio.holdings
        if index >= len(holdings):
            raise _ScriptReferenceError(
                f"No holding at index {index} ({len(holdings)} active holding(s))."
            )
        return holdings[index]

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def _build_summary(self) -> dict[str, Any]:
        """Build a lightweight summary dict for the run."""
        log = self._session_logger.session_log
        account = log.final_account
        initial_cash = self._config.initial_cash
        net_worth = account.net_worth if account else 0.0
        statuses = [a.status for a in log.actions]
        return {
            "run_name": self._run_name,
            "initial_cash": initial_cash,
            "final_cash": account.cash_available if account else 0.0,
            "portfolio_value": account.portfolio_value if account else 0.0,
            "net_worth": net_worth,
            "return_pct": ((net_worth - initial_cash) / initial_cash) * 100 if initial_cash else 0.0,
            "active_holdings": len(log.final_portfolio.holdings) if log.final_portfolio else 0,
            "ticks": log.ticks,
            "level": account.level if account else 0,
            "investor_title": investor_title(account.level if account else 0),
            "experience_points": account.experience_points if account else 0,
            "actions_ok": statuses.count("ok"),
            "actions_rejected": statuses.count("rejected"),
            "actions_failed": statuses.count("failed"),
            "ledger_writes": len(log.ledger_writes),
        }


class _ScriptReferenceError(EngineError, LookupError):
    """Script referenced a startup or holding that does not exist."""
