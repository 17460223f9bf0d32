"""Wiring for one user session: random source, ledger, services and ticker."""

from __future__ import annotations

from dataclasses import dataclass

from engine.exits import ExitResolver
from engine.ledger import BalanceLedger
from engine.market import MarketSimulator
from engine.negotiation import NegotiationProtocol
from engine.portfolio import PortfolioService
from engine.random_variate import RandomVariate
from engine.remote import InMemoryBackend
from engine.scheduler import MarketTicker
from models.account import Account
from models.config import EngineConfig


@dataclass
class EngineSession:
    """Everything a client needs for one authenticated user."""

    config: EngineConfig
    rng: RandomVariate
    backend: InMemoryBackend
    ledger: BalanceLedger
    negotiation: NegotiationProtocol
    portfolio: PortfolioService
    ticker: MarketTicker


def create_session(
    config: EngineConfig,
    backend: InMemoryBackend | None = None,
    account: Account | None = None,
) -> EngineSession:
    """Build an ``EngineSession`` from *config*.

    Without a *backend*, an in-memory one is created with the availability
    switches from ``config.remote``.  Without an *account*, one is seeded with
    ``config.initial_cash``.
    """
    if backend is None:
        backend = InMemoryBackend(
            privileged_available=config.remote.privileged_available,
            direct_available=config.remote.direct_available,
            holdings_available=config.remote.holdings_available,
        )
    if account is None:
        account = Account(user_id=config.user_id, cash_available=config.initial_cash)
    backend.balances.setdefault(account.user_id, account.cash_available)

    rng = RandomVariate(config.seed)
    ledger = BalanceLedger(config.ledger, privileged=backend.privileged, direct=backend.direct)
    ledger.register(account)
    negotiation = NegotiationProtocol(config.negotiation, rng)
    portfolio = PortfolioService(
        user_id=account.user_id,
        ledger=ledger,
        store=backend,
        market=MarketSimulator(config.market, rng),
        negotiation=negotiation,
        exits=ExitResolver(rng),
    )
    ticker = MarketTicker(portfolio, config.market.tick_interval_seconds)
    return EngineSession(
        config=config,
        rng=rng,
        backend=backend,
        ledger=ledger,
        negotiation=negotiation,
        portfolio=portfolio,
        ticker=ticker,
    )
