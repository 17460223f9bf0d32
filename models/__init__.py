"""Data models for the pitch portfolio simulation engine.

The engine services, the session runner and the tests all import from models.
"""

from models.account import Account, LedgerWrite
from models.catalog import DEFAULT_MIN_INVESTMENT, StartupCatalogEntry
from models.config import (
    EngineConfig,
    ExitAction,
    InvestAction,
    LedgerConfig,
    MarketConfig,
    NegotiateAction,
    NegotiationConfig,
    PassAction,
    RemoteConfig,
    SellAction,
    TickAction,
)
from models.holding import Holding, HoldingStatus, PortfolioSnapshot
from models.log import ActionLog, SessionLog
from models.negotiation import (
    ExitOutcome,
    ExitType,
    NegotiationSession,
    NegotiationStage,
    ResolvedOffer,
)

__all__ = [
    # account
    "Account",
    "LedgerWrite",
    # catalog
    "DEFAULT_MIN_INVESTMENT",
    "StartupCatalogEntry",
    # config
    "EngineConfig",
    "ExitAction",
    "InvestAction",
    "LedgerConfig",
    "MarketConfig",
    "NegotiateAction",
    "NegotiationConfig",
    "PassAction",
    "RemoteConfig",
    "SellAction",
    "TickAction",
    # holding
    "Holding",
    "HoldingStatus",
    "PortfolioSnapshot",
    # log
    "ActionLog",
    "SessionLog",
    # negotiation
    "ExitOutcome",
    "ExitType",
    "NegotiationSession",
    "NegotiationStage",
    "ResolvedOffer",
]
