"""Exception types raised by the engine.

Every failure here is local to one user action and recoverable by retrying
that action; nothing is fatal to the process.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for engine failures."""


class ValidationError(EngineError, ValueError):
    """Input rejected before any state change (amount, cash, minimum, fraction)."""


class RemoteWriteFailure(EngineError):
    """A remote write did not commit.

    ``path`` names the route that failed last (``"privileged"``, ``"direct"``
    or ``"holdings"``).
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class NegotiationStateError(EngineError):
    """A negotiation transition was requested from the wrong stage."""


class HoldingNotFound(EngineError, KeyError):
    """No active holding with the requested id."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Holding not found"
