"""Domain exceptions for the Gold Digger pipeline.

All domain-specific exceptions inherit from ``GoldDiggerError`` so callers
can catch the full family with a single ``except`` clause when needed.
Only :class:`AllTiersExhaustedError` is expected to cross the router
boundary; every other upstream failure is recovered inside a pipeline node.
"""

from __future__ import annotations

from typing import Any


class GoldDiggerError(Exception):
    """Base exception for all Gold Digger domain errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class ConfigurationError(GoldDiggerError):
    """Raised when the configuration cannot support the requested operation.

    The common case is a model call with no backend credentials configured.
    """


class GovernanceBlockedError(GoldDiggerError):
    """Raised by :meth:`SafetyGovernor.enforce` for a blocked request.

    The orchestrator never raises this; it routes to the ``blocked`` stage
    instead.
    """

    def __init__(
        self,
        message: str = "Request blocked by safety governor",
        decision: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.decision = decision


class MarketDataUnavailableError(GoldDiggerError):
    """Raised by the market-data client when a feed returns no usable data."""

    def __init__(
        self,
        message: str = "Market data unavailable",
        symbol: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.symbol = symbol


class ParseFailureError(GoldDiggerError):
    """Raised when a model's structured output cannot be parsed as JSON."""

    def __init__(
        self,
        message: str = "Could not parse structured output",
        raw: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.raw = raw


class AllTiersExhaustedError(GoldDiggerError):
    """Raised when every tier and backend in the escalation chain failed.

    Attributes
    ----------
    tried_tiers:
        Tier values tried, in order.
    kind:
        ``"timeout"``, ``"connection"`` or ``"failure"``; used to pick a
        user-facing message without leaking the raw error text.
    """

    def __init__(
        self,
        message: str = "All LLM tiers failed",
        tried_tiers: tuple[str, ...] = (),
        kind: str = "failure",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.tried_tiers = tried_tiers
        self.kind = kind
