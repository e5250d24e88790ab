"""
Application-level exceptions.

Each pipeline stage raises one of these for a recoverable, expected failure;
the event processor maps them to an EventOutcome at the per-event boundary.
Anything else reaching that boundary is an unexpected fault.
"""

from __future__ import annotations


class BuyBotError(Exception):
    """Base class for all recoverable BuyBot errors."""


class ConfigError(BuyBotError):
    """Invalid or missing configuration value."""


class MalformedEventError(BuyBotError):
    """Transaction event failed schema validation or has no identifiable signer."""


class StoreUnavailableError(BuyBotError):
    """Signature store or token registry timed out or failed."""


class EnrichmentError(BuyBotError):
    """Market data for a mint could not be assembled (lookup failed, price missing, zero supply)."""

    def __init__(self, mint: str, reason: str) -> None:
        super().__init__(f"{reason} (mint={mint})")
        self.mint = mint
        self.reason = reason
