"""
Core utilities — shared exceptions and cross-cutting concerns.
"""

from backend_buybot.core.exceptions import (
    BuyBotError,
    ConfigError,
    EnrichmentError,
    MalformedEventError,
    StoreUnavailableError,
)

__all__ = [
    "BuyBotError",
    "ConfigError",
    "EnrichmentError",
    "MalformedEventError",
    "StoreUnavailableError",
]
