"""
Solana listener package — transaction event schema and parsing.

Validates raw transactionNotification payloads into typed TransactionEvent
records consumed by the pipeline.
"""

from backend_buybot.solana_listener.models import (
    AccountKey,
    TokenBalance,
    TransactionEvent,
)
from backend_buybot.solana_listener.parser import notification_result, parse_event

__all__ = [
    "AccountKey",
    "TokenBalance",
    "TransactionEvent",
    "notification_result",
    "parse_event",
]
