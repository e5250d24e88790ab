"""
Solana transaction parser — raw stream payloads to validated TransactionEvent.

Purely structural; no balance or threshold logic. Also unwraps the
transactionNotification envelope the enhanced websocket sends.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from backend_buybot.core.exceptions import MalformedEventError
from backend_buybot.solana_listener.models import TransactionEvent

NOTIFICATION_METHOD = "transactionNotification"


def parse_event(raw: Any) -> TransactionEvent:
    """
    Validate a transactionNotification result into a TransactionEvent.

    Raises MalformedEventError (with the first validation error) instead of
    letting a type fault surface mid-pipeline.
    """
    if isinstance(raw, TransactionEvent):
        return raw
    if not isinstance(raw, dict):
        raise MalformedEventError(f"Event must be an object, got {type(raw).__name__}")
    try:
        return TransactionEvent.model_validate(raw)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        loc = ".".join(str(p) for p in first.get("loc", ()))
        raise MalformedEventError(
            f"Invalid transaction event at {loc or '<root>'}: {first.get('msg', str(e))}"
        ) from e


def notification_result(message: dict[str, Any]) -> dict[str, Any] | None:
    """Return params.result of a transactionNotification message, else None."""
    if message.get("method") != NOTIFICATION_METHOD:
        return None
    params = message.get("params") or {}
    result = params.get("result")
    return result if isinstance(result, dict) else None
