"""
Transaction-diff and notification-composition pipeline.

Stages: idempotency guard (guard), balance diff (diff), threshold matcher
(matcher), market data enricher (enricher), notification composer (composer).
EventProcessor in pipeline.processor runs them for one event.
"""

from backend_buybot.pipeline.models import (
    EventOutcome,
    MarketSnapshot,
    MonitoredToken,
    NotificationPayload,
    ProcessResult,
    TokenChange,
)

__all__ = [
    "EventOutcome",
    "MarketSnapshot",
    "MonitoredToken",
    "NotificationPayload",
    "ProcessResult",
    "TokenChange",
]
