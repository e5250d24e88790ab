"""
Alerts package — per-destination outbound queues and the Telegram dispatcher.
"""

from backend_buybot.alerts.queue_store import DestinationQueueStore
from backend_buybot.alerts.telegram import TelegramDispatcher

__all__ = ["DestinationQueueStore", "TelegramDispatcher"]
