"""
Structured logging for Backend BuyBot.

JSON logs with timestamp, event_type, and per-event context (signature, mint, destination_id).
"""

from backend_buybot.buybot_logging.logger import bind_signature, event_context, get_logger, redact

__all__ = ["bind_signature", "event_context", "get_logger", "redact"]
