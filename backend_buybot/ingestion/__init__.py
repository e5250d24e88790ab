# Real-time Solana ingestion: enhanced WebSocket stream feeding the event processor.

from backend_buybot.ingestion.solana_stream import (
    StreamConfig,
    TransactionStream,
    build_subscribe_request,
)

__all__ = [
    "StreamConfig",
    "TransactionStream",
    "build_subscribe_request",
]
