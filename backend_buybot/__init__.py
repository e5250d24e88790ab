"""
Backend BuyBot — token buy alerts from a live Solana transaction stream.

Listens to transactions touching monitored token mints, computes the signer's
balance changes, matches them against per-destination thresholds, enriches
with market data, and queues formatted alert payloads for delivery. Modular
layout: listener schema, pipeline stages, stores, alert queue, and worker.
"""

__version__ = "0.1.0"
