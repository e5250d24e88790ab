"""
Environment variable loading for BuyBot endpoints.

- SOLANA_RPC_URL: HTTP RPC endpoint (read from .env)
- SOLANA_WS_URL: WebSocket endpoint for transactionSubscribe
- HELIUS_API_KEY: fallback for both URLs when they are not set explicitly
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_buybot/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
MAINNET_WS_URL = "wss://api.mainnet-beta.solana.com"
HELIUS_RPC_URL_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={key}"
# transactionSubscribe is only served by the enhanced (atlas) websocket
HELIUS_WS_URL_TEMPLATE = "wss://atlas-mainnet.helius-rpc.com/?api-key={key}"


def load_buybot_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    load_dotenv(_ENV_PATH)


def get_solana_rpc_url() -> str:
    """
    Resolve Solana HTTP RPC URL from env.
    Order: SOLANA_RPC_URL > HELIUS_API_KEY > public mainnet.
    """
    load_buybot_env()
    url = (os.getenv("SOLANA_RPC_URL") or os.getenv("BACKEND_RPC") or "").strip()
    if url:
        return url
    key = (os.getenv("HELIUS_API_KEY") or "").strip()
    if key:
        return HELIUS_RPC_URL_TEMPLATE.format(key=key)
    return MAINNET_RPC_URL


def get_solana_ws_url() -> str:
    """
    Resolve the WebSocket URL used for the transaction stream.
    Order: SOLANA_WS_URL > HELIUS_API_KEY > public mainnet.
    """
    load_buybot_env()
    url = (os.getenv("SOLANA_WS_URL") or "").strip()
    if url:
        return url
    key = (os.getenv("HELIUS_API_KEY") or "").strip()
    if key:
        return HELIUS_WS_URL_TEMPLATE.format(key=key)
    return MAINNET_WS_URL


def mask_api_key(url: str) -> str:
    """Hide the api-key query value so URLs can be logged."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url
