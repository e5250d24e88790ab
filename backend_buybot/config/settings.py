"""
Application settings loaded from environment variables and .env.

Single typed Settings object shared by the stores, pipeline, stream, and
dispatcher. Numeric values are validated at load; a bad value raises
ConfigError instead of surfacing later as a runtime fault.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from backend_buybot.config.env import get_solana_rpc_url, get_solana_ws_url, load_buybot_env
from backend_buybot.core.exceptions import ConfigError

DEFAULT_PRICE_API_URL = "https://price.jup.ag/v6/price"
DEFAULT_NATIVE_ASSET_ID = "SOL"

DEFAULT_BUYER_URL = "https://solscan.io/account/"
DEFAULT_TXN_URL = "https://solscan.io/tx/"
DEFAULT_SCREENER_URL = "https://dexscreener.com/solana/"
DEFAULT_SWAP_URL = "https://jup.ag/swap/USDC-"


@dataclass(frozen=True)
class LinkConfig:
    """URL prefixes for the outbound links in an alert caption."""

    buyer_url: str = DEFAULT_BUYER_URL
    txn_url: str = DEFAULT_TXN_URL
    screener_url: str = DEFAULT_SCREENER_URL
    swap_url: str = DEFAULT_SWAP_URL


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    ws_url: str
    db_url: str
    price_api_url: str = DEFAULT_PRICE_API_URL
    native_asset_id: str = DEFAULT_NATIVE_ASSET_ID
    rpc_timeout_sec: float = 10.0
    price_timeout_sec: float = 10.0
    store_timeout_sec: float = 5.0
    max_concurrent_events: int = 32
    reconnect_min_sec: float = 1.0
    reconnect_max_sec: float = 60.0
    heartbeat_interval_sec: float = 30.0
    telegram_bot_token: str = ""
    dispatch_interval_sec: float = 1.0
    dispatch_max_per_window: int = 20
    dispatch_window_sec: float = 60.0
    queue_max_depth: int = 1000
    links: LinkConfig = LinkConfig()


def _env_str(name: str, default: str) -> str:
    return (os.getenv(name) or "").strip() or default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def _database_url() -> str:
    """BUYBOT_DB_URL or DATABASE_URL if set; else SQLite at DB_PATH (default buybot.db)."""
    url = (os.getenv("BUYBOT_DB_URL") or os.getenv("DATABASE_URL") or "").strip()
    if url:
        return url
    path = (os.getenv("DB_PATH") or "").strip() or "buybot.db"
    return f"sqlite:///{path}"


def load_settings() -> Settings:
    """Build Settings from the current environment (no caching)."""
    load_buybot_env()
    links = LinkConfig(
        buyer_url=_env_str("BUYER_URL", DEFAULT_BUYER_URL),
        txn_url=_env_str("TXN_URL", DEFAULT_TXN_URL),
        screener_url=_env_str("SCREENER_URL", DEFAULT_SCREENER_URL),
        swap_url=_env_str("SWAP_URL", DEFAULT_SWAP_URL),
    )
    return Settings(
        rpc_url=get_solana_rpc_url(),
        ws_url=get_solana_ws_url(),
        db_url=_database_url(),
        price_api_url=_env_str("PRICE_API_URL", DEFAULT_PRICE_API_URL),
        native_asset_id=_env_str("NATIVE_ASSET_ID", DEFAULT_NATIVE_ASSET_ID),
        rpc_timeout_sec=_env_float("RPC_TIMEOUT_SEC", 10.0),
        price_timeout_sec=_env_float("PRICE_TIMEOUT_SEC", 10.0),
        store_timeout_sec=_env_float("STORE_TIMEOUT_SEC", 5.0),
        max_concurrent_events=_env_int("MAX_CONCURRENT_EVENTS", 32),
        reconnect_min_sec=_env_float("RECONNECT_MIN_SEC", 1.0),
        reconnect_max_sec=_env_float("RECONNECT_MAX_SEC", 60.0),
        heartbeat_interval_sec=_env_float("HEARTBEAT_INTERVAL_SEC", 30.0),
        telegram_bot_token=_env_str("TELEGRAM_BOT_TOKEN", ""),
        dispatch_interval_sec=_env_float("DISPATCH_INTERVAL_SEC", 1.0),
        dispatch_max_per_window=_env_int("DISPATCH_MAX_PER_WINDOW", 20),
        dispatch_window_sec=_env_float("DISPATCH_WINDOW_SEC", 60.0),
        queue_max_depth=_env_int("QUEUE_MAX_DEPTH", 1000),
        links=links,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return the process-wide settings, loaded once.

    Tests that change env should call get_settings.cache_clear() or use load_settings().
    """
    return load_settings()
