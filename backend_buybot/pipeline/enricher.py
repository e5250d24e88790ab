"""
Market data enricher: supply and price for a mint, joined into a MarketSnapshot.

Two independent fallible lookups run concurrently, each with its own deadline:
  (a) getParsedAccountInfo on the mint (decimals, raw supply) via Solana JSON-RPC
  (b) price quotes for the mint and the native asset in one price API request
Failure of one does not cancel the other; the snapshot is built only if both
succeed, the mint has a price, and the supply is non-zero. Any other outcome
raises EnrichmentError, which drops only the candidates for this mint.
"""

from __future__ import annotations

import asyncio
import itertools
import math
from typing import Any

import httpx
from solders.pubkey import Pubkey

from backend_buybot.buybot_logging import get_logger
from backend_buybot.core.exceptions import EnrichmentError
from backend_buybot.pipeline.models import MarketSnapshot

logger = get_logger(__name__)

DEFAULT_RPC_TIMEOUT_SEC = 10.0
DEFAULT_PRICE_TIMEOUT_SEC = 10.0


def build_snapshot(
    mint: str,
    *,
    decimals: int,
    raw_supply: int,
    token_price_usd: float,
    sol_price_usd: float,
) -> MarketSnapshot:
    """total_supply = raw_supply / 10**decimals; market_cap = floor(total_supply * price)."""
    total_supply = raw_supply / 10**decimals
    if not total_supply:
        raise EnrichmentError(mint, "Total supply not found")
    if not sol_price_usd:
        raise EnrichmentError(mint, "SOL price not found")
    return MarketSnapshot(
        token_price_usd=token_price_usd,
        sol_price_usd=sol_price_usd,
        decimals=decimals,
        total_supply=total_supply,
        market_cap=math.floor(total_supply * token_price_usd),
    )


class MarketDataEnricher:
    """
    Fetches mint metadata from Solana RPC and prices from a Jupiter-style price API.

    The httpx client is shared across events; close it with aclose() (or use
    the enricher as an async context manager).
    """

    def __init__(
        self,
        rpc_url: str,
        price_api_url: str,
        *,
        native_asset_id: str = "SOL",
        rpc_timeout_sec: float = DEFAULT_RPC_TIMEOUT_SEC,
        price_timeout_sec: float = DEFAULT_PRICE_TIMEOUT_SEC,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if not price_api_url.strip():
            raise ValueError("price_api_url must be non-empty")
        self._rpc_url = rpc_url.rstrip("/")
        self._price_api_url = price_api_url
        self._native_asset_id = native_asset_id
        self._rpc_timeout = rpc_timeout_sec
        self._price_timeout = price_timeout_sec
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(max(rpc_timeout_sec, price_timeout_sec))
        )
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "MarketDataEnricher":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_mint_info(self, mint: str) -> tuple[int, int]:
        """Return (decimals, raw_supply) for a mint account; raise on RPC error or missing account."""
        body = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": "getParsedAccountInfo",
            "params": [mint, {"encoding": "jsonParsed"}],
        }
        resp = await self._client.post(self._rpc_url, json=body)
        resp.raise_for_status()
        data = resp.json()
        if "error" in data:
            err = data["error"]
            raise RuntimeError(
                f"Solana RPC error: {err.get('message', err)} (code={err.get('code')})"
            )
        value = (data.get("result") or {}).get("value")
        if not value:
            raise LookupError("Account info not found")
        # base64-encoded data comes back as a list; only jsonParsed mints are usable
        account_data = value.get("data")
        parsed = account_data.get("parsed") if isinstance(account_data, dict) else None
        info = (parsed or {}).get("info") or {}
        if "decimals" not in info or "supply" not in info:
            raise LookupError("Account is not a parsed token mint")
        return int(info["decimals"]), int(info["supply"])

    async def fetch_prices(self, ids: list[str]) -> dict[str, float]:
        """Return id -> USD price for every id the price API knows."""
        resp = await self._client.get(self._price_api_url, params={"ids": ",".join(ids)})
        resp.raise_for_status()
        data = resp.json().get("data") or {}
        prices: dict[str, float] = {}
        for key, entry in data.items():
            if isinstance(entry, dict) and entry.get("price") is not None:
                prices[key] = float(entry["price"])
        return prices

    async def enrich(self, mint: str) -> MarketSnapshot:
        """Return a MarketSnapshot for mint or raise EnrichmentError."""
        try:
            mint = str(Pubkey.from_string(mint))
        except ValueError as e:
            raise EnrichmentError(mint, f"Invalid mint address: {e}") from e

        info_result, price_result = await asyncio.gather(
            asyncio.wait_for(self.fetch_mint_info(mint), timeout=self._rpc_timeout),
            asyncio.wait_for(
                self.fetch_prices([mint, self._native_asset_id]), timeout=self._price_timeout
            ),
            return_exceptions=True,
        )

        if isinstance(info_result, BaseException):
            logger.warning("enrich_account_info_failed", mint=mint, error=repr(info_result))
            raise EnrichmentError(mint, "Account info not found") from info_result
        if isinstance(price_result, BaseException):
            logger.warning("enrich_price_failed", mint=mint, error=repr(price_result))
            raise EnrichmentError(mint, "Token price not found") from price_result

        decimals, raw_supply = info_result
        token_price = price_result.get(mint)
        if token_price is None:
            raise EnrichmentError(mint, "Token price not found")
        sol_price = price_result.get(self._native_asset_id)
        if sol_price is None:
            raise EnrichmentError(mint, "SOL price not found")

        snapshot = build_snapshot(
            mint,
            decimals=decimals,
            raw_supply=raw_supply,
            token_price_usd=token_price,
            sol_price_usd=sol_price,
        )
        logger.debug(
            "enrich_snapshot",
            mint=mint,
            token_price_usd=snapshot.token_price_usd,
            sol_price_usd=snapshot.sol_price_usd,
            market_cap=snapshot.market_cap,
        )
        return snapshot
