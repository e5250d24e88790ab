"""
Pytest fixtures for BuyBot tests: temporary SQLite database, in-memory stores,
transaction event factory, and an httpx MockTransport standing in for the
Solana RPC and price API.
"""

from __future__ import annotations

import json
import threading
from typing import Any, Iterable

import httpx
import pytest

from backend_buybot.database import Database, SignatureStore, TokenRegistry
from backend_buybot.pipeline.models import MonitoredToken

# Valid Solana pubkeys (base58, 32 bytes)
SIGNER = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
OTHER_WALLET = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"
JUP_MINT = "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN"
BONK_MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

RPC_URL = "https://rpc.test"
PRICE_URL = "https://price.test/v6/price"


def balance(account_index: int, owner: str, mint: str, ui_amount: float | None) -> dict[str, Any]:
    return {
        "accountIndex": account_index,
        "owner": owner,
        "mint": mint,
        "uiTokenAmount": {"uiAmount": ui_amount, "decimals": 6},
    }


def make_event(
    signature: str = "5sig1111",
    *,
    signer: str = SIGNER,
    pre: list[dict[str, Any]] | None = None,
    post: list[dict[str, Any]] | None = None,
    err: Any = None,
    signer_flag: bool = True,
) -> dict[str, Any]:
    """Build a transactionNotification result payload (jsonParsed account keys)."""
    return {
        "signature": signature,
        "slot": 280000000,
        "transaction": {
            "transaction": {
                "signatures": [signature],
                "message": {
                    "accountKeys": [
                        {"pubkey": signer, "signer": signer_flag, "writable": True},
                        {"pubkey": OTHER_WALLET, "signer": False, "writable": True},
                    ],
                },
            },
            "meta": {
                "err": err,
                "preTokenBalances": pre if pre is not None else [],
                "postTokenBalances": post if post is not None else [],
            },
        },
    }


def make_token(
    mint: str = JUP_MINT,
    destination_id: str = "-1001",
    *,
    min_value: float = 5.0,
    emojis: str = "🟢",
    name: str = "Jupiter",
    symbol: str = "JUP",
) -> MonitoredToken:
    return MonitoredToken(
        token_mint=mint,
        destination_id=destination_id,
        name=name,
        symbol=symbol,
        min_value=min_value,
        min_value_emojis=emojis,
        image="https://img.test/jup.png",
        dex_t_url="https://www.dextools.io/app/solana/pair-explorer/jup",
    )


class InMemorySignatureStore(SignatureStore):
    def __init__(self) -> None:
        self.signatures: set[str] = set()
        self._lock = threading.Lock()

    def insert_if_absent(self, signature: str) -> bool:
        with self._lock:
            if signature in self.signatures:
                return False
            self.signatures.add(signature)
            return True


class InMemoryTokenRegistry(TokenRegistry):
    def __init__(self, tokens: Iterable[MonitoredToken] = ()) -> None:
        self.tokens = list(tokens)
        self.queries: list[set[str]] = []

    def find_by_mints(self, mints: Iterable[str]) -> list[MonitoredToken]:
        wanted = set(mints)
        self.queries.append(wanted)
        return [t for t in self.tokens if t.token_mint in wanted]

    def list_mints(self) -> list[str]:
        return sorted({t.token_mint for t in self.tokens})


class MarketApi:
    """
    Fake Solana RPC + price API behind httpx.MockTransport.

    mints: mint -> (decimals, raw_supply); prices: id -> USD price.
    Every request is recorded in calls as (kind, detail).
    """

    def __init__(
        self,
        mints: dict[str, tuple[int, int]] | None = None,
        prices: dict[str, float] | None = None,
    ) -> None:
        self.mints = dict(mints or {})
        self.prices = dict(prices or {})
        self.calls: list[tuple[str, str]] = []
        self.rpc_status = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST" and str(request.url).startswith(RPC_URL):
            body = json.loads(request.content)
            mint = body["params"][0]
            self.calls.append(("rpc", mint))
            if self.rpc_status != 200:
                return httpx.Response(self.rpc_status, json={"error": "unavailable"})
            info = self.mints.get(mint)
            value = None
            if info is not None:
                decimals, supply = info
                value = {
                    "data": {
                        "parsed": {
                            "info": {"decimals": decimals, "supply": str(supply), "isInitialized": True},
                            "type": "mint",
                        },
                        "program": "spl-token",
                    },
                    "owner": "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",
                }
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": body["id"], "result": {"context": {"slot": 1}, "value": value}},
            )
        if request.method == "GET" and str(request.url).startswith(PRICE_URL):
            ids = request.url.params["ids"].split(",")
            self.calls.append(("price", ",".join(ids)))
            data = {i: {"id": i, "price": self.prices[i]} for i in ids if i in self.prices}
            return httpx.Response(200, json={"data": data, "timeTaken": 0.001})
        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def db(tmp_path):
    """Fresh SQLite database with tables created; disposed after the test."""
    database = Database(f"sqlite:///{tmp_path / 'buybot.db'}")
    database.init_db()
    yield database
    database.dispose()


@pytest.fixture
def signature_store():
    return InMemorySignatureStore()


@pytest.fixture
def market_api():
    return MarketApi(
        mints={JUP_MINT: (6, 1_000_000_000), BONK_MINT: (5, 10_000_000_000)},
        prices={JUP_MINT: 2.0, BONK_MINT: 0.5, "SOL": 100.0},
    )
