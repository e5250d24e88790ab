"""
Data models for Solana transaction events.

Pydantic schema for the enhanced-websocket transactionNotification result:
signature, meta.err, pre/post token balances, and message account keys.
Payloads are validated up front so later pipeline stages work on typed
records instead of navigating raw dicts.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend_buybot.core.exceptions import MalformedEventError


class _RpcModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class UiTokenAmount(_RpcModel):
    ui_amount: float | None = Field(default=None, alias="uiAmount")
    """Balance scaled by the mint's decimals; RPC sends null for some zero balances."""
    decimals: int | None = None
    amount: str | None = None
    """Raw integer amount as a string."""


class TokenBalance(_RpcModel):
    """One entry of meta.preTokenBalances / meta.postTokenBalances."""

    account_index: int = Field(alias="accountIndex")
    mint: str = Field(min_length=1)
    owner: str | None = None
    ui_token_amount: UiTokenAmount = Field(alias="uiTokenAmount")


class AccountKey(_RpcModel):
    pubkey: str = Field(min_length=1)
    signer: bool = False
    writable: bool = False

    @classmethod
    def coerce(cls, value: Any) -> Any:
        # json encoding sends bare base58 strings; only jsonParsed carries the signer flag
        if isinstance(value, str):
            return {"pubkey": value}
        return value


class TransactionMessage(_RpcModel):
    account_keys: list[AccountKey] = Field(alias="accountKeys")

    @field_validator("account_keys", mode="before")
    @classmethod
    def _coerce_keys(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [AccountKey.coerce(v) for v in value]
        return value


class RawTransaction(_RpcModel):
    message: TransactionMessage
    signatures: list[str] = Field(default_factory=list)


class TransactionMeta(_RpcModel):
    err: Any = None
    pre_token_balances: list[TokenBalance] = Field(default_factory=list, alias="preTokenBalances")
    post_token_balances: list[TokenBalance] = Field(default_factory=list, alias="postTokenBalances")

    @field_validator("pre_token_balances", "post_token_balances", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class TransactionEnvelope(_RpcModel):
    transaction: RawTransaction
    meta: TransactionMeta


class TransactionEvent(_RpcModel):
    """
    A single transaction notification from the stream.

    Consumed exactly once by the event processor; never persisted beyond its
    signature (idempotency store).
    """

    signature: str = Field(min_length=1)
    slot: int | None = None
    transaction: TransactionEnvelope

    @property
    def failed(self) -> bool:
        """True when the transaction's execution errored (meta.err present)."""
        return self.transaction.meta.err is not None

    @property
    def account_keys(self) -> list[AccountKey]:
        return self.transaction.transaction.message.account_keys

    @property
    def pre_token_balances(self) -> list[TokenBalance]:
        return self.transaction.meta.pre_token_balances

    @property
    def post_token_balances(self) -> list[TokenBalance]:
        return self.transaction.meta.post_token_balances

    def find_signer(self) -> str:
        """Return the first signing account key; raise MalformedEventError if none."""
        for key in self.account_keys:
            if key.signer:
                return key.pubkey
        raise MalformedEventError(f"No signer in account keys (signature={self.signature})")
