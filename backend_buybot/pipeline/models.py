"""
Data models for pipeline stages.

TokenChange and MarketSnapshot are transient: created and discarded within a
single event's processing. MonitoredToken is a read-only registry entry;
NotificationPayload is what the destination queues hold.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class TokenChange:
    """Signer's holding delta for one mint within one transaction."""

    is_new_holder: bool
    """True iff the prior amount was exactly 0."""
    amount: float
    """|post - pre|, UI-scaled."""
    position_increase: float | None
    """amount * 100 / pre; None when pre == 0 (new holder)."""


@dataclass(frozen=True)
class MonitoredToken:
    """Registry entry: one (mint, destination) subscription with its alert threshold."""

    token_mint: str
    destination_id: str
    name: str
    symbol: str
    min_value: float
    """Minimum absolute change to alert on."""
    min_value_emojis: str
    """Decoration unit repeated once per min_value bought."""
    image: str = ""
    dex_t_url: str = ""


@dataclass(frozen=True)
class MarketSnapshot:
    token_price_usd: float
    sol_price_usd: float
    decimals: int
    total_supply: float
    market_cap: int
    """floor(total_supply * token_price_usd)."""


@dataclass(frozen=True)
class NotificationPayload:
    destination_id: str
    image: str
    caption: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "destination_id": self.destination_id,
            "image": self.image,
            "caption": self.caption,
        }


class EventOutcome(str, Enum):
    """How processing of one event ended; lets callers tell silent skips from logged ones."""

    ENQUEUED = "enqueued"
    NO_CHANGES = "no_changes"
    NO_MATCH = "no_match"
    ENRICHMENT_FAILED = "enrichment_failed"
    DUPLICATE = "duplicate"
    EXECUTION_FAILED = "execution_failed"
    MALFORMED = "malformed"
    STORE_UNAVAILABLE = "store_unavailable"
    FAILED = "failed"


@dataclass(frozen=True)
class DroppedCandidate:
    mint: str
    destination_id: str
    reason: str


@dataclass
class ProcessResult:
    """Result of one EventProcessor.process() call."""

    signature: str | None
    outcome: EventOutcome
    enqueued: int = 0
    dropped: list[DroppedCandidate] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "signature": self.signature,
            "outcome": self.outcome.value,
            "enqueued": self.enqueued,
            "dropped": [
                {"mint": d.mint, "destination_id": d.destination_id, "reason": d.reason}
                for d in self.dropped
            ],
            "error": self.error,
        }
