"""
Idempotency guard: each transaction signature is processed at most once.

Backed by the signature store's uniqueness constraint, so concurrent admits
of the same signature (from this or another process) let exactly one through.
"""

from __future__ import annotations

from backend_buybot.buybot_logging import get_logger
from backend_buybot.core.timeouts import call_store
from backend_buybot.database.stores import SignatureStore

logger = get_logger(__name__)

DEFAULT_STORE_TIMEOUT_SEC = 5.0


class IdempotencyGuard:
    def __init__(self, store: SignatureStore, *, timeout_sec: float = DEFAULT_STORE_TIMEOUT_SEC) -> None:
        self._store = store
        self._timeout_sec = timeout_sec

    async def admit(self, signature: str) -> bool:
        """
        Return True the first time signature is seen (and record it), False afterwards.

        Raises StoreUnavailableError if the store times out or fails; the event
        is then skipped, not admitted.
        """
        admitted = await call_store(
            self._store.insert_if_absent,
            signature,
            timeout=self._timeout_sec,
            operation="signature_insert",
        )
        if not admitted:
            logger.debug("guard_duplicate_signature", signature=signature)
        return admitted
