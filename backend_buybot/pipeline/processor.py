"""
Per-event pipeline: guard -> diff -> match -> enrich -> compose -> enqueue.

EventProcessor.process() is the per-event error boundary: every failure is
turned into a ProcessResult outcome, so one bad event never stops the stream
or affects another in-flight event. Enrichment failures drop only the
candidates for the affected mint; other candidates of the same event proceed.
"""

from __future__ import annotations

from typing import Any

from backend_buybot.alerts.queue_store import DestinationQueueStore
from backend_buybot.buybot_logging import bind_signature, event_context, get_logger
from backend_buybot.config.settings import LinkConfig
from backend_buybot.core.exceptions import (
    EnrichmentError,
    MalformedEventError,
    StoreUnavailableError,
)
from backend_buybot.database.stores import TokenRegistry
from backend_buybot.pipeline.composer import compose_notification
from backend_buybot.pipeline.diff import compute_token_changes
from backend_buybot.pipeline.enricher import MarketDataEnricher
from backend_buybot.pipeline.guard import DEFAULT_STORE_TIMEOUT_SEC, IdempotencyGuard
from backend_buybot.pipeline.matcher import match_thresholds
from backend_buybot.pipeline.models import (
    DroppedCandidate,
    EventOutcome,
    MarketSnapshot,
    ProcessResult,
)
from backend_buybot.solana_listener.parser import parse_event

logger = get_logger(__name__)


class EventProcessor:
    def __init__(
        self,
        guard: IdempotencyGuard,
        registry: TokenRegistry,
        enricher: MarketDataEnricher,
        queues: DestinationQueueStore,
        *,
        links: LinkConfig | None = None,
        store_timeout_sec: float = DEFAULT_STORE_TIMEOUT_SEC,
    ) -> None:
        self._guard = guard
        self._registry = registry
        self._enricher = enricher
        self._queues = queues
        self._links = links or LinkConfig()
        self._store_timeout_sec = store_timeout_sec

    async def process(self, raw: Any) -> ProcessResult:
        """Process one raw transaction event. Never raises."""
        signature = raw.get("signature") if isinstance(raw, dict) else None
        with event_context(signature=signature):
            try:
                return await self._process(raw)
            except Exception as e:
                logger.exception("event_processing_failed", error=str(e))
                return ProcessResult(signature, EventOutcome.FAILED, error=str(e))

    async def _process(self, raw: Any) -> ProcessResult:
        try:
            event = parse_event(raw)
        except MalformedEventError as e:
            logger.warning("event_malformed", error=str(e))
            return ProcessResult(None, EventOutcome.MALFORMED, error=str(e))

        signature = event.signature
        log = bind_signature(signature)

        if event.failed:
            log.debug("event_execution_failed")
            return ProcessResult(signature, EventOutcome.EXECUTION_FAILED)

        try:
            if not await self._guard.admit(signature):
                return ProcessResult(signature, EventOutcome.DUPLICATE)
        except StoreUnavailableError as e:
            log.warning("event_guard_unavailable", error=str(e))
            return ProcessResult(signature, EventOutcome.STORE_UNAVAILABLE, error=str(e))

        try:
            signer = event.find_signer()
        except MalformedEventError as e:
            log.warning("event_signer_missing", error=str(e))
            return ProcessResult(signature, EventOutcome.MALFORMED, error=str(e))

        changes = compute_token_changes(event, signer)
        if not changes:
            return ProcessResult(signature, EventOutcome.NO_CHANGES)

        try:
            matches = await match_thresholds(
                changes, self._registry, timeout_sec=self._store_timeout_sec
            )
        except StoreUnavailableError as e:
            log.warning("event_registry_unavailable", error=str(e))
            return ProcessResult(signature, EventOutcome.STORE_UNAVAILABLE, error=str(e))
        if not matches:
            return ProcessResult(signature, EventOutcome.NO_MATCH)

        result = ProcessResult(signature, EventOutcome.NO_MATCH)
        # one lookup per mint per event, shared by every destination of that mint
        snapshots: dict[str, MarketSnapshot | EnrichmentError] = {}
        for token, change in matches:
            mint = token.token_mint
            if mint not in snapshots:
                try:
                    snapshots[mint] = await self._enricher.enrich(mint)
                except EnrichmentError as e:
                    snapshots[mint] = e
            snapshot = snapshots[mint]
            if isinstance(snapshot, EnrichmentError):
                log.warning(
                    "candidate_enrichment_failed",
                    mint=mint,
                    destination_id=token.destination_id,
                    reason=snapshot.reason,
                )
                result.dropped.append(DroppedCandidate(mint, token.destination_id, snapshot.reason))
                continue

            payload = compose_notification(
                token, change, snapshot, signer, signature, self._links
            )
            depth = self._queues.enqueue(payload.destination_id, payload)
            result.enqueued += 1
            log.info(
                "event_enqueued",
                mint=mint,
                destination_id=payload.destination_id,
                amount=change.amount,
                is_new_holder=change.is_new_holder,
                queue_depth=depth,
            )

        if result.enqueued:
            result.outcome = EventOutcome.ENQUEUED
        elif result.dropped:
            result.outcome = EventOutcome.ENRICHMENT_FAILED
        return result
