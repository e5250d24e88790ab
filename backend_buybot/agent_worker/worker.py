"""
Core 24/7 agent loop: stream -> event processor -> destination queues -> dispatcher.

Builds every collaborator explicitly from Settings, then runs the transaction
stream, the Telegram dispatcher, and a heartbeat concurrently on one event loop
until SIGINT/SIGTERM.
"""

from __future__ import annotations

import asyncio
import signal
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from backend_buybot.alerts.queue_store import DestinationQueueStore
from backend_buybot.alerts.telegram import TelegramDispatcher
from backend_buybot.buybot_logging import get_logger
from backend_buybot.config.env import mask_api_key
from backend_buybot.config.settings import Settings
from backend_buybot.database import SqlSignatureStore, SqlTokenRegistry, get_database
from backend_buybot.ingestion.solana_stream import StreamConfig, TransactionStream
from backend_buybot.pipeline.enricher import MarketDataEnricher
from backend_buybot.pipeline.guard import IdempotencyGuard
from backend_buybot.pipeline.models import EventOutcome, ProcessResult
from backend_buybot.pipeline.processor import EventProcessor

logger = get_logger(__name__)


@dataclass
class WorkerState:
    """Counters for heartbeat and monitoring."""

    outcomes: Counter = field(default_factory=Counter)
    enqueued_count: int = 0
    last_signature: str | None = None
    last_processed_at: float | None = None

    def record(self, result: ProcessResult) -> None:
        self.outcomes[result.outcome.value] += 1
        self.enqueued_count += result.enqueued
        if result.signature:
            self.last_signature = result.signature
        self.last_processed_at = time.time()

    @property
    def error_count(self) -> int:
        return sum(
            self.outcomes[o.value]
            for o in (EventOutcome.FAILED, EventOutcome.MALFORMED, EventOutcome.STORE_UNAVAILABLE)
        )


class Worker:
    """Owns the long-lived collaborators for one process."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.state = WorkerState()
        self.db = get_database(settings.db_url)
        self.registry = SqlTokenRegistry(self.db)
        self.queues = DestinationQueueStore(max_depth=settings.queue_max_depth)
        self.enricher = MarketDataEnricher(
            settings.rpc_url,
            settings.price_api_url,
            native_asset_id=settings.native_asset_id,
            rpc_timeout_sec=settings.rpc_timeout_sec,
            price_timeout_sec=settings.price_timeout_sec,
        )
        self.processor = EventProcessor(
            IdempotencyGuard(SqlSignatureStore(self.db), timeout_sec=settings.store_timeout_sec),
            self.registry,
            self.enricher,
            self.queues,
            links=settings.links,
            store_timeout_sec=settings.store_timeout_sec,
        )
        self.stream = TransactionStream(
            StreamConfig(
                rpc_ws_url=settings.ws_url,
                reconnect_min_sec=settings.reconnect_min_sec,
                reconnect_max_sec=settings.reconnect_max_sec,
                max_concurrent_events=settings.max_concurrent_events,
            ),
            self.registry.list_mints,
            self.handle_event,
        )
        self.dispatcher: TelegramDispatcher | None = None
        if settings.telegram_bot_token:
            self.dispatcher = TelegramDispatcher(
                self.queues,
                settings.telegram_bot_token,
                interval_sec=settings.dispatch_interval_sec,
                max_per_window=settings.dispatch_max_per_window,
                window_sec=settings.dispatch_window_sec,
            )
        self._stop = asyncio.Event()

    async def handle_event(self, raw: dict[str, Any]) -> ProcessResult:
        result = await self.processor.process(raw)
        self.state.record(result)
        return result

    def stop(self) -> None:
        self._stop.set()
        self.stream.stop()

    async def _heartbeat(self) -> None:
        interval = max(1.0, self.settings.heartbeat_interval_sec)
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
            logger.info(
                "worker_heartbeat",
                received=self.stream.received_count,
                in_flight=self.stream.in_flight,
                outcomes=dict(self.state.outcomes),
                enqueued=self.state.enqueued_count,
                error_count=self.state.error_count,
                queued=self.queues.total_pending(),
                queue_dropped=self.queues.total_dropped(),
                last_signature=self.state.last_signature,
                last_processed_at=self.state.last_processed_at,
            )

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError, ValueError):
                # Windows / non-main thread: rely on KeyboardInterrupt
                pass

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info("worker_shutdown_signal", signal=sig.name)
        self.stop()

    async def run(self) -> None:
        self._install_signal_handlers()
        logger.info(
            "worker_started",
            rpc_url=mask_api_key(self.settings.rpc_url),
            ws_url=mask_api_key(self.settings.ws_url),
            max_concurrent_events=self.settings.max_concurrent_events,
            dispatcher_enabled=self.dispatcher is not None,
        )
        if self.dispatcher is None:
            logger.warning(
                "worker_dispatcher_disabled",
                reason="TELEGRAM_BOT_TOKEN not set",
                queue_max_depth=self.settings.queue_max_depth,
            )
        tasks = [
            asyncio.create_task(self.stream.run()),
            asyncio.create_task(self._heartbeat()),
        ]
        if self.dispatcher is not None:
            tasks.append(asyncio.create_task(self.dispatcher.run(self._stop)))
        try:
            await asyncio.gather(*tasks)
        finally:
            self.stop()
            await self.enricher.aclose()
            if self.dispatcher is not None:
                await self.dispatcher.aclose()
            self.db.dispose()
            logger.info("worker_stopped", enqueued=self.state.enqueued_count)


def run_worker(settings: Settings) -> None:
    """Run the agent until shutdown. Blocks the calling thread."""

    async def _main() -> None:
        worker = Worker(settings)
        await worker.run()

    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        logger.info("worker_keyboard_interrupt")
