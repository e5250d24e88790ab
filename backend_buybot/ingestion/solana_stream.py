"""
Real-time Solana ingestion: enhanced WebSocket transactionSubscribe -> EventProcessor.

Subscribes to every transaction that touches a monitored mint and hands each
transactionNotification result to the processor as its own task. Concurrency
is bounded by a semaphore; a slow event never blocks the receive loop beyond
that bound, and one event's failure never stops the stream.

Fault tolerance: auto-reconnect with exponential backoff; the mint list is
reloaded from the registry on every (re)connect.
"""

from __future__ import annotations

import asyncio
import itertools
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import websockets
from websockets.exceptions import ConnectionClosed

from backend_buybot.buybot_logging import get_logger
from backend_buybot.pipeline.models import ProcessResult
from backend_buybot.solana_listener.parser import notification_result

logger = get_logger(__name__)

DEFAULT_WS_PING_INTERVAL = 30.0
DEFAULT_WS_PING_TIMEOUT = 10.0
DEFAULT_RECONNECT_MIN_SEC = 1.0
DEFAULT_RECONNECT_MAX_SEC = 60.0
DEFAULT_MAX_CONCURRENT_EVENTS = 32
_SUBSCRIBE_TIMEOUT = 10.0
_WS_CLOSE_TIMEOUT = 5.0

EventHandler = Callable[[dict[str, Any]], Awaitable[ProcessResult]]


@dataclass
class StreamConfig:
    rpc_ws_url: str
    reconnect_min_sec: float = DEFAULT_RECONNECT_MIN_SEC
    reconnect_max_sec: float = DEFAULT_RECONNECT_MAX_SEC
    max_concurrent_events: int = DEFAULT_MAX_CONCURRENT_EVENTS
    ws_ping_interval: float | None = DEFAULT_WS_PING_INTERVAL
    ws_ping_timeout: float | None = DEFAULT_WS_PING_TIMEOUT
    commitment: str = "confirmed"


def build_subscribe_request(request_id: int, mints: list[str], commitment: str = "confirmed") -> dict[str, Any]:
    """transactionSubscribe for successful transactions touching any of mints, jsonParsed, full details."""
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "transactionSubscribe",
        "params": [
            {"accountInclude": mints, "failed": False, "vote": False},
            {
                "commitment": commitment,
                "encoding": "jsonParsed",
                "transactionDetails": "full",
                "showRewards": False,
                "maxSupportedTransactionVersion": 0,
            },
        ],
    }


class TransactionStream:
    """
    WebSocket transaction stream feeding an async event handler.

    mints_provider returns the mints to subscribe to (called on each connect,
    run in a worker thread since it usually hits the registry).
    """

    def __init__(
        self,
        config: StreamConfig,
        mints_provider: Callable[[], list[str]],
        handler: EventHandler,
    ) -> None:
        if not config.rpc_ws_url.strip():
            raise ValueError("rpc_ws_url must be non-empty")
        if config.max_concurrent_events < 1:
            raise ValueError("max_concurrent_events must be at least 1")
        self._config = config
        self._mints_provider = mints_provider
        self._handler = handler
        self._semaphore = asyncio.Semaphore(config.max_concurrent_events)
        self._tasks: set[asyncio.Task[None]] = set()
        self._ids = itertools.count(1)
        self._stop = asyncio.Event()
        self.received_count = 0

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def stop(self) -> None:
        """Signal the stream to stop; a pending receive returns at once."""
        self._stop.set()

    async def run(self) -> None:
        """Connect, subscribe, dispatch notifications, reconnect on failure until stop()."""
        backoff = self._config.reconnect_min_sec
        run_id = 0
        while not self._stop.is_set():
            run_id += 1
            try:
                mints = await asyncio.to_thread(self._mints_provider)
                if not mints:
                    logger.warning("stream_no_mints", run_id=run_id)
                else:
                    logger.info("stream_connecting", run_id=run_id, mint_count=len(mints))
                    async with websockets.connect(
                        self._config.rpc_ws_url,
                        ping_interval=self._config.ws_ping_interval,
                        ping_timeout=self._config.ws_ping_timeout,
                        close_timeout=_WS_CLOSE_TIMEOUT,
                    ) as ws:
                        subscription = await self._subscribe(ws, mints)
                        backoff = self._config.reconnect_min_sec
                        logger.info(
                            "stream_subscribed",
                            run_id=run_id,
                            subscription_id=subscription,
                            mint_count=len(mints),
                        )
                        await self._receive_loop(ws)
            except asyncio.CancelledError:
                break
            except ConnectionClosed as e:
                logger.warning(
                    "stream_disconnected",
                    run_id=run_id,
                    code=getattr(e.rcvd, "code", None),
                    reason=getattr(e.rcvd, "reason", None),
                )
            except Exception as e:
                logger.exception("stream_error", run_id=run_id, error=str(e))

            if self._stop.is_set():
                break
            logger.info("stream_reconnect", run_id=run_id, backoff_sec=round(backoff, 1))
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=backoff)
            except asyncio.TimeoutError:
                pass
            backoff = min(backoff * 2, self._config.reconnect_max_sec)

        await self.drain()
        logger.info("stream_stopped", run_id=run_id, received=self.received_count)

    async def drain(self) -> None:
        """Wait for in-flight event tasks to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _subscribe(self, ws: Any, mints: list[str]) -> int:
        request_id = next(self._ids)
        await ws.send(json.dumps(build_subscribe_request(request_id, mints, self._config.commitment)))
        while True:
            raw = await asyncio.wait_for(ws.recv(), timeout=_SUBSCRIBE_TIMEOUT)
            msg = json.loads(raw)
            if msg.get("id") != request_id:
                continue
            if "error" in msg:
                err = msg["error"]
                raise RuntimeError(
                    f"transactionSubscribe failed: {err.get('message', err)} (code={err.get('code')})"
                )
            return msg.get("result")

    async def _next_message(self, ws: Any) -> Any | None:
        """Return the next frame, or None once stop() is called (even on a quiet subscription)."""
        if self._stop.is_set():
            return None
        recv_task = asyncio.ensure_future(ws.recv())
        stop_task = asyncio.ensure_future(self._stop.wait())
        try:
            done, _ = await asyncio.wait({recv_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (recv_task, stop_task):
                if not task.done():
                    task.cancel()
        if recv_task in done:
            return recv_task.result()
        return None

    async def _receive_loop(self, ws: Any) -> None:
        while True:
            raw = await self._next_message(ws)
            if raw is None:
                return
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                logger.debug("stream_invalid_json")
                continue
            if not isinstance(msg, dict):
                continue
            result = notification_result(msg)
            if result is None:
                continue
            self.received_count += 1
            await self.submit(result)

    async def submit(self, event: dict[str, Any]) -> None:
        """Schedule one event; waits for a free slot when max_concurrent_events are in flight."""
        await self._semaphore.acquire()
        task = asyncio.create_task(self._handle(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle(self, event: dict[str, Any]) -> None:
        try:
            await self._handler(event)
        except Exception as e:
            # handler is expected to never raise; keep the stream alive regardless
            logger.exception("stream_handler_failed", signature=event.get("signature"), error=str(e))
        finally:
            self._semaphore.release()
