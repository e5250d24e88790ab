"""
Telegram dispatcher: drains destination queues and posts alerts to chats.

Each destination id is a Telegram chat id. Sends are rate limited per
destination (at most max_per_window sends per window_sec); anything over the
limit stays queued for a later cycle. A failed send is logged and dropped;
there is no retry or delivery acknowledgement.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Any

import httpx

from backend_buybot.alerts.queue_store import DestinationQueueStore
from backend_buybot.buybot_logging import get_logger
from backend_buybot.pipeline.models import NotificationPayload

logger = get_logger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"
DEFAULT_SEND_TIMEOUT_SEC = 15.0


class TelegramDispatcher:
    def __init__(
        self,
        queues: DestinationQueueStore,
        bot_token: str,
        *,
        interval_sec: float = 1.0,
        max_per_window: int = 20,
        window_sec: float = 60.0,
        api_base: str = TELEGRAM_API_BASE,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not bot_token.strip():
            raise ValueError("bot_token must be non-empty")
        if max_per_window < 1:
            raise ValueError("max_per_window must be at least 1")
        self._queues = queues
        self._base_url = f"{api_base.rstrip('/')}/bot{bot_token.strip()}"
        self._interval_sec = interval_sec
        self._max_per_window = max_per_window
        self._window_sec = window_sec
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=DEFAULT_SEND_TIMEOUT_SEC)
        self._sent_at: dict[str, deque[float]] = {}
        self.sent_count = 0
        self.failed_count = 0

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _allowance(self, destination_id: str, now: float) -> int:
        stamps = self._sent_at.setdefault(destination_id, deque())
        while stamps and now - stamps[0] >= self._window_sec:
            stamps.popleft()
        return max(0, self._max_per_window - len(stamps))

    async def send(self, payload: NotificationPayload) -> bool:
        """Post one payload; photo with caption when an image is set, else a text message."""
        if payload.image:
            method = "sendPhoto"
            body: dict[str, Any] = {
                "chat_id": payload.destination_id,
                "photo": payload.image,
                "caption": payload.caption,
                "parse_mode": "Markdown",
            }
        else:
            method = "sendMessage"
            body = {
                "chat_id": payload.destination_id,
                "text": payload.caption,
                "parse_mode": "Markdown",
                "disable_web_page_preview": True,
            }
        try:
            resp = await self._client.post(f"{self._base_url}/{method}", json=body)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "telegram_send_failed",
                destination_id=payload.destination_id,
                method=method,
                error=str(e),
            )
            return False
        if not data.get("ok"):
            logger.warning(
                "telegram_send_rejected",
                destination_id=payload.destination_id,
                method=method,
                description=data.get("description"),
            )
            return False
        return True

    async def dispatch_once(self) -> int:
        """Drain every destination up to its rate allowance. Returns payloads sent successfully."""
        sent = 0
        for destination_id in self._queues.destinations():
            now = time.monotonic()
            allowance = self._allowance(destination_id, now)
            if allowance == 0:
                continue
            batch = self._queues.drain(destination_id, limit=allowance)
            for payload in batch:
                self._sent_at[destination_id].append(time.monotonic())
                if await self.send(payload):
                    sent += 1
                    self.sent_count += 1
                else:
                    self.failed_count += 1
        return sent

    async def run(self, stop: asyncio.Event) -> None:
        """Dispatch every interval_sec until stop is set."""
        logger.info(
            "dispatcher_started",
            interval_sec=self._interval_sec,
            max_per_window=self._max_per_window,
            window_sec=self._window_sec,
        )
        while not stop.is_set():
            try:
                await self.dispatch_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception("dispatcher_cycle_error", error=str(e))
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._interval_sec)
            except asyncio.TimeoutError:
                pass
        logger.info("dispatcher_stopped", sent=self.sent_count, failed=self.failed_count)
