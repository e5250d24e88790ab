"""
Tests for the transaction stream: subscribe request, receive loop, bounded concurrency.
"""

from __future__ import annotations

import asyncio
import json

import pytest

from backend_buybot.ingestion.solana_stream import (
    StreamConfig,
    TransactionStream,
    build_subscribe_request,
)
from backend_buybot.pipeline.models import EventOutcome, ProcessResult
from conftest import BONK_MINT, JUP_MINT, make_event


class FakeWebSocket:
    """Minimal stand-in for a websockets client connection; recv() idles once drained."""

    def __init__(self, incoming: list) -> None:
        self.incoming = list(incoming)
        self.sent: list[dict] = []

    async def send(self, data: str) -> None:
        self.sent.append(json.loads(data))

    async def recv(self) -> str:
        if not self.incoming:
            await asyncio.Event().wait()
        return self.incoming.pop(0)


def _notification(signature: str) -> str:
    return json.dumps(
        {
            "jsonrpc": "2.0",
            "method": "transactionNotification",
            "params": {"subscription": 9, "result": make_event(signature)},
        }
    )


def test_build_subscribe_request():
    req = build_subscribe_request(3, [JUP_MINT, BONK_MINT])
    assert req["method"] == "transactionSubscribe"
    assert req["id"] == 3
    filters, options = req["params"]
    assert filters == {"accountInclude": [JUP_MINT, BONK_MINT], "failed": False, "vote": False}
    assert options["encoding"] == "jsonParsed"
    assert options["transactionDetails"] == "full"
    assert options["commitment"] == "confirmed"
    assert options["maxSupportedTransactionVersion"] == 0


def test_subscribe_waits_for_matching_response():
    async def _run():
        stream = TransactionStream(StreamConfig("wss://ws.test"), list, _noop_handler)
        ws = FakeWebSocket(
            [
                _notification("early"),
                json.dumps({"jsonrpc": "2.0", "id": 1, "result": 4242}),
            ]
        )
        subscription = await stream._subscribe(ws, [JUP_MINT])
        return subscription, ws.sent

    subscription, sent = asyncio.run(_run())
    assert subscription == 4242
    assert sent[0]["params"][0]["accountInclude"] == [JUP_MINT]


def test_subscribe_error_raises():
    async def _run():
        stream = TransactionStream(StreamConfig("wss://ws.test"), list, _noop_handler)
        ws = FakeWebSocket(
            [json.dumps({"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "Method not found"}})]
        )
        await stream._subscribe(ws, [JUP_MINT])

    with pytest.raises(RuntimeError, match="Method not found"):
        asyncio.run(_run())


async def _noop_handler(event):
    return ProcessResult(event.get("signature"), EventOutcome.NO_CHANGES)


def test_receive_loop_dispatches_notifications_only():
    seen: list[str] = []

    async def handler(event):
        seen.append(event["signature"])
        return ProcessResult(event["signature"], EventOutcome.NO_CHANGES)

    async def _run():
        stream = TransactionStream(StreamConfig("wss://ws.test"), list, handler)
        ws = FakeWebSocket(
            [
                _notification("a"),
                "not json",
                json.dumps({"jsonrpc": "2.0", "id": 5, "result": True}),
                json.dumps([1, 2]),
                _notification("b"),
            ]
        )
        task = asyncio.create_task(stream._receive_loop(ws))
        while ws.incoming:
            await asyncio.sleep(0.01)
        stream.stop()
        await asyncio.wait_for(task, timeout=1.0)
        await stream.drain()
        return stream.received_count

    assert asyncio.run(_run()) == 2
    assert sorted(seen) == ["a", "b"]


def test_stop_interrupts_quiet_subscription():
    async def _run():
        stream = TransactionStream(StreamConfig("wss://ws.test"), list, _noop_handler)
        task = asyncio.create_task(stream._receive_loop(FakeWebSocket([])))
        await asyncio.sleep(0.05)
        assert not task.done()
        stream.stop()
        await asyncio.wait_for(task, timeout=0.5)
        return stream.received_count

    assert asyncio.run(_run()) == 0


def test_concurrency_is_bounded():
    active = 0
    peak = 0

    async def handler(event):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1
        return ProcessResult(event["signature"], EventOutcome.NO_CHANGES)

    async def _run():
        stream = TransactionStream(StreamConfig("wss://ws.test", max_concurrent_events=3), list, handler)
        for n in range(12):
            await stream.submit(make_event(f"sig{n}"))
        await stream.drain()
        return stream.in_flight

    assert asyncio.run(_run()) == 0
    assert peak == 3


def test_handler_exception_does_not_stop_stream():
    handled: list[str] = []

    async def handler(event):
        if event["signature"] == "bad":
            raise RuntimeError("boom")
        handled.append(event["signature"])
        return ProcessResult(event["signature"], EventOutcome.NO_CHANGES)

    async def _run():
        stream = TransactionStream(StreamConfig("wss://ws.test", max_concurrent_events=1), list, handler)
        for sig in ("bad", "good1", "good2"):
            await stream.submit(make_event(sig))
        await stream.drain()

    asyncio.run(_run())
    assert handled == ["good1", "good2"]


def test_run_without_mints_backs_off_until_stopped():
    calls = 0

    def no_mints():
        nonlocal calls
        calls += 1
        return []

    async def _run():
        stream = TransactionStream(
            StreamConfig("wss://ws.test", reconnect_min_sec=0.01, reconnect_max_sec=0.02),
            no_mints,
            _noop_handler,
        )
        task = asyncio.create_task(stream.run())
        await asyncio.sleep(0.1)
        stream.stop()
        await asyncio.wait_for(task, timeout=1.0)

    asyncio.run(_run())
    assert calls >= 2


def test_invalid_config_rejected():
    with pytest.raises(ValueError):
        TransactionStream(StreamConfig(""), list, _noop_handler)
    with pytest.raises(ValueError):
        TransactionStream(StreamConfig("wss://ws.test", max_concurrent_events=0), list, _noop_handler)
