"""
Tests for worker wiring and state counters (no network).
"""

from __future__ import annotations

import asyncio

from backend_buybot.agent_worker.worker import Worker, WorkerState
from backend_buybot.config.settings import Settings
from backend_buybot.database import Token
from backend_buybot.pipeline.models import EventOutcome, ProcessResult
from conftest import JUP_MINT


def _settings(tmp_path, **kwargs) -> Settings:
    return Settings(
        rpc_url="https://rpc.test",
        ws_url="wss://ws.test",
        db_url=f"sqlite:///{tmp_path / 'worker.db'}",
        **kwargs,
    )


def test_worker_state_counts_outcomes():
    state = WorkerState()
    state.record(ProcessResult("s1", EventOutcome.ENQUEUED, enqueued=2))
    state.record(ProcessResult("s2", EventOutcome.DUPLICATE))
    state.record(ProcessResult(None, EventOutcome.MALFORMED, error="bad"))
    state.record(ProcessResult("s3", EventOutcome.FAILED, error="boom"))
    assert state.enqueued_count == 2
    assert state.outcomes["enqueued"] == 1
    assert state.error_count == 2
    assert state.last_signature == "s3"
    assert state.last_processed_at is not None


def test_worker_builds_without_dispatcher(tmp_path):
    async def _run():
        worker = Worker(_settings(tmp_path))
        try:
            assert worker.dispatcher is None
            with worker.db.session_scope() as session:
                session.add(
                    Token(
                        token_mint=JUP_MINT,
                        group_id="-1001",
                        name="Jupiter",
                        symbol="JUP",
                        min_value=1.0,
                        min_value_emojis="🟢",
                    )
                )
            assert worker.registry.list_mints() == [JUP_MINT]
            result = await worker.handle_event({"signature": "x"})
            assert result.outcome is EventOutcome.MALFORMED
            assert worker.state.outcomes["malformed"] == 1
        finally:
            await worker.enricher.aclose()
            worker.db.dispose()

    asyncio.run(_run())


def test_worker_builds_dispatcher_with_token(tmp_path):
    async def _run():
        worker = Worker(_settings(tmp_path, telegram_bot_token="123:ABC"))
        try:
            assert worker.dispatcher is not None
        finally:
            await worker.dispatcher.aclose()
            await worker.enricher.aclose()
            worker.db.dispose()

    asyncio.run(_run())


def test_worker_queue_depth_bounded_without_dispatcher(tmp_path):
    async def _run():
        worker = Worker(_settings(tmp_path, queue_max_depth=2))
        try:
            assert worker.dispatcher is None
            assert worker.queues.max_depth == 2
        finally:
            await worker.enricher.aclose()
            worker.db.dispose()

    asyncio.run(_run())
