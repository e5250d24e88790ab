"""
Agent worker package — 24/7 orchestration of stream, pipeline, and dispatcher.
"""

from backend_buybot.agent_worker.worker import Worker, WorkerState, run_worker

__all__ = ["Worker", "WorkerState", "run_worker"]
