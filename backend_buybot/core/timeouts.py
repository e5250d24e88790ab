"""
Deadline helpers for blocking store calls made from async pipeline code.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, TypeVar

from backend_buybot.core.exceptions import StoreUnavailableError

T = TypeVar("T")


async def call_store(fn: Callable[..., T], *args: Any, timeout: float, operation: str) -> T:
    """
    Run a blocking store call in a worker thread, bounded by timeout.

    Timeout or any exception from the store becomes StoreUnavailableError.
    The worker thread is not interrupted on timeout; its result is discarded.
    """
    try:
        return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise StoreUnavailableError(f"{operation} timed out after {timeout}s") from e
    except StoreUnavailableError:
        raise
    except Exception as e:
        raise StoreUnavailableError(f"{operation} failed: {e}") from e
