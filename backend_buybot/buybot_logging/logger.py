"""
Structured logging for the buy-alert pipeline.

Every record carries an ISO timestamp, level, and a snake_case event_type, plus
key/value context (signature, mint, destination_id). Per-event context lives in
contextvars, so each event task logs its own signature without threading a
logger through every stage. Secrets that end up in URLs or error strings
(Helius api-key query values, Telegram bot tokens) are masked before rendering.

Depends only on stdlib logging and structlog; importing backend_buybot here
would create an import cycle.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

import structlog

_API_KEY_RE = re.compile(r"(api-key=)[^&\s\"']+")
_BOT_TOKEN_RE = re.compile(r"(/bot)\d+:[A-Za-z0-9_-]+")


def _add_timestamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _event_type(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type (also mirrored into message)."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    event_dict.setdefault("message", str(event_dict.get("event_type", "")))
    return event_dict


def redact(value: str) -> str:
    """Mask api-key query values and Telegram bot tokens inside a string."""
    value = _API_KEY_RE.sub(r"\1***", value)
    return _BOT_TOKEN_RE.sub(r"\1***", value)


def _redact_secrets(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = redact(value)
    return event_dict


def build_processors(log_format: str) -> list[Any]:
    """Processor chain ending in a JSON renderer ("json") or the dev console renderer."""
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _event_type,
        _redact_secrets,
    ]
    if log_format == "json":
        # emoji in captions stay unescaped
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    return processors


def configure_structlog(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog from arguments, falling back to LOG_LEVEL / LOG_FORMAT (default INFO / json)."""
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    fmt = (log_format or os.getenv("LOG_FORMAT") or "json").strip().lower()
    structlog.configure(
        processors=build_processors(fmt),
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level_name, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger tagged with the module name.

        logger = get_logger(__name__)
        logger.info("event_enqueued", destination_id="-100123", mint=mint, queue_depth=3)
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_signature(signature: str) -> structlog.BoundLogger:
    """Return a logger with the transaction signature bound to all subsequent log calls."""
    return get_logger("backend_buybot").bind(signature=signature)


@contextmanager
def event_context(**context: Any) -> Iterator[None]:
    """
    Bind context (e.g. signature=...) for every log call in the current task.

    contextvars are copied per asyncio task, so concurrent events never see
    each other's context.
    """
    with structlog.contextvars.bound_contextvars(**context):
        yield
