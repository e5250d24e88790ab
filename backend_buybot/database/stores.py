"""
Abstract store interfaces used by the pipeline.

The pipeline depends only on these; the SQLAlchemy implementations live in
database.py and tests substitute in-memory ones.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from backend_buybot.pipeline.models import MonitoredToken


class SignatureStore(ABC):
    """Durable record of admitted transaction signatures."""

    @abstractmethod
    def insert_if_absent(self, signature: str) -> bool:
        """
        Record signature. Return True if this call inserted it, False if it was
        already present (duplicate key is not an error).
        """
        ...


class TokenRegistry(ABC):
    """Read-only view of monitored tokens."""

    @abstractmethod
    def find_by_mints(self, mints: Iterable[str]) -> list[MonitoredToken]:
        """Return every registry entry whose mint is in mints (order irrelevant)."""
        ...

    @abstractmethod
    def list_mints(self) -> list[str]:
        """Return the distinct mints with at least one registry entry."""
        ...
