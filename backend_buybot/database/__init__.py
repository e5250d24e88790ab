"""
Database layer — signature store (idempotency) and monitored-token registry.

SQLAlchemy over SQLite by default; PostgreSQL via BUYBOT_DB_URL / DATABASE_URL.
"""

from backend_buybot.database.stores import SignatureStore, TokenRegistry
from backend_buybot.database.database import (
    Database,
    SqlSignatureStore,
    SqlTokenRegistry,
    get_database,
)
from backend_buybot.database.models import Token, TxnSignature

__all__ = [
    "Database",
    "SignatureStore",
    "SqlSignatureStore",
    "SqlTokenRegistry",
    "Token",
    "TokenRegistry",
    "TxnSignature",
    "get_database",
]
