"""
SQLAlchemy-backed signature store and token registry.

Uses BUYBOT_DB_URL / DATABASE_URL for PostgreSQL when set; otherwise SQLite
(DB_PATH or buybot.db). One Database owns the engine and session factory and
is passed explicitly to the stores; there is no module-level engine.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterable, Iterator

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from backend_buybot.buybot_logging import get_logger
from backend_buybot.database.models import Base, Token, TxnSignature
from backend_buybot.database.stores import SignatureStore, TokenRegistry
from backend_buybot.pipeline.models import MonitoredToken

logger = get_logger(__name__)


def _redact_url(url: str) -> str:
    return url.split("?")[0].split("//")[-1].split("@")[-1]


class Database:
    """Engine + session factory for one database URL."""

    def __init__(self, url: str) -> None:
        if not url.strip():
            raise ValueError("database url must be non-empty")
        self.url = url
        connect_args = {}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self._engine: Engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        logger.info("database_engine", url=_redact_url(url))

    @property
    def engine(self) -> Engine:
        return self._engine

    def init_db(self) -> None:
        """Create tables if they do not exist. Safe to call on every startup."""
        try:
            Base.metadata.create_all(bind=self._engine)
            logger.info("database_init", url=_redact_url(self.url))
        except Exception as e:
            logger.exception("database_init_failed", error=str(e))
            raise

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Context manager for a single session. Commits on success, rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self._engine.dispose()


class SqlSignatureStore(SignatureStore):
    def __init__(self, db: Database) -> None:
        self._db = db

    def insert_if_absent(self, signature: str) -> bool:
        signature = (signature or "").strip()
        if not signature:
            raise ValueError("signature must be non-empty")
        try:
            with self._db.session_scope() as session:
                session.add(TxnSignature(signature=signature, created_at=int(time.time())))
                session.flush()
            return True
        except IntegrityError:
            return False


class SqlTokenRegistry(TokenRegistry):
    def __init__(self, db: Database) -> None:
        self._db = db

    def find_by_mints(self, mints: Iterable[str]) -> list[MonitoredToken]:
        mint_list = sorted({m for m in mints if m})
        if not mint_list:
            return []
        with self._db.session_scope() as session:
            rows = session.scalars(
                select(Token).where(Token.token_mint.in_(mint_list)).order_by(Token.id)
            ).all()
            return [r.to_monitored_token() for r in rows]

    def list_mints(self) -> list[str]:
        with self._db.session_scope() as session:
            rows = session.scalars(select(Token.token_mint).distinct()).all()
            return sorted(rows)


def get_database(url: str) -> Database:
    """Create a Database for url and ensure its tables exist."""
    db = Database(url)
    db.init_db()
    return db
