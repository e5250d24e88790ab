"""
SQLAlchemy models for the signature store and the monitored-token registry.

Rows convert to pipeline dataclasses so the pipeline never holds ORM objects.
"""

from __future__ import annotations

from sqlalchemy import Column, Float, Integer, String
from sqlalchemy.orm import declarative_base

from backend_buybot.pipeline.models import MonitoredToken

Base = declarative_base()


class TxnSignature(Base):
    """
    One row per admitted transaction signature. The unique constraint is what
    makes admission exactly-once across concurrent workers.
    """

    __tablename__ = "txn_signatures"

    id = Column(Integer, primary_key=True, autoincrement=True)
    signature = Column(String(128), unique=True, nullable=False)
    created_at = Column(Integer, nullable=False)  # Unix seconds


class Token(Base):
    """
    Monitored token for one destination (group). Owned by the registry
    administrator; this service only reads it.
    """

    __tablename__ = "tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token_mint = Column(String(64), nullable=False, index=True)
    group_id = Column(String(64), nullable=False, index=True)
    image = Column(String(1024), nullable=True)
    name = Column(String(256), nullable=False)
    symbol = Column(String(64), nullable=False)
    min_value = Column(Float, nullable=False, default=0.0)
    min_value_emojis = Column(String(64), nullable=False, default="")
    dex_t_url = Column(String(1024), nullable=True)

    def to_monitored_token(self) -> MonitoredToken:
        return MonitoredToken(
            token_mint=self.token_mint,
            destination_id=self.group_id,
            name=self.name,
            symbol=self.symbol,
            min_value=float(self.min_value or 0.0),
            min_value_emojis=self.min_value_emojis or "",
            image=self.image or "",
            dex_t_url=self.dex_t_url or "",
        )
