"""SQLAlchemy ORM models."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.sql import func

from custody_engine.infrastructure.database.base import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Wallet(Base):
    __tablename__ = "wallets"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    address = Column(String(42), nullable=False, index=True)
    name = Column(String(100))
    chain_type = Column(String(20), nullable=False, default="iota-evm")
    chain_id = Column(Integer, nullable=False)
    is_custodial = Column(Boolean, nullable=False, default=False)
    is_connected = Column(Boolean, nullable=False, default=True)
    connected_at = Column(DateTime(timezone=True))
    disconnected_at = Column(DateTime(timezone=True))
    last_used_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_wallets_user_address", "user_id", "address", unique=True),
        # One connected holder per address.
        Index(
            "ux_wallets_connected_address",
            "address",
            unique=True,
            sqlite_where=is_connected.is_(True),
            postgresql_where=is_connected.is_(True),
        ),
    )


class CustodialKey(Base):
    __tablename__ = "custodial_keys"

    wallet_address = Column(String(42), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    ciphertext = Column(Text, nullable=False)
    algorithm = Column(String(50), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    owner_id = Column(String(64), nullable=False, index=True)
    kind = Column(String(20), nullable=False, index=True)  # swap, withdraw, send, buy
    token = Column(String(64), nullable=False)
    to_token = Column(String(64))
    amount = Column(String(78), nullable=False)
    value_usd = Column(String(78))
    from_wallet = Column(String(42))
    to_wallet = Column(String(42))
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending, completed, failed
    tx_hash = Column(String(100))
    error_detail = Column(Text)
    notes = Column(Text)
    meta = Column(JSON)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    completed_at = Column(DateTime(timezone=True))
