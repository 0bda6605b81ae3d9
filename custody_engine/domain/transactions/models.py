"""Ledger domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class TransactionKind(str, Enum):
    SWAP = "swap"
    WITHDRAW = "withdraw"
    SEND = "send"
    BUY = "buy"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True)
class LedgerEntry:
    id: str
    owner_id: str
    kind: TransactionKind
    token: str
    amount: str
    status: TransactionStatus
    to_token: Optional[str] = None
    value_usd: Optional[str] = None
    from_wallet: Optional[str] = None
    to_wallet: Optional[str] = None
    tx_hash: Optional[str] = None
    error_detail: Optional[str] = None
    notes: Optional[str] = None
    meta: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not TransactionStatus.PENDING


@dataclass(slots=True)
class KindStats:
    kind: TransactionKind
    count: int
    total_value_usd: Decimal
