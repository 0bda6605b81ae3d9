"""Transaction ledger service.

Every money-movement attempt gets one entry that is created ``pending`` and
moves exactly once to ``completed`` or ``failed``. The terminal transition is
a conditional update on the pending status, so a second transition is
detected by the database rather than by a read-then-write race.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, NoReturn, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from custody_engine.infrastructure.database.repositories.transaction_repository import SqlTransactionRepository

from .exceptions import LedgerStateError, TransactionNotFoundError
from .models import KindStats, LedgerEntry, TransactionKind, TransactionStatus
from .repository import TransactionRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TransactionService:
    repository: TransactionRepository

    @classmethod
    def with_session(cls, session: AsyncSession) -> "TransactionService":
        return cls(SqlTransactionRepository(session))

    async def open_entry(
        self,
        *,
        owner_id: str,
        kind: TransactionKind,
        token: str,
        amount: str,
        to_token: Optional[str] = None,
        value_usd: Optional[str] = None,
        from_wallet: Optional[str] = None,
        to_wallet: Optional[str] = None,
        notes: Optional[str] = None,
        meta: dict[str, Any] | None = None,
    ) -> LedgerEntry:
        entry = await self.repository.create(
            owner_id=owner_id,
            kind=kind,
            token=token,
            amount=amount,
            to_token=to_token,
            value_usd=value_usd,
            from_wallet=from_wallet,
            to_wallet=to_wallet,
            notes=notes,
            meta=meta,
        )
        logger.info("Ledger entry %s opened (%s %s %s)", entry.id, kind.value, amount, token)
        return entry

    async def mark_submitted(self, entry_id: str, tx_hash: str) -> LedgerEntry:
        entry = await self.repository.update_pending(entry_id, tx_hash=tx_hash)
        if entry is None:
            await self._raise_not_pending(entry_id, "record a transaction hash on")
        logger.info("Ledger entry %s submitted as %s", entry_id, tx_hash)
        return entry

    async def complete(
        self,
        entry_id: str,
        *,
        tx_hash: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> LedgerEntry:
        values: dict[str, Any] = {"status": TransactionStatus.COMPLETED.value, "completed_at": _utcnow()}
        if tx_hash:
            values["tx_hash"] = tx_hash
        if notes is not None:
            values["notes"] = notes
        entry = await self.repository.update_pending(entry_id, **values)
        if entry is None:
            await self._raise_not_pending(entry_id, "complete")
        logger.info("Ledger entry %s completed", entry_id)
        return entry

    async def fail(self, entry_id: str, error_detail: str, *, tx_hash: Optional[str] = None) -> LedgerEntry:
        values: dict[str, Any] = {
            "status": TransactionStatus.FAILED.value,
            "completed_at": _utcnow(),
            "error_detail": error_detail,
        }
        if tx_hash:
            values["tx_hash"] = tx_hash
        entry = await self.repository.update_pending(entry_id, **values)
        if entry is None:
            await self._raise_not_pending(entry_id, "fail")
        logger.warning("Ledger entry %s failed: %s", entry_id, error_detail)
        return entry

    async def get(self, entry_id: str) -> LedgerEntry | None:
        return await self.repository.get(entry_id)

    async def list_history(
        self,
        owner_id: str,
        limit: int = 10,
        kind: Optional[TransactionKind] = None,
    ) -> Sequence[LedgerEntry]:
        return await self.repository.list_by_owner(owner_id, limit, kind)

    async def stats_by_kind(self, owner_id: str) -> Sequence[KindStats]:
        return await self.repository.aggregate_by_kind(owner_id)

    @staticmethod
    def format_history(entries: Iterable[LedgerEntry]) -> str:
        """One human-readable line per entry, newest first as given."""
        lines = []
        for entry in entries:
            created = entry.created_at.date().isoformat() if entry.created_at else "unknown date"
            lines.append(
                f"{entry.kind.value.upper()} - {entry.amount} {entry.token} on {created} "
                f"({entry.status.value.capitalize()})"
            )
        return "\n".join(lines)

    async def _raise_not_pending(self, entry_id: str, action: str) -> NoReturn:
        existing = await self.repository.get(entry_id)
        if existing is None:
            raise TransactionNotFoundError(f"Transaction {entry_id} not found")
        raise LedgerStateError(f"Cannot {action} transaction {entry_id}: it is already {existing.status.value}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ["TransactionService"]
