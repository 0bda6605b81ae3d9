"""Repository protocol for the transaction ledger."""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from .models import KindStats, LedgerEntry, TransactionKind


class TransactionRepository(Protocol):
    async def create(
        self,
        *,
        owner_id: str,
        kind: TransactionKind,
        token: str,
        amount: str,
        to_token: Optional[str],
        value_usd: Optional[str],
        from_wallet: Optional[str],
        to_wallet: Optional[str],
        notes: Optional[str],
        meta: dict[str, Any] | None,
    ) -> LedgerEntry:
        ...

    async def get(self, entry_id: str) -> LedgerEntry | None:
        ...

    async def update_pending(self, entry_id: str, **values: Any) -> LedgerEntry | None:
        """Apply ``values`` only while the entry is still pending."""
        ...

    async def list_by_owner(
        self,
        owner_id: str,
        limit: int,
        kind: Optional[TransactionKind] = None,
    ) -> Sequence[LedgerEntry]:
        ...

    async def aggregate_by_kind(self, owner_id: str) -> Sequence[KindStats]:
        ...


__all__ = ["TransactionRepository"]
