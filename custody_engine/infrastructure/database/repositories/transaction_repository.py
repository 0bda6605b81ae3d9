"""SQLAlchemy implementation of the transaction ledger repository."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy import Float, cast, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from custody_engine.domain.transactions.models import (
    KindStats,
    LedgerEntry,
    TransactionKind,
    TransactionStatus,
)
from custody_engine.infrastructure.database.models import Transaction as TransactionModel


class SqlTransactionRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

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
        model = TransactionModel(
            owner_id=owner_id,
            kind=kind.value,
            token=token,
            to_token=to_token,
            amount=amount,
            value_usd=value_usd,
            from_wallet=from_wallet,
            to_wallet=to_wallet,
            status=TransactionStatus.PENDING.value,
            notes=notes,
            meta=meta or {},
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    async def get(self, entry_id: str) -> LedgerEntry | None:
        model = await self.session.get(TransactionModel, entry_id)
        return self._to_domain(model) if model else None

    async def update_pending(self, entry_id: str, **values: Any) -> LedgerEntry | None:
        stmt = (
            update(TransactionModel)
            .where(
                TransactionModel.id == entry_id,
                TransactionModel.status == TransactionStatus.PENDING.value,
            )
            .values(**values)
            .execution_options(synchronize_session="fetch")
            .returning(TransactionModel)
        )
        result = await self.session.execute(stmt)
        model = result.scalars().first()
        return self._to_domain(model) if model else None

    async def list_by_owner(
        self,
        owner_id: str,
        limit: int,
        kind: Optional[TransactionKind] = None,
    ) -> Sequence[LedgerEntry]:
        stmt = select(TransactionModel).where(TransactionModel.owner_id == owner_id)
        if kind is not None:
            stmt = stmt.where(TransactionModel.kind == kind.value)
        stmt = stmt.order_by(desc(TransactionModel.created_at)).limit(limit)
        result = await self.session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def aggregate_by_kind(self, owner_id: str) -> Sequence[KindStats]:
        stmt = (
            select(
                TransactionModel.kind,
                func.count(TransactionModel.id),
                func.sum(cast(TransactionModel.value_usd, Float)),
            )
            .where(TransactionModel.owner_id == owner_id)
            .group_by(TransactionModel.kind)
            .order_by(TransactionModel.kind)
        )
        result = await self.session.execute(stmt)
        return [
            KindStats(
                kind=TransactionKind(kind),
                count=int(count),
                total_value_usd=Decimal(str(total)) if total is not None else Decimal("0"),
            )
            for kind, count, total in result.all()
        ]

    @staticmethod
    def _to_domain(model: TransactionModel) -> LedgerEntry:
        return LedgerEntry(
            id=str(model.id),
            owner_id=model.owner_id,
            kind=TransactionKind(model.kind),
            token=model.token,
            amount=model.amount,
            status=TransactionStatus(model.status),
            to_token=model.to_token,
            value_usd=model.value_usd,
            from_wallet=model.from_wallet,
            to_wallet=model.to_wallet,
            tx_hash=model.tx_hash,
            error_detail=model.error_detail,
            notes=model.notes,
            meta=dict(model.meta or {}),
            created_at=model.created_at,
            completed_at=model.completed_at,
        )
