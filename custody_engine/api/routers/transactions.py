"""Ledger history and statistics."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from custody_engine.api.deps import get_orchestrator
from custody_engine.core.security import get_current_user_id
from custody_engine.domain.swaps import SwapOrchestrator
from custody_engine.domain.transactions import TransactionKind, TransactionService
from custody_engine.schemas import (
    KindStatsResponse,
    LedgerEntryResponse,
    TransactionHistoryResponse,
    TransactionStatsResponse,
)

router = APIRouter()


@router.get("", response_model=TransactionHistoryResponse, summary="Recent transactions, newest first")
async def list_history(
    limit: int = Query(default=10, ge=1, le=100),
    kind: Optional[TransactionKind] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> TransactionHistoryResponse:
    entries = await orchestrator.list_history(user_id, limit, kind)
    return TransactionHistoryResponse(
        total=len(entries),
        entries=[LedgerEntryResponse.from_entry(entry) for entry in entries],
        summary=TransactionService.format_history(entries),
    )


@router.get("/stats", response_model=TransactionStatsResponse, summary="Counts and USD totals per kind")
async def transaction_stats(
    user_id: str = Depends(get_current_user_id),
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> TransactionStatsResponse:
    stats = await orchestrator.transaction_stats(user_id)
    return TransactionStatsResponse(
        stats=[
            KindStatsResponse(kind=item.kind.value, count=item.count, total_value_usd=item.total_value_usd)
            for item in stats
        ]
    )
