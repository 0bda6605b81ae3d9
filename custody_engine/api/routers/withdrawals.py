"""Simulated fiat off-ramp."""
from fastapi import APIRouter, Depends

from custody_engine.api.deps import get_orchestrator
from custody_engine.api.errors import ENGINE_ERRORS, to_http_exception
from custody_engine.core.security import get_current_user_id
from custody_engine.domain.swaps import SwapOrchestrator
from custody_engine.schemas import WithdrawalRequest, WithdrawalResponse

router = APIRouter()


@router.post("", response_model=WithdrawalResponse, summary="Withdraw to fiat (simulation)")
async def withdraw_to_fiat(
    payload: WithdrawalRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> WithdrawalResponse:
    try:
        result = await orchestrator.withdraw_to_fiat(user_id, payload.amount_usd)
    except ENGINE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return WithdrawalResponse.model_validate(result)
