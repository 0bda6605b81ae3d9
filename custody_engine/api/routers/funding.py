"""Master wallet status and manual wallet top-ups."""
from fastapi import APIRouter, Depends

from custody_engine.api.deps import get_orchestrator
from custody_engine.api.errors import ENGINE_ERRORS, to_http_exception
from custody_engine.api.routers.swaps import to_funding_response
from custody_engine.core.security import get_current_user_id
from custody_engine.domain.swaps import SwapOrchestrator
from custody_engine.schemas import FundingResultResponse, FundWalletRequest, MasterWalletInfoResponse

router = APIRouter()


@router.get("/master", response_model=MasterWalletInfoResponse, summary="Master wallet balance and status")
async def master_wallet_info(
    _: str = Depends(get_current_user_id),
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> MasterWalletInfoResponse:
    try:
        info = await orchestrator.master_wallet_info()
    except ENGINE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return MasterWalletInfoResponse(
        address=info.address,
        balance_wei=str(info.balance_wei),
        balance=info.balance,
        read_only=info.read_only,
        needs_funding=info.needs_funding,
        message=info.message,
    )


@router.post("/wallet", response_model=FundingResultResponse, summary="Top up the connected wallet")
async def fund_wallet(
    payload: FundWalletRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> FundingResultResponse:
    try:
        result = await orchestrator.fund_wallet(user_id, payload.amount)
    except ENGINE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return to_funding_response(result)
