"""On-chain balance lookups."""
from fastapi import APIRouter, Depends, Query

from custody_engine.api.deps import get_orchestrator
from custody_engine.api.errors import ENGINE_ERRORS, to_http_exception
from custody_engine.core.security import get_current_user_id
from custody_engine.domain.swaps import SwapOrchestrator
from custody_engine.schemas import NativeBalanceResponse, TokenBalanceResponse

router = APIRouter(dependencies=[Depends(get_current_user_id)])


@router.get("/native/{address}", response_model=NativeBalanceResponse, summary="Native token balance")
async def native_balance(
    address: str,
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> NativeBalanceResponse:
    try:
        balance = await orchestrator.get_native_balance(address)
    except ENGINE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return NativeBalanceResponse(
        address=balance.address,
        balance_wei=str(balance.balance_wei),
        balance=balance.balance,
        symbol=balance.symbol,
    )


@router.get("/token/{address}", response_model=TokenBalanceResponse, summary="ERC-20 token balance")
async def token_balance(
    address: str,
    token: str = Query(..., description="Token contract address"),
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> TokenBalanceResponse:
    try:
        balance = await orchestrator.get_token_balance(address, token)
    except ENGINE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return TokenBalanceResponse(
        address=balance.address,
        token_address=balance.token_address,
        symbol=balance.symbol,
        decimals=balance.decimals,
        balance_wei=str(balance.balance_wei),
        balance=balance.balance,
    )
