"""Money movement from the custodial wallet: swaps and native transfers."""
from fastapi import APIRouter, Depends

from custody_engine.api.deps import get_orchestrator
from custody_engine.api.errors import ENGINE_ERRORS, to_http_exception
from custody_engine.core.security import get_current_user_id
from custody_engine.domain.funding import FundingResult
from custody_engine.domain.swaps import SwapOrchestrator
from custody_engine.infrastructure.quotes import SwapQuote
from custody_engine.schemas import (
    FundingResultResponse,
    SendRequest,
    SendResponse,
    SwapQuoteResponse,
    SwapRequest,
    SwapResponse,
)

router = APIRouter()


@router.post("", response_model=SwapResponse, summary="Swap tokens through the quote service")
async def swap_tokens(
    payload: SwapRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> SwapResponse:
    try:
        result = await orchestrator.swap(
            user_id,
            payload.sell_token,
            payload.buy_token,
            payload.amount,
            payload.slippage_percent,
        )
    except ENGINE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return SwapResponse(
        transaction_id=result.transaction_id,
        tx_hash=result.tx_hash,
        success=result.success,
        approval_tx_hash=result.approval_tx_hash,
        quote=_to_quote_response(result.quote),
        funding=to_funding_response(result.funding),
    )


@router.post("/send", response_model=SendResponse, summary="Send native tokens to an address")
async def send_native(
    payload: SendRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> SendResponse:
    try:
        result = await orchestrator.send(user_id, payload.to_address, payload.amount)
    except ENGINE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return SendResponse(
        transaction_id=result.transaction_id,
        tx_hash=result.tx_hash,
        success=result.success,
        from_address=result.from_address,
        to_address=result.to_address,
        amount=result.amount,
        funding=to_funding_response(result.funding),
    )


def to_funding_response(funding: FundingResult) -> FundingResultResponse:
    return FundingResultResponse(
        funded=funding.funded,
        balance_wei=str(funding.balance_wei),
        tx_hash=funding.tx_hash,
        shortfall_wei=str(funding.shortfall_wei),
    )


def _to_quote_response(quote: SwapQuote) -> SwapQuoteResponse:
    return SwapQuoteResponse(
        sell_token=quote.sell_token,
        buy_token=quote.buy_token,
        sell_amount=str(quote.sell_amount),
        buy_amount=str(quote.buy_amount) if quote.buy_amount is not None else None,
        to=quote.to,
        value=str(quote.value),
        estimated_gas=quote.estimated_gas,
        allowance_target=quote.allowance_target,
        source_url=quote.source_url,
    )
