"""Wallet creation, connection and status endpoints."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from custody_engine.api.deps import get_orchestrator
from custody_engine.api.errors import ENGINE_ERRORS, to_http_exception
from custody_engine.core.security import get_current_user_id
from custody_engine.domain.swaps import SwapOrchestrator
from custody_engine.schemas import (
    ExternalWalletConnectRequest,
    WalletConnectionResponse,
    WalletListResponse,
    WalletResponse,
    WalletStatusResponse,
)

router = APIRouter()


@router.post("/custodial", response_model=WalletConnectionResponse, summary="Create or reconnect the custodial wallet")
async def create_or_connect_wallet(
    user_id: str = Depends(get_current_user_id),
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> WalletConnectionResponse:
    try:
        connection = await orchestrator.create_or_connect_wallet(user_id)
    except ENGINE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return WalletConnectionResponse.model_validate(connection)


@router.post("/external", response_model=WalletConnectionResponse, summary="Connect an external wallet address")
async def connect_external_wallet(
    payload: ExternalWalletConnectRequest,
    user_id: str = Depends(get_current_user_id),
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> WalletConnectionResponse:
    try:
        connection = await orchestrator.connect_external_wallet(user_id, payload.address, payload.name)
    except ENGINE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    return WalletConnectionResponse.model_validate(connection)


@router.get("", response_model=WalletListResponse, summary="List the user's wallets")
async def list_wallets(
    user_id: str = Depends(get_current_user_id),
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> WalletListResponse:
    wallets = await orchestrator.list_wallets(user_id)
    return WalletListResponse(total=len(wallets), wallets=[WalletResponse.model_validate(w) for w in wallets])


@router.get("/connected", response_model=WalletResponse, summary="Get the connected wallet")
async def get_connected_wallet(
    user_id: str = Depends(get_current_user_id),
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> WalletResponse:
    wallet = await orchestrator.get_connected_wallet(user_id)
    if wallet is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No wallet connected")
    return WalletResponse.model_validate(wallet)


@router.delete("/connected", response_model=WalletResponse, summary="Disconnect a wallet")
async def disconnect_wallet(
    address: Optional[str] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> WalletResponse:
    try:
        wallet = await orchestrator.disconnect_wallet(user_id, address)
    except ENGINE_ERRORS as exc:
        raise to_http_exception(exc) from exc
    if wallet is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No connected wallet to disconnect")
    return WalletResponse.model_validate(wallet)


@router.get("/status", response_model=WalletStatusResponse, summary="Wallet status for the user")
async def wallet_status(
    user_id: str = Depends(get_current_user_id),
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> WalletStatusResponse:
    return WalletStatusResponse.model_validate(await orchestrator.wallet_status(user_id))
