from fastapi import APIRouter

from custody_engine.api.routers import balances, funding, swaps, transactions, wallets, withdrawals


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(wallets.router, prefix="/wallets", tags=["wallets"])
    router.include_router(balances.router, prefix="/balances", tags=["balances"])
    router.include_router(swaps.router, prefix="/swaps", tags=["swaps"])
    router.include_router(withdrawals.router, prefix="/withdrawals", tags=["withdrawals"])
    router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
    router.include_router(funding.router, prefix="/funding", tags=["funding"])
    return router


__all__ = [
    "create_api_router",
]
