"""Dependency container wiring the engine's long-lived services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from custody_engine.core.config import Settings, get_settings
from custody_engine.core.crypto import KeyVault
from custody_engine.domain.funding import FundingService, MasterWallet
from custody_engine.domain.swaps import SwapOrchestrator
from custody_engine.infrastructure.chain import RPCGateway
from custody_engine.infrastructure.database.session import get_session_factory
from custody_engine.infrastructure.quotes import QuoteBroker

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    vault: KeyVault
    gateway: RPCGateway
    broker: QuoteBroker
    funding: FundingService
    orchestrator: SwapOrchestrator

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        client: Optional[httpx.AsyncClient] = None,
        master: Optional[MasterWallet] = None,
        vault: Optional[KeyVault] = None,
    ) -> "ApplicationContainer":
        vault = vault or KeyVault.from_settings(settings.vault)
        gateway = RPCGateway.from_settings(settings.chain, client=client)
        broker = QuoteBroker.from_settings(settings.quotes, settings.chain, client=client)
        funding = FundingService.from_settings(settings, gateway, master)
        orchestrator = SwapOrchestrator(
            session_factory=session_factory or get_session_factory(),
            gateway=gateway,
            broker=broker,
            vault=vault,
            funding=funding,
            settings=settings,
        )
        return cls(settings, vault, gateway, broker, funding, orchestrator)

    async def aclose(self) -> None:
        await self.gateway.aclose()
        await self.broker.aclose()


@lru_cache()
def get_container() -> ApplicationContainer:
    container = ApplicationContainer.build(get_settings())
    logger.info("Container ready: chain %d, %d RPC endpoints", container.settings.chain_id, len(container.settings.chain.rpc_urls))
    return container


__all__ = ["ApplicationContainer", "get_container"]
