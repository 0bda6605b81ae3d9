"""Funding subsystem: tops addresses up from the master wallet by the shortfall only."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Optional

from custody_engine.core.config import Settings
from custody_engine.infrastructure.chain import ChainError, RPCGateway, receipt_succeeded
from custody_engine.infrastructure.chain.units import format_units, to_base_units

from .exceptions import FundingError, FundingTransferError, MasterWalletUnderfundedError
from .master import MasterWallet, build_master_wallet
from .models import FundingResult, MasterWalletInfo

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FundingService:
    gateway: RPCGateway
    master: MasterWallet
    transfer_gas_limit: int = 21_000
    master_min_balance_wei: int = 10**16
    new_wallet_funding_wei: int = 2 * 10**16
    settle_delay: float = 0.0
    native_symbol: str = "ETH"
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        gateway: RPCGateway,
        master: Optional[MasterWallet] = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> "FundingService":
        return cls(
            gateway=gateway,
            master=master or build_master_wallet(settings.funding),
            transfer_gas_limit=settings.chain.transfer_gas_limit,
            master_min_balance_wei=to_base_units(settings.funding.master_min_balance),
            new_wallet_funding_wei=to_base_units(settings.funding.new_wallet_funding),
            settle_delay=settings.funding.settle_delay,
            native_symbol=settings.chain.native_symbol,
            sleep=sleep,
        )

    async def ensure_funded(self, address: str, minimum_wei: int) -> FundingResult:
        """Make sure ``address`` holds at least ``minimum_wei``, sending only the difference."""
        balance = await self.gateway.get_balance(address)
        logger.info(
            "Funding check for %s: balance %s %s, required %s",
            address,
            format_units(balance),
            self.native_symbol,
            format_units(minimum_wei),
        )
        if balance >= minimum_wei:
            return FundingResult(funded=False, balance_wei=balance)

        shortfall = minimum_wei - balance
        master_balance = await self.gateway.get_balance(self.master.address)
        gas_cost = self.transfer_gas_limit * await self.gateway.gas_price()
        if master_balance < shortfall + gas_cost:
            logger.error(
                "Master wallet %s holds %s %s, shortfall for %s is %s plus %s gas",
                self.master.address,
                format_units(master_balance),
                self.native_symbol,
                address,
                format_units(shortfall),
                format_units(gas_cost),
            )
            raise MasterWalletUnderfundedError(
                self.master.address,
                shortfall,
                master_balance,
                address=address,
                required_wei=minimum_wei,
                balance_wei=balance,
                gas_cost_wei=gas_cost,
            )

        logger.info("Sending %s %s from master wallet to %s", format_units(shortfall), self.native_symbol, address)
        tx_hash = await self.master.send_value(self.gateway, address, shortfall, gas_limit=self.transfer_gas_limit)
        receipt = await self.gateway.wait_for_receipt(tx_hash)
        if not receipt_succeeded(receipt):
            raise FundingTransferError(tx_hash, address)
        if self.settle_delay > 0:
            await self.sleep(self.settle_delay)

        new_balance = await self.gateway.get_balance(address)
        logger.info("Funding %s confirmed; %s now holds %s", tx_hash, address, format_units(new_balance))
        return FundingResult(funded=True, balance_wei=new_balance, tx_hash=tx_hash, shortfall_wei=shortfall)

    async def master_wallet_info(self) -> MasterWalletInfo:
        balance = await self.gateway.get_balance(self.master.address)
        needs_funding = balance <= self.master_min_balance_wei
        message = None
        if needs_funding:
            message = (
                f"Master wallet needs {self.native_symbol}: send at least "
                f"{format_units(self.master_min_balance_wei)} to {self.master.address} "
                "through a faucet or bridge."
            )
            logger.warning("%s Current balance: %s", message, format_units(balance))
        return MasterWalletInfo(
            address=self.master.address,
            balance_wei=balance,
            balance=format_units(balance),
            read_only=self.master.read_only,
            needs_funding=needs_funding,
            message=message,
        )

    async def fund_new_wallet(self, address: str) -> FundingResult | None:
        """Best-effort initial top-up for a freshly created custodial wallet."""
        try:
            return await self.ensure_funded(address, self.new_wallet_funding_wei)
        except (FundingError, ChainError) as exc:
            logger.warning("Initial funding of %s skipped: %s", address, exc)
            return None


__all__ = ["FundingService"]
