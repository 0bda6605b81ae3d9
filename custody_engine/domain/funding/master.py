"""Master wallet variants used as the source of gas top-ups."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, Union

from eth_account import Account
from eth_utils import to_checksum_address

from custody_engine.core.config import FundingSettings
from custody_engine.infrastructure.chain import RPCGateway, TransactionRequest, sign_and_send

from .exceptions import MasterWalletReadOnlyError

logger = logging.getLogger(__name__)


class MasterWallet(Protocol):
    address: str
    read_only: bool

    async def send_value(self, gateway: RPCGateway, to: str, value_wei: int, *, gas_limit: int) -> str:
        ...


class ReadOnlyMasterWallet:
    """Master wallet known only by address; balance reads work, sends do not."""

    read_only = True

    def __init__(self, address: str) -> None:
        self.address = to_checksum_address(address)

    async def send_value(self, gateway: RPCGateway, to: str, value_wei: int, *, gas_limit: int) -> str:
        raise MasterWalletReadOnlyError(self.address)


class SigningMasterWallet:
    """Master wallet holding its key; submissions are serialized to keep nonces ordered."""

    read_only = False

    def __init__(self, private_key: str) -> None:
        self._account = Account.from_key(private_key)
        self.address = self._account.address
        self._lock = asyncio.Lock()

    async def send_value(self, gateway: RPCGateway, to: str, value_wei: int, *, gas_limit: int) -> str:
        # Held from nonce fetch through broadcast only; receipts are awaited outside.
        async with self._lock:
            return await sign_and_send(
                gateway,
                self._account,
                TransactionRequest(to=to, value=value_wei, gas=gas_limit),
            )


def build_master_wallet(settings: FundingSettings) -> Union[SigningMasterWallet, ReadOnlyMasterWallet]:
    if settings.master_private_key:
        wallet = SigningMasterWallet(settings.master_private_key)
        logger.info("Master wallet %s loaded with signing key", wallet.address)
        return wallet
    logger.info("Master wallet %s configured read-only", settings.master_address)
    return ReadOnlyMasterWallet(settings.master_address)


__all__ = ["MasterWallet", "ReadOnlyMasterWallet", "SigningMasterWallet", "build_master_wallet"]
