"""Wallet domain service: custodial creation, external connection, key lookup."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from eth_utils import is_address, to_checksum_address
from sqlalchemy.ext.asyncio import AsyncSession

from custody_engine.core.config import ChainSettings
from custody_engine.core.crypto import EncryptedKeyMaterial, KeyVault
from custody_engine.infrastructure.database.repositories.wallet_repository import SqlWalletRepository

from .exceptions import InvalidAddressError, WalletAccessError, WalletAlreadyConnectedError, WalletNotFoundError
from .models import Wallet, WalletConnection, WalletStatus
from .repository import WalletRepository

logger = logging.getLogger(__name__)


def normalize_address(address: str) -> str:
    """Return the checksummed form of ``address`` or raise :class:`InvalidAddressError`."""
    candidate = (address or "").strip()
    if not is_address(candidate):
        raise InvalidAddressError(f"Invalid wallet address: {address!r}")
    return to_checksum_address(candidate)


@dataclass(slots=True)
class WalletService:
    repository: WalletRepository
    vault: KeyVault
    chain_id: int = 1074
    chain_type: str = "iota-evm"

    @classmethod
    def with_session(cls, session: AsyncSession, vault: KeyVault, chain: ChainSettings) -> "WalletService":
        return cls(SqlWalletRepository(session), vault, chain.chain_id, chain.chain_type)

    async def create_or_connect_custodial(self, user_id: str) -> WalletConnection:
        """Reconnect the user's custodial wallet, generating one on first use."""
        now = _utcnow()
        record = await self.repository.get_latest_custodial_key(user_id)
        if record is not None:
            wallet = await self._connect(user_id, record.address, is_custodial=True, timestamp=now)
            logger.info("Reconnected custodial wallet %s for user %s", wallet.address, user_id)
            return WalletConnection(wallet=wallet, created=False)

        generated = self.vault.generate_wallet()
        await self.repository.add_custodial_key(
            user_id=user_id,
            address=generated.address,
            encrypted_key=generated.encrypted_key,
        )
        wallet = await self._connect(user_id, generated.address, is_custodial=True, timestamp=now, name="Custodial Wallet")
        logger.info("Created custodial wallet %s for user %s", wallet.address, user_id)
        return WalletConnection(wallet=wallet, created=True)

    async def connect_external(self, user_id: str, address: str, name: Optional[str] = None) -> WalletConnection:
        checksum = normalize_address(address)
        existing = await self.repository.get_user_wallet(user_id, checksum)
        wallet = await self._connect(user_id, checksum, is_custodial=False, timestamp=_utcnow(), name=name)
        logger.info("Connected external wallet %s for user %s", checksum, user_id)
        return WalletConnection(wallet=wallet, created=existing is None)

    async def get_connected_wallet(self, user_id: str) -> Wallet | None:
        return await self.repository.get_connected(user_id)

    async def require_connected_wallet(self, user_id: str) -> Wallet:
        wallet = await self.repository.get_connected(user_id)
        if wallet is None:
            raise WalletNotFoundError("No wallet connected. Create or connect a wallet first.")
        return wallet

    async def disconnect_wallet(self, user_id: str, address: Optional[str] = None) -> Wallet | None:
        if address:
            wallet = await self.repository.get_user_wallet(user_id, normalize_address(address))
        else:
            wallet = await self.repository.get_connected(user_id)
        if wallet is None or not wallet.is_connected:
            return None
        disconnected = await self.repository.set_connected(wallet.id, connected=False, timestamp=_utcnow())
        logger.info("Disconnected wallet %s for user %s", disconnected.address, user_id)
        return disconnected

    async def list_wallets(self, user_id: str) -> Sequence[Wallet]:
        return await self.repository.list_wallets(user_id)

    async def get_custodial_key(self, user_id: str) -> tuple[str, EncryptedKeyMaterial]:
        """Key material of the user's connected custodial wallet."""
        wallet = await self.require_connected_wallet(user_id)
        record = await self.repository.get_custodial_key(wallet.address)
        if record is None or record.user_id != user_id:
            raise WalletAccessError(
                f"Wallet {wallet.address} is an external wallet; transactions can only be executed "
                "from a custodial wallet. Create one to continue."
            )
        return wallet.address, record.encrypted_key

    async def wallet_status(self, user_id: str) -> WalletStatus:
        wallet = await self.repository.get_connected(user_id)
        record = await self.repository.get_latest_custodial_key(user_id)
        can_execute = False
        if wallet is not None and wallet.is_custodial:
            can_execute = await self.repository.get_custodial_key(wallet.address) is not None
        wallet_type = None
        if wallet is not None:
            wallet_type = "custodial" if wallet.is_custodial else "external"
        return WalletStatus(
            has_connected_wallet=wallet is not None,
            has_custodial_wallet=record is not None,
            wallet_type=wallet_type,
            connected_address=wallet.address if wallet else None,
            custodial_address=record.address if record else None,
            can_execute_transactions=can_execute,
        )

    async def touch(self, address: str) -> None:
        await self.repository.touch(address, _utcnow())

    async def _connect(
        self,
        user_id: str,
        address: str,
        *,
        is_custodial: bool,
        timestamp: datetime,
        name: Optional[str] = None,
    ) -> Wallet:
        """Connect ``address`` for the user and disconnect every other wallet they hold.

        An address is connected for at most one user at a time; the partial
        unique index on ``wallets.address`` backs this check against races.
        """
        holder = await self.repository.find_connected_by_address(address)
        if holder is not None and holder.user_id != user_id:
            raise WalletAlreadyConnectedError(f"Wallet {address} is already connected to another user")

        wallet = await self.repository.get_user_wallet(user_id, address)
        if wallet is None:
            wallet = await self.repository.create_wallet(
                user_id=user_id,
                address=address,
                name=name,
                chain_type=self.chain_type,
                chain_id=self.chain_id,
                is_custodial=is_custodial,
                connected_at=timestamp,
            )
        else:
            wallet = await self.repository.set_connected(wallet.id, connected=True, timestamp=timestamp)
        await self.repository.disconnect_all(user_id, timestamp=timestamp, except_id=wallet.id)
        return wallet


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ["WalletService", "normalize_address"]
