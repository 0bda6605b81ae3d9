"""SQLAlchemy implementation of the wallet repository."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from custody_engine.core.crypto import EncryptedKeyMaterial
from custody_engine.domain.wallets.exceptions import WalletAlreadyConnectedError, WalletNotFoundError
from custody_engine.domain.wallets.models import CustodialKeyRecord, Wallet
from custody_engine.infrastructure.database.models import CustodialKey as CustodialKeyModel
from custody_engine.infrastructure.database.models import Wallet as WalletModel


class SqlWalletRepository:
    """Wallet and custodial key persistence backed by SQLAlchemy models."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_connected(self, user_id: str) -> Wallet | None:
        stmt = (
            select(WalletModel)
            .where(WalletModel.user_id == user_id, WalletModel.is_connected.is_(True))
            .order_by(desc(WalletModel.connected_at))
        )
        result = await self.session.execute(stmt)
        return self._to_domain(result.scalars().first())

    async def find_connected_by_address(self, address: str) -> Wallet | None:
        stmt = select(WalletModel).where(
            WalletModel.address == address,
            WalletModel.is_connected.is_(True),
        )
        result = await self.session.execute(stmt)
        return self._to_domain(result.scalars().first())

    async def get_user_wallet(self, user_id: str, address: str) -> Wallet | None:
        stmt = select(WalletModel).where(WalletModel.user_id == user_id, WalletModel.address == address)
        result = await self.session.execute(stmt)
        return self._to_domain(result.scalar_one_or_none())

    async def list_wallets(self, user_id: str) -> Sequence[Wallet]:
        stmt = (
            select(WalletModel)
            .where(WalletModel.user_id == user_id)
            .order_by(desc(WalletModel.connected_at))
        )
        result = await self.session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def create_wallet(
        self,
        *,
        user_id: str,
        address: str,
        name: str | None,
        chain_type: str,
        chain_id: int,
        is_custodial: bool,
        connected_at: datetime,
    ) -> Wallet:
        model = WalletModel(
            user_id=user_id,
            address=address,
            name=name,
            chain_type=chain_type,
            chain_id=chain_id,
            is_custodial=is_custodial,
            is_connected=True,
            connected_at=connected_at,
            last_used_at=connected_at,
        )
        self.session.add(model)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise WalletAlreadyConnectedError(f"Wallet {address} is already connected") from exc
        await self.session.refresh(model)
        return self._to_domain(model)

    async def set_connected(self, wallet_id: str, *, connected: bool, timestamp: datetime) -> Wallet:
        values = {"is_connected": connected}
        if connected:
            values.update(connected_at=timestamp, disconnected_at=None)
        else:
            values["disconnected_at"] = timestamp
        stmt = (
            update(WalletModel)
            .where(WalletModel.id == wallet_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
            .returning(WalletModel)
        )
        try:
            result = await self.session.execute(stmt)
        except IntegrityError as exc:
            raise WalletAlreadyConnectedError(
                f"Wallet {wallet_id} cannot be reconnected: its address is connected to another user"
            ) from exc
        model = result.scalars().first()
        if model is None:
            raise WalletNotFoundError(wallet_id)
        return self._to_domain(model)

    async def disconnect_all(self, user_id: str, *, timestamp: datetime, except_id: str | None = None) -> int:
        stmt = update(WalletModel).where(
            WalletModel.user_id == user_id,
            WalletModel.is_connected.is_(True),
        )
        if except_id is not None:
            stmt = stmt.where(WalletModel.id != except_id)
        stmt = stmt.values(is_connected=False, disconnected_at=timestamp).execution_options(
            synchronize_session="fetch"
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def touch(self, address: str, timestamp: datetime) -> None:
        stmt = update(WalletModel).where(WalletModel.address == address).values(last_used_at=timestamp)
        await self.session.execute(stmt)

    async def add_custodial_key(
        self,
        *,
        user_id: str,
        address: str,
        encrypted_key: EncryptedKeyMaterial,
    ) -> CustodialKeyRecord:
        model = CustodialKeyModel(
            wallet_address=address,
            user_id=user_id,
            ciphertext=encrypted_key.ciphertext,
            algorithm=encrypted_key.algorithm,
        )
        self.session.add(model)
        await self.session.flush()
        return self._key_to_domain(model)

    async def get_custodial_key(self, address: str) -> CustodialKeyRecord | None:
        stmt = select(CustodialKeyModel).where(CustodialKeyModel.wallet_address == address)
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._key_to_domain(model) if model else None

    async def get_latest_custodial_key(self, user_id: str) -> CustodialKeyRecord | None:
        stmt = (
            select(CustodialKeyModel)
            .where(CustodialKeyModel.user_id == user_id)
            .order_by(desc(CustodialKeyModel.created_at))
        )
        result = await self.session.execute(stmt)
        model = result.scalars().first()
        return self._key_to_domain(model) if model else None

    @staticmethod
    def _to_domain(model: WalletModel | None) -> Wallet | None:
        if model is None:
            return None
        return Wallet(
            id=str(model.id),
            user_id=model.user_id,
            address=model.address,
            chain_type=model.chain_type,
            chain_id=model.chain_id,
            is_custodial=bool(model.is_custodial),
            is_connected=bool(model.is_connected),
            name=model.name,
            connected_at=model.connected_at,
            disconnected_at=model.disconnected_at,
            last_used_at=model.last_used_at,
            created_at=model.created_at,
        )

    @staticmethod
    def _key_to_domain(model: CustodialKeyModel) -> CustodialKeyRecord:
        return CustodialKeyRecord(
            address=model.wallet_address,
            user_id=model.user_id,
            encrypted_key=EncryptedKeyMaterial(ciphertext=model.ciphertext, algorithm=model.algorithm),
            created_at=model.created_at,
        )
