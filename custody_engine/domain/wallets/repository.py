"""Repository protocol for wallet persistence."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from custody_engine.core.crypto import EncryptedKeyMaterial

from .models import CustodialKeyRecord, Wallet


class WalletRepository(Protocol):
    async def get_connected(self, user_id: str) -> Wallet | None:
        ...

    async def find_connected_by_address(self, address: str) -> Wallet | None:
        ...

    async def get_user_wallet(self, user_id: str, address: str) -> Wallet | None:
        ...

    async def list_wallets(self, user_id: str) -> Sequence[Wallet]:
        ...

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
        ...

    async def set_connected(self, wallet_id: str, *, connected: bool, timestamp: datetime) -> Wallet:
        ...

    async def disconnect_all(self, user_id: str, *, timestamp: datetime, except_id: str | None = None) -> int:
        ...

    async def touch(self, address: str, timestamp: datetime) -> None:
        ...

    async def add_custodial_key(
        self,
        *,
        user_id: str,
        address: str,
        encrypted_key: EncryptedKeyMaterial,
    ) -> CustodialKeyRecord:
        ...

    async def get_custodial_key(self, address: str) -> CustodialKeyRecord | None:
        ...

    async def get_latest_custodial_key(self, user_id: str) -> CustodialKeyRecord | None:
        ...
