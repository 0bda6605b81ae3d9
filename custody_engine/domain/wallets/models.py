"""Domain models for wallets."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from custody_engine.core.crypto import EncryptedKeyMaterial


@dataclass(slots=True)
class Wallet:
    id: str
    user_id: str
    address: str
    chain_type: str
    chain_id: int
    is_custodial: bool
    is_connected: bool
    name: Optional[str] = None
    connected_at: Optional[datetime] = None
    disconnected_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass(slots=True)
class WalletConnection:
    wallet: Wallet
    created: bool


@dataclass(slots=True)
class CustodialKeyRecord:
    address: str
    user_id: str
    encrypted_key: EncryptedKeyMaterial
    created_at: Optional[datetime] = None


@dataclass(slots=True)
class WalletStatus:
    has_connected_wallet: bool
    has_custodial_wallet: bool
    wallet_type: Optional[str]
    connected_address: Optional[str]
    custodial_address: Optional[str]
    can_execute_transactions: bool
