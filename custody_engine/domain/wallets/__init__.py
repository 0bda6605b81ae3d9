"""Wallet domain exports"""

from .exceptions import (
    InvalidAddressError,
    WalletAccessError,
    WalletAlreadyConnectedError,
    WalletError,
    WalletNotFoundError,
)
from .models import CustodialKeyRecord, Wallet, WalletConnection, WalletStatus
from .service import WalletService, normalize_address

__all__ = [
    "CustodialKeyRecord",
    "InvalidAddressError",
    "Wallet",
    "WalletAccessError",
    "WalletAlreadyConnectedError",
    "WalletConnection",
    "WalletError",
    "WalletNotFoundError",
    "WalletService",
    "WalletStatus",
    "normalize_address",
]
