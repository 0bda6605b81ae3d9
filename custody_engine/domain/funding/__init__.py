"""Funding subsystem exports"""

from .exceptions import (
    FundingError,
    FundingTransferError,
    InsufficientFundsError,
    MasterWalletReadOnlyError,
    MasterWalletUnderfundedError,
)
from .master import MasterWallet, ReadOnlyMasterWallet, SigningMasterWallet, build_master_wallet
from .models import FundingResult, MasterWalletInfo
from .service import FundingService

__all__ = [
    "FundingError",
    "FundingResult",
    "FundingService",
    "FundingTransferError",
    "InsufficientFundsError",
    "MasterWallet",
    "MasterWalletInfo",
    "MasterWalletReadOnlyError",
    "MasterWalletUnderfundedError",
    "ReadOnlyMasterWallet",
    "SigningMasterWallet",
    "build_master_wallet",
]
