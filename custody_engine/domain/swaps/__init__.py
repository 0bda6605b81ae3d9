"""Swap orchestration exports"""

from .exceptions import InvalidAmountError, SwapError, TransactionRevertedError
from .models import NativeBalance, SendResult, SwapResult, SwapState, TokenBalance, WithdrawalResult
from .service import SwapOrchestrator

__all__ = [
    "InvalidAmountError",
    "NativeBalance",
    "SendResult",
    "SwapError",
    "SwapOrchestrator",
    "SwapResult",
    "SwapState",
    "TokenBalance",
    "TransactionRevertedError",
    "WithdrawalResult",
]
