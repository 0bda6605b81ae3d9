"""Swap orchestration errors."""

from __future__ import annotations

from typing import Optional


class SwapError(Exception):
    """Base class for orchestrator errors."""


class InvalidAmountError(SwapError):
    """Raised when an amount is malformed, non-positive or not representable in base units."""


class TransactionRevertedError(SwapError):
    """Raised when a submitted transaction was mined with a failing status."""

    def __init__(self, tx_hash: str, reason: Optional[str] = None) -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(f"Transaction {tx_hash} reverted{detail}")
        self.tx_hash = tx_hash
        self.reason = reason
