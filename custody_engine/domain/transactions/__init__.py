"""Transaction ledger exports"""

from .exceptions import LedgerStateError, TransactionError, TransactionNotFoundError
from .models import KindStats, LedgerEntry, TransactionKind, TransactionStatus
from .service import TransactionService

__all__ = [
    "KindStats",
    "LedgerEntry",
    "LedgerStateError",
    "TransactionError",
    "TransactionKind",
    "TransactionNotFoundError",
    "TransactionService",
    "TransactionStatus",
]
