"""Ledger domain specific exceptions."""


class TransactionError(Exception):
    """Base class for ledger errors."""


class TransactionNotFoundError(TransactionError):
    """Raised when a ledger entry does not exist."""


class LedgerStateError(TransactionError):
    """Raised when a terminal entry is asked to transition again."""
