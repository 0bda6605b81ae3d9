"""Translation of engine errors into HTTP responses."""

from fastapi import HTTPException, status

from custody_engine.core.crypto import KeyVaultError
from custody_engine.domain.funding import (
    FundingError,
    FundingTransferError,
    InsufficientFundsError,
    MasterWalletReadOnlyError,
)
from custody_engine.domain.swaps import InvalidAmountError, SwapError, TransactionRevertedError
from custody_engine.domain.transactions import LedgerStateError, TransactionError, TransactionNotFoundError
from custody_engine.domain.wallets import (
    InvalidAddressError,
    WalletAccessError,
    WalletAlreadyConnectedError,
    WalletError,
    WalletNotFoundError,
)
from custody_engine.infrastructure.chain import AllEndpointsUnavailableError, ChainError, ReceiptTimeoutError
from custody_engine.infrastructure.quotes import QuoteError

ENGINE_ERRORS = (WalletError, FundingError, SwapError, TransactionError, QuoteError, ChainError, KeyVaultError)

# Checked in order; subclasses come before their bases.
_STATUS_MAP: tuple[tuple[type[Exception], int], ...] = (
    (WalletNotFoundError, status.HTTP_404_NOT_FOUND),
    (WalletAccessError, status.HTTP_403_FORBIDDEN),
    (WalletAlreadyConnectedError, status.HTTP_409_CONFLICT),
    (InvalidAddressError, status.HTTP_400_BAD_REQUEST),
    (InvalidAmountError, status.HTTP_400_BAD_REQUEST),
    (InsufficientFundsError, status.HTTP_402_PAYMENT_REQUIRED),
    (MasterWalletReadOnlyError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (FundingTransferError, status.HTTP_502_BAD_GATEWAY),
    (TransactionRevertedError, status.HTTP_409_CONFLICT),
    (TransactionNotFoundError, status.HTTP_404_NOT_FOUND),
    (LedgerStateError, status.HTTP_409_CONFLICT),
    (QuoteError, status.HTTP_502_BAD_GATEWAY),
    (AllEndpointsUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ReceiptTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (ChainError, status.HTTP_502_BAD_GATEWAY),
)


def to_http_exception(exc: Exception) -> HTTPException:
    for error_type, status_code in _STATUS_MAP:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
