"""Chain access: RPC gateway, ERC-20 helpers and transaction submission."""

from .erc20 import ERC20Token, approve_calldata
from .exceptions import (
    AllEndpointsUnavailableError,
    ChainError,
    ChainIdMismatchError,
    ContractReadError,
    ReceiptTimeoutError,
    RPCError,
    TransientNetworkError,
)
from .gateway import RPCEndpoint, RPCGateway
from .transactions import TransactionRequest, receipt_succeeded, sign_and_send

__all__ = [
    "AllEndpointsUnavailableError",
    "ChainError",
    "ChainIdMismatchError",
    "ContractReadError",
    "ERC20Token",
    "RPCEndpoint",
    "RPCError",
    "RPCGateway",
    "ReceiptTimeoutError",
    "TransactionRequest",
    "TransientNetworkError",
    "approve_calldata",
    "receipt_succeeded",
    "sign_and_send",
]
