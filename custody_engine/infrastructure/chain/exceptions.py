"""Chain access errors raised by the RPC gateway and contract helpers."""

from __future__ import annotations

from collections.abc import Mapping


class ChainError(Exception):
    """Base class for chain access errors."""


class TransientNetworkError(ChainError):
    """Timeout, 5xx or malformed response from a single endpoint; retryable."""


class ChainIdMismatchError(ChainError):
    """Raised when an endpoint reports a chain id other than the configured one."""

    def __init__(self, url: str, expected: int, actual: int) -> None:
        super().__init__(f"{url} reports chain id {actual}, expected {expected}")
        self.url = url
        self.expected = expected
        self.actual = actual


class AllEndpointsUnavailableError(ChainError):
    """Raised when the retry budget is exhausted; lists every endpoint tried."""

    def __init__(self, method: str, attempts: Mapping[str, str]) -> None:
        self.method = method
        self.attempts = dict(attempts)
        tried = "; ".join(f"{url}: {error}" for url, error in self.attempts.items()) or "none"
        super().__init__(f"All RPC endpoints failed for {method}. Tried: {tried}")


class RPCError(ChainError):
    """JSON-RPC error object returned by a node (e.g. execution reverted)."""

    def __init__(self, code: int | None, message: str, data: object = None) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


class ContractReadError(ChainError):
    """Raised when a contract call returns data that cannot be decoded."""


class ReceiptTimeoutError(ChainError):
    """Raised when a transaction receipt does not appear within the timeout."""

    def __init__(self, tx_hash: str, timeout: float) -> None:
        super().__init__(f"No receipt for {tx_hash} after {timeout:.0f}s")
        self.tx_hash = tx_hash
        self.timeout = timeout
