"""Wallet domain specific exceptions."""


class WalletError(Exception):
    """Base class for wallet domain errors."""


class WalletNotFoundError(WalletError):
    """Raised when the user has no connected wallet."""


class WalletAccessError(WalletError):
    """Raised when an operation needs a custodial key the user does not have."""


class WalletAlreadyConnectedError(WalletError):
    """Raised when the address is connected for a different user."""


class InvalidAddressError(WalletError):
    """Raised when a wallet address is not a valid EVM address."""
