"""Funding domain specific exceptions."""

from __future__ import annotations

from typing import Optional

from custody_engine.infrastructure.chain.units import format_units


class FundingError(Exception):
    """Base class for funding errors."""


class InsufficientFundsError(FundingError):
    """An address could not be brought up to the native balance an operation needs."""

    def __init__(
        self,
        message: str,
        *,
        address: Optional[str] = None,
        required_wei: Optional[int] = None,
        balance_wei: Optional[int] = None,
        master_address: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.address = address
        self.required_wei = required_wei
        self.balance_wei = balance_wei
        self.master_address = master_address


class MasterWalletUnderfundedError(InsufficientFundsError):
    """The master wallet cannot cover the shortfall plus the gas of its own transfer."""

    def __init__(
        self,
        master_address: str,
        shortfall_wei: int,
        master_balance_wei: int,
        *,
        address: Optional[str] = None,
        required_wei: Optional[int] = None,
        balance_wei: Optional[int] = None,
        gas_cost_wei: int = 0,
    ) -> None:
        gas_note = f" plus {format_units(gas_cost_wei)} for gas" if gas_cost_wei else ""
        super().__init__(
            f"Master wallet {master_address} has {format_units(master_balance_wei)} but "
            f"{format_units(shortfall_wei)}{gas_note} is needed to fund {address or 'the wallet'}. "
            f"Fund the master wallet {master_address} and try again.",
            address=address,
            required_wei=required_wei,
            balance_wei=balance_wei,
            master_address=master_address,
        )
        self.shortfall_wei = shortfall_wei
        self.master_balance_wei = master_balance_wei
        self.gas_cost_wei = gas_cost_wei


class MasterWalletReadOnlyError(FundingError):
    """Raised when a master wallet configured by address only is asked to send."""

    def __init__(self, master_address: str) -> None:
        super().__init__(
            f"Master wallet {master_address} is read-only: no private key is configured, "
            "so it cannot send funding transactions."
        )
        self.master_address = master_address


class FundingTransferError(FundingError):
    """Raised when the funding transfer was mined but reverted."""

    def __init__(self, tx_hash: str, address: str) -> None:
        super().__init__(f"Funding transfer {tx_hash} to {address} reverted")
        self.tx_hash = tx_hash
        self.address = address
