"""Funding domain models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class FundingResult:
    funded: bool
    balance_wei: int
    tx_hash: Optional[str] = None
    shortfall_wei: int = 0


@dataclass(slots=True)
class MasterWalletInfo:
    address: str
    balance_wei: int
    balance: str
    read_only: bool
    needs_funding: bool
    message: Optional[str] = None
