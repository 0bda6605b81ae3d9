"""Orchestrator state and result objects."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from custody_engine.domain.funding.models import FundingResult
from custody_engine.infrastructure.quotes.models import SwapQuote


class SwapState(str, Enum):
    INITIATED = "initiated"
    FUNDING = "funding"
    QUOTING = "quoting"
    APPROVING = "approving"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"


@dataclass(slots=True)
class SwapResult:
    transaction_id: str
    tx_hash: str
    success: bool
    quote: SwapQuote
    funding: FundingResult
    approval_tx_hash: Optional[str] = None


@dataclass(slots=True)
class SendResult:
    transaction_id: str
    tx_hash: str
    success: bool
    from_address: str
    to_address: str
    amount: str
    funding: FundingResult


@dataclass(slots=True)
class WithdrawalResult:
    transaction_id: str
    reference: str
    amount_usd: Decimal
    message: str
    estimated_time: str
    bank_name: str
    account_number: str


@dataclass(slots=True)
class NativeBalance:
    address: str
    balance_wei: int
    balance: str
    symbol: str


@dataclass(slots=True)
class TokenBalance:
    address: str
    token_address: str
    symbol: str
    decimals: int
    balance_wei: int
    balance: str
