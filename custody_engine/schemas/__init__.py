"""Pydantic schemas used across the project."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TokenData(BaseModel):
    user_id: str


class WalletResponse(BaseModel):
    id: str
    address: str
    name: Optional[str] = None
    chain_type: str
    chain_id: int
    is_custodial: bool
    is_connected: bool
    connected_at: Optional[datetime] = None
    disconnected_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WalletConnectionResponse(BaseModel):
    wallet: WalletResponse
    created: bool

    model_config = ConfigDict(from_attributes=True)


class WalletListResponse(BaseModel):
    total: int
    wallets: list[WalletResponse]


class ExternalWalletConnectRequest(BaseModel):
    address: str = Field(..., min_length=40, max_length=42)
    name: Optional[str] = Field(default=None, max_length=100)


class WalletStatusResponse(BaseModel):
    has_connected_wallet: bool
    has_custodial_wallet: bool
    wallet_type: Optional[str] = None
    connected_address: Optional[str] = None
    custodial_address: Optional[str] = None
    can_execute_transactions: bool

    model_config = ConfigDict(from_attributes=True)


class NativeBalanceResponse(BaseModel):
    address: str
    balance_wei: str
    balance: str
    symbol: str


class TokenBalanceResponse(BaseModel):
    address: str
    token_address: str
    symbol: str
    decimals: int
    balance_wei: str
    balance: str


class FundingResultResponse(BaseModel):
    funded: bool
    balance_wei: str
    tx_hash: Optional[str] = None
    shortfall_wei: str = "0"


class SwapRequest(BaseModel):
    sell_token: str = Field(..., min_length=1)
    buy_token: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    slippage_percent: Decimal = Field(default=Decimal("1"), ge=0, le=50)


class SwapQuoteResponse(BaseModel):
    sell_token: str
    buy_token: str
    sell_amount: str
    buy_amount: Optional[str] = None
    to: str
    value: str
    estimated_gas: Optional[int] = None
    allowance_target: Optional[str] = None
    source_url: str


class SwapResponse(BaseModel):
    transaction_id: str
    tx_hash: str
    success: bool
    approval_tx_hash: Optional[str] = None
    quote: SwapQuoteResponse
    funding: FundingResultResponse


class SendRequest(BaseModel):
    to_address: str = Field(..., min_length=40, max_length=42)
    amount: Decimal = Field(..., gt=0)


class SendResponse(BaseModel):
    transaction_id: str
    tx_hash: str
    success: bool
    from_address: str
    to_address: str
    amount: str
    funding: FundingResultResponse


class WithdrawalRequest(BaseModel):
    amount_usd: Decimal = Field(..., gt=0)


class WithdrawalResponse(BaseModel):
    transaction_id: str
    reference: str
    amount_usd: Decimal
    message: str
    estimated_time: str
    bank_name: str
    account_number: str

    model_config = ConfigDict(from_attributes=True)


class FundWalletRequest(BaseModel):
    amount: Optional[Decimal] = Field(default=None, gt=0)


class LedgerEntryResponse(BaseModel):
    """Ledger entry as exchanged with collaborators (camelCase keys)."""

    id: str
    owner: str
    kind: str
    token: str
    to_token: Optional[str] = None
    amount: str
    value_usd: Optional[str] = None
    from_wallet: Optional[str] = None
    to_wallet: Optional[str] = None
    status: str
    tx_hash: Optional[str] = None
    error_detail: Optional[str] = None
    notes: Optional[str] = None
    meta: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_entry(cls, entry: Any) -> "LedgerEntryResponse":
        return cls(
            id=entry.id,
            owner=entry.owner_id,
            kind=entry.kind.value,
            token=entry.token,
            to_token=entry.to_token,
            amount=entry.amount,
            value_usd=entry.value_usd,
            from_wallet=entry.from_wallet,
            to_wallet=entry.to_wallet,
            status=entry.status.value,
            tx_hash=entry.tx_hash,
            error_detail=entry.error_detail,
            notes=entry.notes,
            meta=entry.meta,
            created_at=entry.created_at,
            completed_at=entry.completed_at,
        )


class TransactionHistoryResponse(BaseModel):
    total: int
    entries: list[LedgerEntryResponse]
    summary: str


class KindStatsResponse(BaseModel):
    kind: str
    count: int
    total_value_usd: Decimal


class TransactionStatsResponse(BaseModel):
    stats: list[KindStatsResponse]


class MasterWalletInfoResponse(BaseModel):
    address: str
    balance_wei: str
    balance: str
    read_only: bool
    needs_funding: bool
    message: Optional[str] = None
