"""Quote value objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


@dataclass(frozen=True, slots=True)
class SwapQuote:
    sell_token: str
    buy_token: str
    sell_amount: int
    to: str
    data: str
    value: int
    buy_amount: Optional[int]
    estimated_gas: Optional[int]
    allowance_target: Optional[str]
    source_url: str
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def to_meta(self) -> dict[str, Any]:
        """Serializable summary stored with the ledger entry."""
        return {
            "sellToken": self.sell_token,
            "buyToken": self.buy_token,
            "sellAmount": str(self.sell_amount),
            "buyAmount": str(self.buy_amount) if self.buy_amount is not None else None,
            "to": self.to,
            "value": str(self.value),
            "estimatedGas": self.estimated_gas,
            "allowanceTarget": self.allowance_target,
            "source": self.source_url,
        }
