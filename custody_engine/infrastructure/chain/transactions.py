"""Build, sign and broadcast legacy transactions through the gateway."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address

from .gateway import RPCGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransactionRequest:
    to: str
    value: int = 0
    data: str = "0x"
    gas: int = 21_000


def receipt_succeeded(receipt: dict[str, Any]) -> bool:
    status = receipt.get("status")
    if isinstance(status, str):
        return int(status, 16) == 1
    return status == 1


async def sign_and_send(gateway: RPCGateway, account: LocalAccount, request: TransactionRequest) -> str:
    """Sign ``request`` with ``account`` and broadcast it; returns the tx hash."""
    nonce = await gateway.get_transaction_count(account.address, "pending")
    gas_price = await gateway.gas_price()
    tx = {
        "to": to_checksum_address(request.to),
        "value": int(request.value),
        "data": request.data or "0x",
        "gas": int(request.gas),
        "gasPrice": gas_price,
        "nonce": nonce,
        "chainId": gateway.chain_id,
    }
    signed = account.sign_transaction(tx)
    tx_hash = "0x" + bytes(signed.hash).hex()
    raw = "0x" + bytes(signed.raw_transaction).hex()
    logger.info("Broadcasting tx %s from %s (nonce %d)", tx_hash, account.address, nonce)
    return await gateway.send_raw_transaction(raw, tx_hash=tx_hash)


__all__ = ["TransactionRequest", "receipt_succeeded", "sign_and_send"]
