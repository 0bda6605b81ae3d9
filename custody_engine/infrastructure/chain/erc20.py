"""Minimal ERC-20 access over the RPC gateway."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, to_bytes, to_checksum_address

from .exceptions import ContractReadError
from .gateway import RPCGateway


def encode_call(signature: str, arg_types: Sequence[str] = (), args: Sequence[Any] = ()) -> str:
    selector = function_signature_to_4byte_selector(signature)
    return "0x" + (selector + encode(list(arg_types), list(args))).hex()


def approve_calldata(spender: str, amount: int) -> str:
    return encode_call("approve(address,uint256)", ["address", "uint256"], [to_checksum_address(spender), amount])


class ERC20Token:
    def __init__(self, gateway: RPCGateway, address: str) -> None:
        self._gateway = gateway
        self.address = to_checksum_address(address)

    async def decimals(self) -> int:
        return await self._read_single("decimals()", "uint8")

    async def symbol(self) -> str:
        return await self._read_single("symbol()", "string")

    async def balance_of(self, owner: str) -> int:
        return await self._read_single(
            "balanceOf(address)", "uint256", ["address"], [to_checksum_address(owner)]
        )

    async def allowance(self, owner: str, spender: str) -> int:
        return await self._read_single(
            "allowance(address,address)",
            "uint256",
            ["address", "address"],
            [to_checksum_address(owner), to_checksum_address(spender)],
        )

    async def _read_single(
        self,
        signature: str,
        output_type: str,
        arg_types: Sequence[str] = (),
        args: Sequence[Any] = (),
    ) -> Any:
        result = await self._gateway.eth_call(self.address, encode_call(signature, arg_types, args))
        try:
            (value,) = decode([output_type], to_bytes(hexstr=result or "0x"))
        except (DecodingError, ValueError, TypeError) as exc:
            raise ContractReadError(f"{signature} on {self.address} returned undecodable data") from exc
        return value


__all__ = ["ERC20Token", "approve_calldata", "encode_call"]
