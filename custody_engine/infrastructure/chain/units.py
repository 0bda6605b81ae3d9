"""Conversions between human-readable token amounts and integer base units."""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

NATIVE_DECIMALS = 18


def parse_amount(value: Decimal | str | int | float) -> Decimal:
    """Parse a human amount; raises ``ValueError`` for malformed or non-finite input."""
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"invalid amount: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    return amount


def to_base_units(amount: Decimal | str | int, decimals: int = NATIVE_DECIMALS) -> int:
    with localcontext() as ctx:
        ctx.prec = 80
        scaled = parse_amount(amount) * (Decimal(10) ** decimals)
        return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def from_base_units(value: int, decimals: int = NATIVE_DECIMALS) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = 80
        return (Decimal(value) / (Decimal(10) ** decimals)).normalize()


def format_units(value: int, decimals: int = NATIVE_DECIMALS) -> str:
    amount = from_base_units(value, decimals)
    return f"{amount:f}"
