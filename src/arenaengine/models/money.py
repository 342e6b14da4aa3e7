"""Decimal amounts. Accepts numbers or display strings like "5 USDC"."""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Annotated, Any

from pydantic import BeforeValidator, PlainSerializer


def split_amount(value: Any) -> tuple[Decimal, str | None]:
    """Parse 5, 5.0, "5", "5 USDC" or "1,000.50 USDC" into (amount, symbol or None)."""
    symbol = None
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, bool):
        raise ValueError("amount must be numeric")
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        parts = value.split()
        if not parts or len(parts) > 2:
            raise ValueError(f"not an amount: {value!r}")
        try:
            amount = Decimal(parts[0].replace(",", ""))
        except InvalidOperation as e:
            raise ValueError(f"not an amount: {value!r}") from e
        if len(parts) == 2:
            symbol = parts[1].upper()
    else:
        raise ValueError(f"not an amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"amount must be finite: {value!r}")
    return amount, symbol


def parse_amount(value: Any, *, symbol: str | None = None) -> Decimal:
    """Amount only. With `symbol`, a display string naming another currency is rejected."""
    amount, found = split_amount(value)
    if symbol is not None and found is not None and found != symbol.upper():
        raise ValueError(f"expected {symbol.upper()}, got {found}")
    return amount


def quantize_down(amount: Decimal, precision: int) -> Decimal:
    """Round toward zero to `precision` decimal places."""
    return amount.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_DOWN)


# JSON renders amounts as strings so precision survives the round trip.
Amount = Annotated[
    Decimal,
    BeforeValidator(parse_amount),
    PlainSerializer(lambda d: str(d), return_type=str, when_used="json"),
]
