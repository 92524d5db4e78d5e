from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

TOKEN_DECIMALS = 18


def utc_now_rfc3339() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def to_base_units(amount: str, decimals: int = TOKEN_DECIMALS) -> int:
    """Convert a human token amount ("1.5") to integer base units."""
    value = Decimal(str(amount)) * (Decimal(10) ** decimals)
    if value != value.to_integral_value():
        raise ValueError(f"Amount {amount} has more than {decimals} decimal places")
    return int(value)


def from_base_units(value: int, decimals: int = TOKEN_DECIMALS) -> Decimal:
    return Decimal(value) / (Decimal(10) ** decimals)


def format_units(value: int, decimals: int = TOKEN_DECIMALS) -> str:
    """Format base units without trailing zeros, e.g. 1.5 or 100."""
    text = format(from_base_units(value, decimals), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
