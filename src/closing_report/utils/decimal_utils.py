"""Decimal utilities for report amounts.

All monetary calculations use Decimal to avoid floating-point drift in the
per-payer sums written into the aggregate tables.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional


# Currency symbols stripped before parsing
CURRENCY_SYMBOLS = {"$", "€", "£", "₺", "TL", "TRY"}

# "1.234,56" style amounts (period thousands, comma decimals)
_EU_AMOUNT_PATTERN = re.compile(r"^-?\d{1,3}(\.\d{3})+,\d{1,4}$")


def to_decimal(value: object) -> Decimal:
    """Convert a raw amount into a Decimal.

    Accepts Decimal, int, float and strings such as "120", "120.50",
    "1.234,56" or "₺ 45,90".

    Args:
        value: Raw amount.

    Returns:
        Parsed Decimal (may be negative or non-finite; callers decide
        whether it is writable).

    Raises:
        ValueError: If the value cannot be interpreted as a number.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Cannot parse amount: {value!r}")

    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # Convert float to string first for precision
        return Decimal(str(value))

    amount_str = str(value).strip()
    for symbol in CURRENCY_SYMBOLS:
        amount_str = amount_str.replace(symbol, "")
    amount_str = amount_str.replace(" ", "")

    if _EU_AMOUNT_PATTERN.match(amount_str):
        amount_str = amount_str.replace(".", "").replace(",", ".")
    elif "," in amount_str and "." not in amount_str:
        amount_str = amount_str.replace(",", ".")
    else:
        amount_str = amount_str.replace(",", "")

    if not amount_str:
        raise ValueError(f"Cannot parse amount: {value!r}")

    try:
        return Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Cannot parse amount '{value}': {e}") from e


def is_writable_amount(amount: Optional[Decimal]) -> bool:
    """Check whether an amount may be written into the report.

    Args:
        amount: Amount to check.

    Returns:
        True for finite, non-negative amounts.
    """
    if amount is None:
        return False
    return amount.is_finite() and amount >= 0
