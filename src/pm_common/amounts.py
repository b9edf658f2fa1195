"""Decimal amount utilities for SOL-denominated balances, stakes and pools.

All amounts are Decimal with at most 9 fractional digits (1 lamport), matching
the NUMERIC(20, 9) columns. No float arithmetic on money.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation

CURRENCY = "SOL"
AMOUNT_QUANTUM = Decimal("0.000000001")
ZERO = Decimal("0")


def quantize_amount(value: Decimal) -> Decimal:
    """Round down to lamport precision (the platform never pays out dust it doesn't hold)."""
    return value.quantize(AMOUNT_QUANTUM, rounding=ROUND_DOWN)


def parse_amount(raw: object) -> Decimal | None:
    """Parse a client-supplied amount into an exact, unrounded Decimal.

    Accepts int, float, Decimal and numeric strings. Returns None when the
    value is not a finite number (bool, NaN, Infinity, garbage strings).
    Neither the sign nor the precision is checked here; callers validate
    the raw value and quantize afterwards.
    """
    if raw is None or isinstance(raw, bool):
        return None
    try:
        # str() first so that 0.1 (float) parses as Decimal("0.1"), not its binary expansion
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    return value if value.is_finite() else None


def amount_to_display(amount: Decimal) -> str:
    """Format for humans: Decimal("1234.5") -> '1,234.50 SOL', at least 2 decimals."""
    text = f"{quantize_amount(amount):,.9f}".rstrip("0")
    whole, _, frac = text.partition(".")
    return f"{whole}.{frac.ljust(2, '0')} {CURRENCY}"
