"""
Money helpers -- Decimal-only amounts at cent precision.

Responsibility:
    Normalizes every amount that enters the ledger to a ``Decimal`` with two
    decimal places.  Floats are rejected at the boundary; processor amounts
    in minor units are converted here.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Amounts are ``Decimal`` quantized to cents (ROUND_HALF_UP).
    - ``float`` input is refused; binary floating point never touches
      balance arithmetic.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_amount(value: Decimal | str | int) -> Decimal:
    """Coerce ``value`` to a cent-quantized Decimal.

    Raises:
        TypeError: If ``value`` is a float or bool.
        ValueError: If ``value`` is not a finite number.
    """
    if isinstance(value, (float, bool)):
        raise TypeError(
            f"Amounts must be Decimal, str or int, not {type(value).__name__}"
        )
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Not a valid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def from_minor_units(value: int) -> Decimal:
    """Convert an integer count of cents to a Decimal dollar amount."""
    return (Decimal(value) / 100).quantize(CENT, rounding=ROUND_HALF_UP)


def total(amounts) -> Decimal:
    """Sum an iterable of Decimals, returning ``0.00`` for an empty input."""
    result = ZERO
    for amount in amounts:
        result += amount
    return result.quantize(CENT, rounding=ROUND_HALF_UP)
