"""
Values -- Decimal helpers for quantities and amounts.

Responsibility:
    Coerce numbers and user-entered text to ``Decimal`` and round amounts
    for presentation.  The engines keep full precision; only presentation
    consumers call ``present()``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Monetary amounts are ``Decimal``, never ``float``.  Floats are
      converted through ``str()`` so ``0.1`` becomes ``Decimal("0.1")``.
    - ``parse_amount`` never raises: blank or non-numeric input is zero.
      Negative input is returned unchanged.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Convert an int, float, str or Decimal to ``Decimal``.

    Raises:
        ValueError: if the value is not numeric.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid numeric value: {value!r}") from e


def parse_amount(value: Any) -> Decimal:
    """Parse a user-entered amount; missing, blank or invalid input is zero."""
    if value is None:
        return ZERO
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if not value:
            return ZERO
    try:
        result = to_decimal(value)
    except ValueError:
        return ZERO
    if not result.is_finite():
        return ZERO
    return result


def present(amount: Decimal) -> Decimal:
    """Round an amount to two places for display (ROUND_HALF_UP)."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
