"""Decimal coercion for prices and bid amounts."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

# Matches the ``Numeric(18, 4)`` money columns.
MONEY_PLACES = 4
MONEY_DIGITS = 18
MONEY_LIMIT = Decimal(10) ** (MONEY_DIGITS - MONEY_PLACES)


def to_amount(value: Any) -> Decimal:
    """Coerce ``value`` to a finite Decimal, going through ``str`` for floats.

    Raises ``ValueError`` for anything that is not a finite number or that the
    money columns cannot store exactly.
    """

    if isinstance(value, bool):
        raise ValueError("boolean is not a monetary amount")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, TypeError) as exc:
            raise ValueError(f"{value!r} is not a monetary amount") from exc
    if not amount.is_finite():
        raise ValueError(f"{value!r} is not a finite amount")
    if amount.as_tuple().exponent < -MONEY_PLACES:
        raise ValueError(f"{value!r} has more than {MONEY_PLACES} decimal places")
    if abs(amount) >= MONEY_LIMIT:
        raise ValueError(f"{value!r} exceeds the largest storable amount")
    return amount
