"""Numeric coercion helpers for loosely-typed staff input"""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional


def to_number(value: Any) -> Optional[float]:
    """
    Coerce numbers and numeric strings to a finite float.

    Strings accept "," as decimal separator and ignore whitespace
    ("1 234,5" -> 1234.5). Returns None for anything non-finite.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        numeric = float(value)
        return numeric if math.isfinite(numeric) else None
    if isinstance(value, str):
        normalized = "".join(value.split()).replace(",", ".")
        if not normalized:
            return None
        try:
            numeric = float(normalized)
        except ValueError:
            return None
        return numeric if math.isfinite(numeric) else None
    return None


def clamp(value: float, minimum: Optional[float] = None, maximum: Optional[float] = None) -> float:
    if minimum is not None and value < minimum:
        return minimum
    if maximum is not None and value > maximum:
        return maximum
    return value


def round_half_up(value: Decimal | float | int) -> int:
    """Round to the nearest integer, halves away from zero"""
    try:
        return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        raise ValueError(f"Cannot round non-finite value {value!r}")


def to_decimal(value: Any) -> Optional[Decimal]:
    numeric = to_number(value) if not isinstance(value, Decimal) else value
    if numeric is None:
        return None
    if isinstance(numeric, Decimal):
        return numeric if numeric.is_finite() else None
    return Decimal(str(numeric))
