from __future__ import annotations

import math

DEFAULT_CURRENCY = "LKR"


def to_number(value: object) -> float:
    """Read a stored numeric field, treating anything unusable as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def format_currency(amount: float, currency: str = DEFAULT_CURRENCY) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency} {abs(amount):,.2f}"
