"""Small numeric and time formatting helpers shared by the provider services."""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_DOWN, ROUND_HALF_UP


def _number(value) -> Decimal:
    """Exact decimal form of a provider number; strings and bools are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a number, got {type(value).__name__}: {value!r}")
    return Decimal(value)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties toward positive infinity."""
    exact = _number(value)
    rounding = ROUND_HALF_UP if exact >= 0 else ROUND_HALF_DOWN
    return int(exact.to_integral_value(rounding=rounding))


def one_decimal(value: float) -> str:
    """Format with exactly one decimal place, ties rounded away from zero."""
    return str(_number(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def local_time_label(timestamp: float, fmt: str) -> str:
    """Unix seconds -> local wall-clock label."""
    return datetime.fromtimestamp(timestamp).strftime(fmt)


def local_date_label(timestamp: float, fmt: str) -> str:
    """Unix seconds -> local calendar date label."""
    return datetime.fromtimestamp(timestamp).date().strftime(fmt)
