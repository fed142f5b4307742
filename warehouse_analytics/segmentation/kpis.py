"""
KPI Derivations

Guarded arithmetic and calendar helpers behind the report KPIs.
A division by a zero or missing measure yields missing, never an
error, zero or infinity.
"""

import math
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from warehouse_analytics.errors import DivisionGuardViolation

Number = Union[int, float]


def safe_divide(numerator: Optional[Number], denominator: Optional[Number]) -> Optional[float]:
    """numerator / denominator, or None when either side is missing or the denominator is 0"""
    if numerator is None or denominator is None or denominator == 0:
        return None
    return numerator / denominator


def ensure_finite(name: str, value: Optional[Number]) -> Optional[Number]:
    """
    Pass a KPI value through, rejecting inf and NaN.

    Raises:
        DivisionGuardViolation: If the value is not finite
    """
    if value is not None and isinstance(value, float) and not math.isfinite(value):
        raise DivisionGuardViolation(f"KPI '{name}' produced {value!r}; a division guard is missing")
    return value


def round_half_up(value: Optional[Number], digits: int = 0) -> Optional[float]:
    """Round half away from zero (SQL ROUND), unlike the built-in round()"""
    if value is None:
        return None
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def months_between(start: Optional[date], end: Optional[date]) -> Optional[int]:
    """Number of calendar month boundaries crossed from start to end"""
    if start is None or end is None:
        return None
    return (end.year - start.year) * 12 + (end.month - start.month)


def whole_years_between(start: Optional[date], end: Optional[date]) -> Optional[int]:
    """Completed years from start to end, e.g. age at a reference date"""
    if start is None or end is None:
        return None
    years = end.year - start.year
    if (end.month, end.day) < (start.month, start.day):
        years -= 1
    return years


def avg_order_value(total_sales: Optional[Number], total_orders: Optional[Number]) -> Optional[float]:
    return ensure_finite("avg_order_value", safe_divide(total_sales, total_orders))


def avg_monthly_spend(total_sales: Optional[Number], lifespan: Optional[Number]) -> Optional[float]:
    return ensure_finite("avg_monthly_spend", safe_divide(total_sales, lifespan))


def unit_price(sales_amount: Optional[Number], quantity: Optional[Number]) -> Optional[float]:
    """Per-line selling price; zero-quantity lines are excluded from averages"""
    return ensure_finite("unit_price", safe_divide(sales_amount, quantity))


def recency_months(last_activity: Optional[date], as_of: date) -> Optional[int]:
    return months_between(last_activity, as_of)


def percentage(part: Optional[Number], whole: Optional[Number], digits: int = 2) -> Optional[float]:
    """part / whole * 100 rounded to the given digits"""
    ratio = ensure_finite("percentage", safe_divide(part, whole))
    if ratio is None:
        return None
    return round_half_up(ratio * 100, digits)
