"""
Engine Error Kinds

All errors are raised synchronously by the call that triggers them.
Operations are deterministic, so none of these is worth retrying.
"""

from typing import Iterable, Optional


class AnalyticsError(Exception):
    """Base class for all engine errors"""


class SchemaMismatchError(AnalyticsError):
    """Input row is incomplete or a value cannot be coerced to its column type"""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        row_number: Optional[int] = None,
        column: Optional[str] = None,
    ):
        self.source = source
        self.row_number = row_number
        self.column = column

        location = []
        if source:
            location.append(f"source={source}")
        if row_number is not None:
            location.append(f"row={row_number}")
        if column:
            location.append(f"column={column}")

        if location:
            message = f"{message} ({', '.join(location)})"
        super().__init__(message)


class UnresolvedGroupKeyError(AnalyticsError):
    """An aggregation or window references columns that are absent from the table"""

    def __init__(self, columns: Iterable[str], available: Iterable[str] = ()):
        self.columns = list(columns)
        self.available = list(available)
        super().__init__(
            f"Column(s) not found: {', '.join(self.columns)}; "
            f"available: {', '.join(self.available) or '<none>'}"
        )


class AmbiguousRuleSetError(AnalyticsError):
    """A segmentation rule set has no fallback label"""


class DivisionGuardViolation(AnalyticsError):
    """
    A KPI produced an infinite or NaN value.

    Never expected at runtime: it means a KPI formula divides without
    going through the zero/missing guard and is treated as a defect.
    """
