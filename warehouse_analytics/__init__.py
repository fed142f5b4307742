"""
Warehouse Analytics Engine

Reusable metric and report computation over an already-loaded sales
star schema (one fact table, product and customer dimensions).
"""
from .errors import (
    AmbiguousRuleSetError,
    AnalyticsError,
    DivisionGuardViolation,
    SchemaMismatchError,
    UnresolvedGroupKeyError,
)
from .table import ColumnType, Table

__version__ = "1.0.0"

__all__ = [
    "AmbiguousRuleSetError",
    "AnalyticsError",
    "ColumnType",
    "DivisionGuardViolation",
    "SchemaMismatchError",
    "Table",
    "UnresolvedGroupKeyError",
]
