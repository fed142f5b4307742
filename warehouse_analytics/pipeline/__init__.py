"""
Aggregation Pipeline Module
"""
from .aggregation import AggregateFunction, Aggregation, AggregationSpec, aggregate
from .window import WindowFunction, WindowSpec, window

__all__ = [
    "AggregateFunction",
    "Aggregation",
    "AggregationSpec",
    "aggregate",
    "WindowFunction",
    "WindowSpec",
    "window",
]
