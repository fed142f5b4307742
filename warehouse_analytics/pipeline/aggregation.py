"""
Aggregation Pipeline - Group By

Groups a Table by value-equal keys and computes aggregates over the
non-missing values of each group, in the way SQL GROUP BY does.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

import polars as pl
import structlog

from warehouse_analytics.errors import SchemaMismatchError
from warehouse_analytics.table import Table

logger = structlog.get_logger(__name__)


class AggregateFunction(str, Enum):
    """Supported aggregate functions"""
    SUM = "sum"
    COUNT = "count"
    COUNT_DISTINCT = "count-distinct"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


_NUMERIC_ONLY = {AggregateFunction.SUM, AggregateFunction.AVG}


@dataclass
class Aggregation:
    """One output column of an aggregation"""
    output: str
    function: AggregateFunction
    column: Optional[str] = None  # None with COUNT counts rows

    def __post_init__(self):
        self.function = AggregateFunction(self.function)
        if self.column is None and self.function != AggregateFunction.COUNT:
            raise ValueError(f"Aggregate '{self.output}' needs a source column")


@dataclass
class AggregationSpec:
    """Group-by columns plus the aggregates to compute per group"""
    group_by: Sequence[str] = field(default_factory=tuple)
    aggregations: List[Aggregation] = field(default_factory=list)

    def __post_init__(self):
        self.group_by = tuple(self.group_by)
        outputs = list(self.group_by) + [a.output for a in self.aggregations]
        duplicates = sorted({name for name in outputs if outputs.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate output columns: {duplicates}")

    @property
    def referenced_columns(self) -> List[str]:
        columns = list(self.group_by)
        columns.extend(a.column for a in self.aggregations if a.column is not None)
        return columns


def _expression(aggregation: Aggregation) -> pl.Expr:
    """Polars expression for one aggregate, ignoring missing values"""
    function = aggregation.function

    if aggregation.column is None:
        return pl.len().cast(pl.Int64).alias(aggregation.output)

    col = pl.col(aggregation.column)
    if function == AggregateFunction.SUM:
        # SUM over no values is missing, not zero
        expr = pl.when(col.count() > 0).then(col.sum()).otherwise(None)
    elif function == AggregateFunction.COUNT:
        expr = col.count().cast(pl.Int64)
    elif function == AggregateFunction.COUNT_DISTINCT:
        expr = col.drop_nulls().n_unique().cast(pl.Int64)
    elif function == AggregateFunction.AVG:
        expr = col.mean()
    elif function == AggregateFunction.MIN:
        expr = col.min()
    else:
        expr = col.max()

    return expr.alias(aggregation.output)


def aggregate(table: Table, spec: AggregationSpec) -> Table:
    """
    Group a table and aggregate each group.

    Groups appear in order of first appearance; callers that need a
    particular order must sort the result. An empty group-by list
    yields a single grand-total row.

    Args:
        table: Input table
        spec: Group-by columns and aggregates

    Returns:
        Table with group-by columns followed by aggregate outputs

    Raises:
        UnresolvedGroupKeyError: If the AggregationSpec references unknown columns
    """
    table.require(*spec.referenced_columns)

    schema = table.schema
    for aggregation in spec.aggregations:
        if aggregation.function in _NUMERIC_ONLY and not schema[aggregation.column].is_numeric:
            raise SchemaMismatchError(
                f"Aggregate '{aggregation.function.value}' needs a numeric column",
                column=aggregation.column,
            )

    frame = table.to_polars()
    expressions = [_expression(a) for a in spec.aggregations]

    if spec.group_by:
        result = frame.group_by(list(spec.group_by), maintain_order=True).agg(expressions)
    else:
        result = frame.select(expressions)

    logger.debug(
        "Aggregated table",
        group_by=list(spec.group_by),
        input_rows=len(table),
        groups=result.height,
    )
    return Table(result)
