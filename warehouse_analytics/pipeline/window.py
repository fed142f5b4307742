"""
Aggregation Pipeline - Window Functions

Adds derived columns computed over ordered partitions without
collapsing rows. Evaluation is an explicit sort-then-scan per
partition:

1. Rows are split into partitions by value-equal partition keys
2. Each partition is stably sorted by the order columns, so rows
   with equal order values keep their input order
3. A single scan over the sorted partition produces the values

Output rows keep the input order of the table.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import structlog

from warehouse_analytics.errors import SchemaMismatchError
from warehouse_analytics.table import ColumnType, Descending, Row, Table, sort_indices

logger = structlog.get_logger(__name__)


class WindowFunction(str, Enum):
    """Supported window functions"""
    RANK = "rank"
    DENSE_RANK = "dense-rank"
    ROW_NUMBER = "row-number"
    RUNNING_SUM = "running-sum"
    RUNNING_AVG = "running-avg"
    LAG = "lag"
    TOTAL_SUM = "total-sum"


_RANKING = {WindowFunction.RANK, WindowFunction.DENSE_RANK, WindowFunction.ROW_NUMBER}
_NUMERIC = {WindowFunction.RUNNING_SUM, WindowFunction.RUNNING_AVG, WindowFunction.TOTAL_SUM}


@dataclass
class WindowSpec:
    """
    Definition of one derived window column.

    ``column`` is the value column for running-sum, running-avg, lag and
    total-sum; ranking functions only look at the order columns.
    ``offset`` is the n of lag(n).
    """
    function: WindowFunction
    output: str
    column: Optional[str] = None
    partition_by: Sequence[str] = field(default_factory=tuple)
    order_by: Sequence[str] = field(default_factory=tuple)
    descending: Descending = False
    offset: int = 1

    def __post_init__(self):
        self.function = WindowFunction(self.function)
        self.partition_by = tuple(self.partition_by)
        self.order_by = tuple(self.order_by)
        if self.function not in _RANKING and self.column is None:
            raise ValueError(f"Window function '{self.function.value}' needs a value column")
        if self.function == WindowFunction.LAG and self.offset < 1:
            raise ValueError("lag offset must be at least 1")

    @property
    def referenced_columns(self) -> List[str]:
        columns = list(self.partition_by) + list(self.order_by)
        if self.column is not None:
            columns.append(self.column)
        return columns


def _partitions(rows: Sequence[Row], partition_by: Tuple[str, ...]) -> List[List[int]]:
    """Row indices grouped by partition key, in order of first appearance"""
    groups: Dict[Tuple[Any, ...], List[int]] = {}
    for index, row in enumerate(rows):
        key = tuple(row[c] for c in partition_by)
        groups.setdefault(key, []).append(index)
    return list(groups.values())


def _output_type(spec: WindowSpec, schema: Dict[str, ColumnType]) -> ColumnType:
    if spec.function in _RANKING:
        return ColumnType.INTEGER
    source_type = schema[spec.column]
    if spec.function == WindowFunction.LAG:
        return source_type
    if not source_type.is_numeric:
        raise SchemaMismatchError(
            f"Window function '{spec.function.value}' needs a numeric column",
            column=spec.column,
        )
    if spec.function == WindowFunction.RUNNING_AVG:
        return ColumnType.FLOAT
    return source_type


def _scan_ranking(spec: WindowSpec, rows: Sequence[Row], ordered: List[int], out: List[Any]) -> None:
    previous_key = None
    rank = dense_rank = 0
    for position, index in enumerate(ordered, start=1):
        key = tuple(rows[index][c] for c in spec.order_by)
        if position == 1 or key != previous_key:
            rank = position
            dense_rank += 1
            previous_key = key

        if spec.function == WindowFunction.RANK:
            out[index] = rank
        elif spec.function == WindowFunction.DENSE_RANK:
            out[index] = dense_rank
        else:
            out[index] = position


def _scan_running(spec: WindowSpec, rows: Sequence[Row], ordered: List[int], out: List[Any]) -> None:
    total = None
    count = 0
    for index in ordered:
        value = rows[index][spec.column]
        if value is not None:
            total = value if total is None else total + value
            count += 1

        if spec.function == WindowFunction.RUNNING_SUM:
            out[index] = total
        else:
            out[index] = total / count if count else None


def _scan_lag(spec: WindowSpec, rows: Sequence[Row], ordered: List[int], out: List[Any]) -> None:
    for position, index in enumerate(ordered):
        if position < spec.offset:
            out[index] = None
        else:
            out[index] = rows[ordered[position - spec.offset]][spec.column]


def _scan_total(spec: WindowSpec, rows: Sequence[Row], ordered: List[int], out: List[Any]) -> None:
    values = [rows[i][spec.column] for i in ordered if rows[i][spec.column] is not None]
    total = sum(values) if values else None
    for index in ordered:
        out[index] = total


_SCANNERS = {
    WindowFunction.RANK: _scan_ranking,
    WindowFunction.DENSE_RANK: _scan_ranking,
    WindowFunction.ROW_NUMBER: _scan_ranking,
    WindowFunction.RUNNING_SUM: _scan_running,
    WindowFunction.RUNNING_AVG: _scan_running,
    WindowFunction.LAG: _scan_lag,
    WindowFunction.TOTAL_SUM: _scan_total,
}


def evaluate(rows: Sequence[Row], spec: WindowSpec) -> List[Any]:
    """Window values for each input row, aligned with the input order"""
    out: List[Any] = [None] * len(rows)
    for indices in _partitions(rows, spec.partition_by):
        ordered = sort_indices(rows, spec.order_by, spec.descending, indices)
        _SCANNERS[spec.function](spec, rows, ordered, out)
    return out


def window(table: Table, spec: Union[WindowSpec, Sequence[WindowSpec]]) -> Table:
    """
    Add window columns to a table.

    Every WindowSpec is evaluated against the input table, so specs passed
    together cannot reference each other's outputs; chain calls for that.

    Raises:
        UnresolvedGroupKeyError: If a WindowSpec references unknown columns
        SchemaMismatchError: If a numeric window function targets a
            non-numeric column
    """
    specs = [spec] if isinstance(spec, WindowSpec) else list(spec)
    schema = table.schema
    for s in specs:
        table.require(*s.referenced_columns)

    output_types = [_output_type(s, schema) for s in specs]
    rows = table.rows()

    result = table
    for s, output_type in zip(specs, output_types):
        result = result.with_column(s.output, output_type, evaluate(rows, s))
        logger.debug("Window column added", function=s.function.value, output=s.output)
    return result
