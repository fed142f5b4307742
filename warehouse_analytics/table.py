"""
Immutable Table

In-memory tabular representation shared by every stage of the engine.
A Table wraps a polars DataFrame together with a declared schema and
never changes after construction: every operation returns a new Table.

Missing values are represented by ``None`` throughout.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import polars as pl

from .errors import SchemaMismatchError, UnresolvedGroupKeyError

Row = Dict[str, Any]
Descending = Union[bool, Sequence[bool]]


class ColumnType(str, Enum):
    """Supported column types"""
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    DATE = "date"

    @property
    def dtype(self) -> pl.DataType:
        """Polars dtype backing this column type"""
        return _POLARS_DTYPES[self]

    @property
    def is_numeric(self) -> bool:
        return self in (ColumnType.INTEGER, ColumnType.FLOAT)

    @classmethod
    def from_dtype(cls, dtype: pl.DataType) -> "ColumnType":
        """Map a polars dtype back to a column type"""
        if dtype.is_integer():
            return cls.INTEGER
        if dtype.is_float():
            return cls.FLOAT
        if dtype == pl.Date:
            return cls.DATE
        if dtype == pl.Utf8 or dtype == pl.Null:
            return cls.STRING
        raise TypeError(f"Unsupported column dtype: {dtype}")


_POLARS_DTYPES = {
    ColumnType.INTEGER: pl.Int64,
    ColumnType.FLOAT: pl.Float64,
    ColumnType.STRING: pl.Utf8,
    ColumnType.DATE: pl.Date,
}


def _normalize(value: Any, column_type: ColumnType) -> Any:
    """Normalize an already-typed Python value for storage"""
    if value is None:
        return None
    if column_type == ColumnType.FLOAT:
        return float(value)
    if column_type == ColumnType.INTEGER:
        return int(value)
    if column_type == ColumnType.DATE and isinstance(value, datetime):
        return value.date()
    if column_type == ColumnType.STRING and not isinstance(value, str):
        return str(value)
    return value


def _sort_key(value: Any) -> tuple:
    # Missing sorts lowest.
    if value is None:
        return (0,)
    return (1, value)


def sort_indices(
    rows: Sequence[Mapping[str, Any]],
    by: Sequence[str],
    descending: Descending = False,
    indices: Optional[Iterable[int]] = None,
) -> List[int]:
    """
    Return row indices ordered by the given columns.

    The sort is stable: rows with equal keys keep their input order,
    whatever the direction of each key.
    """
    ordered = list(range(len(rows))) if indices is None else list(indices)
    if isinstance(descending, bool):
        directions = [descending] * len(by)
    else:
        directions = list(descending)
        if len(directions) != len(by):
            raise ValueError("descending must match the number of order columns")

    # Least significant key first; each pass is stable.
    for column, reverse in reversed(list(zip(by, directions))):
        ordered.sort(key=lambda i: _sort_key(rows[i][column]), reverse=reverse)
    return ordered


class Table:
    """
    Ordered sequence of homogeneous rows with a declared schema.

    Example:
        table = Table.from_rows(
            [{"category": "Bikes", "sales": 300.0}],
            {"category": ColumnType.STRING, "sales": ColumnType.FLOAT},
        )
        table.column("sales")  # [300.0]
    """

    def __init__(self, frame: pl.DataFrame, schema: Optional[Mapping[str, ColumnType]] = None):
        if schema is None:
            schema = {name: ColumnType.from_dtype(dtype) for name, dtype in frame.schema.items()}
        if list(schema) != frame.columns:
            raise SchemaMismatchError(
                f"Declared columns {list(schema)} do not match frame columns {frame.columns}"
            )
        self._frame = frame
        self._schema: Dict[str, ColumnType] = dict(schema)

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[Mapping[str, Any]],
        schema: Mapping[str, ColumnType],
    ) -> "Table":
        """Build a Table from rows that carry exactly the declared columns"""
        declared = set(schema)
        columns: Dict[str, List[Any]] = {name: [] for name in schema}

        for row_number, row in enumerate(rows, start=1):
            if set(row) != declared:
                missing = sorted(declared - set(row))
                extra = sorted(set(row) - declared)
                raise SchemaMismatchError(
                    f"Row columns do not match schema (missing={missing}, extra={extra})",
                    row_number=row_number,
                )
            for name, column_type in schema.items():
                columns[name].append(_normalize(row[name], column_type))

        return cls.from_columns(columns, schema)

    @classmethod
    def from_columns(
        cls,
        columns: Mapping[str, Sequence[Any]],
        schema: Mapping[str, ColumnType],
    ) -> "Table":
        """Build a Table from per-column value lists"""
        series = [
            pl.Series(name, [_normalize(v, column_type) for v in columns[name]], dtype=column_type.dtype)
            for name, column_type in schema.items()
        ]
        return cls(pl.DataFrame(series), schema)

    @classmethod
    def empty(cls, schema: Mapping[str, ColumnType]) -> "Table":
        return cls.from_columns({name: [] for name in schema}, schema)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def schema(self) -> Dict[str, ColumnType]:
        return dict(self._schema)

    @property
    def columns(self) -> List[str]:
        return list(self._schema)

    def __len__(self) -> int:
        return self._frame.height

    def __repr__(self) -> str:
        return f"Table(rows={len(self)}, columns={self.columns})"

    def require(self, *columns: str) -> None:
        """Raise if any of the given columns is not part of the schema"""
        absent = [c for c in columns if c not in self._schema]
        if absent:
            raise UnresolvedGroupKeyError(absent, self.columns)

    def rows(self) -> List[Row]:
        """Rows as a list of dicts (fresh copies)"""
        return self._frame.to_dicts()

    def column(self, name: str) -> List[Any]:
        self.require(name)
        return self._frame.get_column(name).to_list()

    def to_polars(self) -> pl.DataFrame:
        """Copy of the underlying frame for host-side serialization"""
        return self._frame.clone()

    # ------------------------------------------------------------------
    # Transformations (all return new tables)
    # ------------------------------------------------------------------

    def with_column(self, name: str, column_type: ColumnType, values: Sequence[Any]) -> "Table":
        """Add or replace a column"""
        if len(values) != len(self):
            raise SchemaMismatchError(
                f"Column '{name}' has {len(values)} values for {len(self)} rows"
            )
        series = pl.Series(name, [_normalize(v, column_type) for v in values], dtype=column_type.dtype)
        schema = self.schema
        schema[name] = column_type
        return Table(self._frame.with_columns(series), schema)

    def derive(self, name: str, column_type: ColumnType, func: Callable[[Row], Any]) -> "Table":
        """Add a column computed row by row"""
        return self.with_column(name, column_type, [func(row) for row in self.rows()])

    def select(self, columns: Sequence[str]) -> "Table":
        self.require(*columns)
        return Table(self._frame.select(list(columns)), {c: self._schema[c] for c in columns})

    def drop(self, columns: Sequence[str]) -> "Table":
        self.require(*columns)
        keep = [c for c in self._schema if c not in set(columns)]
        return self.select(keep)

    def rename(self, mapping: Mapping[str, str]) -> "Table":
        self.require(*mapping)
        schema = {mapping.get(c, c): t for c, t in self._schema.items()}
        return Table(self._frame.rename(dict(mapping)), schema)

    def filter(self, predicate: Callable[[Row], bool]) -> "Table":
        mask = pl.Series("mask", [bool(predicate(row)) for row in self.rows()], dtype=pl.Boolean)
        return Table(self._frame.filter(mask), self._schema)

    def sort(self, by: Union[str, Sequence[str]], descending: Descending = False) -> "Table":
        """Stable sort; missing values sort lowest"""
        by = [by] if isinstance(by, str) else list(by)
        self.require(*by)
        directions = [descending] * len(by) if isinstance(descending, bool) else list(descending)
        if len(directions) != len(by):
            raise ValueError("descending must match the number of order columns")

        sorted_frame = self._frame.sort(
            by,
            descending=directions,
            nulls_last=directions,
            maintain_order=True,
        )
        return Table(sorted_frame, self._schema)

    def head(self, n: int) -> "Table":
        return Table(self._frame.head(n), self._schema)

    def left_join(self, other: "Table", on: str) -> "Table":
        """
        Left join on a single key column.

        Every row of this table is kept in its original order; rows
        without a match get missing values for all of the other table's
        attributes.
        """
        self.require(on)
        other.require(on)

        overlap = [c for c in other.columns if c != on and c in self._schema]
        if overlap:
            raise SchemaMismatchError(f"Join would duplicate columns: {overlap}")

        row_index = "__row_index"
        joined = (
            self._frame.with_row_index(row_index)
            .join(other._frame, on=on, how="left", coalesce=True)
            .sort(row_index)
            .drop(row_index)
        )

        schema = self.schema
        for column, column_type in other._schema.items():
            if column != on:
                schema[column] = column_type
        return Table(joined.select(list(schema)), schema)
