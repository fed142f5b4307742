"""
Schema Adapter

Maps external row sources (file readers, database cursors, in-memory
lists) into the engine's Table representation, coercing raw field
values to the declared column types.

Blank and null fields become missing values, never zero, so that
downstream aggregates can apply NULL-exclusion semantics.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping

import structlog
from pydantic import FiniteFloat, TypeAdapter, ValidationError

from warehouse_analytics.errors import SchemaMismatchError
from warehouse_analytics.table import ColumnType, Table

logger = structlog.get_logger(__name__)

_ADAPTERS: Dict[ColumnType, TypeAdapter] = {
    ColumnType.INTEGER: TypeAdapter(int),
    ColumnType.FLOAT: TypeAdapter(FiniteFloat),
    ColumnType.DATE: TypeAdapter(date),
}
_DATETIME_ADAPTER = TypeAdapter(datetime)


@dataclass
class TableSource:
    """External row iterator plus its schema declaration"""
    name: str
    schema: Mapping[str, ColumnType]
    rows: Iterable[Mapping[str, Any]]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def coerce_value(value: Any, column_type: ColumnType) -> Any:
    """
    Coerce a raw field value to the given column type.

    Raises:
        ValueError: If the value cannot be represented in the column type
    """
    if _is_blank(value):
        return None

    if column_type == ColumnType.STRING:
        return value if isinstance(value, str) else str(value)

    if column_type == ColumnType.DATE:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and len(value.strip()) > 10:
            # Timestamps such as "2013-01-01 00:00:00"
            return _DATETIME_ADAPTER.validate_python(value.strip()).date()

    if isinstance(value, str):
        value = value.strip()

    return _ADAPTERS[column_type].validate_python(value)


def load(source: TableSource) -> Table:
    """
    Convert a row source into a Table.

    Columns outside the declared schema are ignored.

    Args:
        source: Rows and their schema declaration

    Returns:
        Table with exactly the declared columns

    Raises:
        SchemaMismatchError: If a row lacks a declared column or a value
            cannot be coerced to its declared type
    """
    schema = dict(source.schema)
    columns: Dict[str, List[Any]] = {name: [] for name in schema}
    row_count = 0

    for row_number, raw in enumerate(source.rows, start=1):
        for name, column_type in schema.items():
            if name not in raw:
                raise SchemaMismatchError(
                    "Missing declared column",
                    source=source.name,
                    row_number=row_number,
                    column=name,
                )
            try:
                columns[name].append(coerce_value(raw[name], column_type))
            except (ValidationError, ValueError, TypeError) as e:
                raise SchemaMismatchError(
                    f"Cannot coerce {raw[name]!r} to {column_type.value}",
                    source=source.name,
                    row_number=row_number,
                    column=name,
                ) from e
        row_count = row_number

    logger.debug("Loaded source", source=source.name, rows=row_count, columns=len(schema))
    return Table.from_columns(columns, schema)


def load_rows(
    rows: Iterable[Mapping[str, Any]],
    schema: Mapping[str, ColumnType],
    name: str = "rows",
) -> Table:
    """Convenience wrapper around load() for in-memory rows"""
    return load(TableSource(name=name, schema=schema, rows=rows))
