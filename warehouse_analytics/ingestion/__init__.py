"""
Schema Adapter Module
"""
from .schema_adapter import TableSource, coerce_value, load, load_rows
from .schemas import DIM_CUSTOMERS_SCHEMA, DIM_PRODUCTS_SCHEMA, FACT_SALES_SCHEMA

__all__ = [
    "TableSource",
    "coerce_value",
    "load",
    "load_rows",
    "FACT_SALES_SCHEMA",
    "DIM_PRODUCTS_SCHEMA",
    "DIM_CUSTOMERS_SCHEMA",
]
