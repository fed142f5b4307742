"""
Report Command Line

Builds the customer and product reports from delimited text exports of
the star schema and writes one CSV per report.

Usage:
    warehouse-reports --facts fact_sales.csv --customers dim_customers.csv \\
        --products dim_products.csv --output-dir reports/ --as-of 2025-01-01
"""

import argparse
from datetime import date
from pathlib import Path
from typing import List, Mapping, Optional

import polars as pl
import structlog

from warehouse_analytics.config.logging import LOG_FORMATS, configure_logging
from warehouse_analytics.errors import AnalyticsError
from warehouse_analytics.ingestion import (
    DIM_CUSTOMERS_SCHEMA,
    DIM_PRODUCTS_SCHEMA,
    FACT_SALES_SCHEMA,
    load_rows,
)
from warehouse_analytics.reports import ReportRunner
from warehouse_analytics.table import ColumnType, Table

logger = structlog.get_logger(__name__)


def read_csv_table(path: Path, schema: Mapping[str, ColumnType]) -> Table:
    """Read a CSV file as text and load it through the schema adapter"""
    frame = pl.read_csv(path, infer_schema_length=0)
    return load_rows(frame.to_dicts(), schema, name=path.name)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Warehouse customer and product reports")
    parser.add_argument("--facts", type=Path, required=True, help="Sales fact CSV")
    parser.add_argument("--customers", type=Path, required=True, help="Customer dimension CSV")
    parser.add_argument("--products", type=Path, required=True, help="Product dimension CSV")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory for the report CSVs (default: current directory)",
    )
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=None,
        help="Reference date YYYY-MM-DD (default: REPORT_AS_OF_DATE, else today)",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument("--log-format", choices=LOG_FORMATS, default=None, help="Override LOG_FORMAT")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_format)

    try:
        facts = read_csv_table(args.facts, FACT_SALES_SCHEMA)
        customers = read_csv_table(args.customers, DIM_CUSTOMERS_SCHEMA)
        products = read_csv_table(args.products, DIM_PRODUCTS_SCHEMA)
        results = ReportRunner(as_of=args.as_of).run_all(facts, customers, products)
    except AnalyticsError as e:
        logger.error(f"Report generation failed: {e}")
        return 1

    args.output_dir.mkdir(parents=True, exist_ok=True)
    for report_type, result in results.items():
        output_file = args.output_dir / f"{report_type}_report.csv"
        result.table.to_polars().write_csv(output_file)
        logger.info(f"Wrote {output_file}", rows=result.output_rows)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
