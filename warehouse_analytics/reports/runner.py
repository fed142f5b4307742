"""
Report Runner

Orchestrates report builds for a host application: resolves the
reference date, runs the builders and records row counts and timings.
A failing report raises; no partial table is ever returned.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Callable, Dict, Optional

import structlog

from warehouse_analytics.config import Settings, get_settings
from warehouse_analytics.table import Table

from .builder import build_customer_report, build_product_report

logger = structlog.get_logger(__name__)


class ReportType(str, Enum):
    """Types of reports"""
    CUSTOMERS = "customers"
    PRODUCTS = "products"


@dataclass
class ReportResult:
    """Result of a report run"""
    report_type: ReportType
    as_of: date
    input_rows: int
    output_rows: int
    started_at: datetime
    completed_at: datetime
    duration_seconds: float
    table: Table


class ReportRunner:
    """
    Runs the canonical reports with a fixed reference date and thresholds.

    Example:
        runner = ReportRunner(as_of=date(2025, 1, 1))
        result = runner.run_customer_report(facts, customers)
        result.table.to_polars().write_csv("customers_report.csv")
    """

    def __init__(
        self,
        as_of: Optional[date] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.as_of = self.settings.resolve_as_of(as_of)

    def _run(
        self,
        report_type: ReportType,
        facts: Table,
        build: Callable[[], Table],
    ) -> ReportResult:
        started_at = datetime.utcnow()
        logger.info(f"Starting {report_type.value} report with {len(facts)} fact rows", as_of=str(self.as_of))

        try:
            table = build()
        except Exception:
            logger.exception(f"{report_type.value} report failed")
            raise

        completed_at = datetime.utcnow()
        result = ReportResult(
            report_type=report_type,
            as_of=self.as_of,
            input_rows=len(facts),
            output_rows=len(table),
            started_at=started_at,
            completed_at=completed_at,
            duration_seconds=(completed_at - started_at).total_seconds(),
            table=table,
        )
        logger.info(
            f"{report_type.value} report complete: {result.input_rows} facts → {result.output_rows} rows",
            duration=round(result.duration_seconds, 3),
        )
        return result

    def run_customer_report(self, facts: Table, customers: Table) -> ReportResult:
        return self._run(
            ReportType.CUSTOMERS,
            facts,
            lambda: build_customer_report(
                facts, customers, self.as_of, thresholds=self.settings.segmentation
            ),
        )

    def run_product_report(self, facts: Table, products: Table) -> ReportResult:
        return self._run(
            ReportType.PRODUCTS,
            facts,
            lambda: build_product_report(
                facts, products, self.as_of, thresholds=self.settings.segmentation
            ),
        )

    def run_all(
        self,
        facts: Table,
        customers: Table,
        products: Table,
    ) -> Dict[str, ReportResult]:
        """
        Run every report against the same inputs.

        Returns:
            Dictionary of report results by type
        """
        logger.info("Running all reports")
        results = {
            ReportType.CUSTOMERS.value: self.run_customer_report(facts, customers),
            ReportType.PRODUCTS.value: self.run_product_report(facts, products),
        }

        total_duration = sum(r.duration_seconds for r in results.values())
        logger.info(f"All reports complete, duration: {total_duration:.2f}s")
        return results
