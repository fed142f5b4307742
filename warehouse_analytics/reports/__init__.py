"""
Report Builder Module
"""
from .builder import build_customer_report, build_product_report
from .queries import (
    TimeGrain,
    bottom_n,
    category_contribution,
    cost_range_distribution,
    customer_segment_counts,
    measures_summary,
    order_date_range,
    part_to_whole,
    rank_by,
    running_totals,
    sales_over_time,
    top_n,
    totals_by,
    truncate_date,
    year_over_year,
)
from .runner import ReportResult, ReportRunner, ReportType

__all__ = [
    "build_customer_report",
    "build_product_report",
    "TimeGrain",
    "bottom_n",
    "category_contribution",
    "cost_range_distribution",
    "customer_segment_counts",
    "measures_summary",
    "order_date_range",
    "part_to_whole",
    "rank_by",
    "running_totals",
    "sales_over_time",
    "top_n",
    "totals_by",
    "truncate_date",
    "year_over_year",
    "ReportResult",
    "ReportRunner",
    "ReportType",
]
