"""
Report Builder

Assembles the two canonical warehouse reports from the pipeline
primitives:

- Customer report: one row per customer with spending metrics,
  age group, VIP/Regular/New segment and KPIs
- Product report: one row per product with revenue metrics,
  performance segment and KPIs

Both reports left-join the sales facts to their dimension, so a fact
whose key has no dimension row is still counted, with missing
dimension attributes.
"""

from datetime import date
from typing import Optional

import structlog

from warehouse_analytics.config import get_settings
from warehouse_analytics.config.settings import SegmentationSettings
from warehouse_analytics.pipeline import AggregateFunction, Aggregation, AggregationSpec, aggregate
from warehouse_analytics.segmentation import kpis
from warehouse_analytics.segmentation.rules import (
    age_group_rules,
    customer_segment_rules,
    product_segment_rules,
)
from warehouse_analytics.table import ColumnType, Table

logger = structlog.get_logger(__name__)

CUSTOMER_REPORT_COLUMNS = [
    "customer_key",
    "customer_number",
    "customer_name",
    "age",
    "age_group",
    "customer_segment",
    "last_order_date",
    "recency",
    "total_orders",
    "total_sales",
    "total_quantity",
    "total_products",
    "lifespan",
    "avg_order_value",
    "avg_monthly_spend",
]

PRODUCT_REPORT_COLUMNS = [
    "product_key",
    "product_name",
    "category",
    "subcategory",
    "cost",
    "last_sale_date",
    "recency_in_months",
    "product_segment",
    "lifespan",
    "total_orders",
    "total_sales",
    "total_quantity",
    "total_customers",
    "avg_selling_price",
    "avg_order_revenue",
    "avg_monthly_revenue",
]


def _thresholds(thresholds: Optional[SegmentationSettings]) -> SegmentationSettings:
    return thresholds or get_settings().segmentation


def dated_facts(facts: Table) -> Table:
    """Fact rows that carry an order date"""
    facts.require("order_date")
    return facts.filter(lambda row: row["order_date"] is not None)


def _customer_name(row) -> Optional[str]:
    parts = [p for p in (row["first_name"], row["last_name"]) if p]
    return " ".join(parts) if parts else None


def build_customer_report(
    facts: Table,
    customers: Table,
    as_of: date,
    *,
    thresholds: Optional[SegmentationSettings] = None,
) -> Table:
    """
    Build the customer report.

    Pipeline:
    1. Keep dated facts and left-join them to the customer dimension
    2. Derive customer name and age at the reference date
    3. Aggregate orders, sales, quantity and products per customer
    4. Derive lifespan, age group, segment, recency and KPIs

    Args:
        facts: Sales fact table
        customers: Customer dimension table
        as_of: Reference date for age and recency
        thresholds: Segmentation thresholds (configured defaults if omitted)

    Returns:
        One row per customer key, ordered by customer key
    """
    thresholds = _thresholds(thresholds)
    logger.info("Building customer report", facts=len(facts), customers=len(customers), as_of=str(as_of))

    base = dated_facts(facts).left_join(customers, on="customer_key")
    base = base.derive("customer_name", ColumnType.STRING, _customer_name)
    base = base.derive(
        "age", ColumnType.INTEGER, lambda row: kpis.whole_years_between(row["birthdate"], as_of)
    )

    report = aggregate(base, AggregationSpec(
        group_by=["customer_key", "customer_number", "customer_name", "age"],
        aggregations=[
            Aggregation("total_orders", AggregateFunction.COUNT_DISTINCT, "order_number"),
            Aggregation("total_sales", AggregateFunction.SUM, "sales_amount"),
            Aggregation("total_quantity", AggregateFunction.SUM, "quantity"),
            Aggregation("total_products", AggregateFunction.COUNT_DISTINCT, "product_key"),
            Aggregation("first_order_date", AggregateFunction.MIN, "order_date"),
            Aggregation("last_order_date", AggregateFunction.MAX, "order_date"),
        ],
    ))

    report = report.derive(
        "lifespan",
        ColumnType.INTEGER,
        lambda row: kpis.months_between(row["first_order_date"], row["last_order_date"]),
    )
    report = age_group_rules().apply(report, "age_group")
    report = customer_segment_rules(
        min_lifespan_months=thresholds.vip_min_lifespan_months,
        vip_min_sales=thresholds.vip_min_sales,
    ).apply(report, "customer_segment")

    report = report.derive(
        "recency", ColumnType.INTEGER, lambda row: kpis.recency_months(row["last_order_date"], as_of)
    )
    report = report.derive(
        "avg_order_value",
        ColumnType.FLOAT,
        lambda row: kpis.avg_order_value(row["total_sales"], row["total_orders"]),
    )
    report = report.derive(
        "avg_monthly_spend",
        ColumnType.FLOAT,
        lambda row: kpis.avg_monthly_spend(row["total_sales"], row["lifespan"]),
    )

    report = report.select(CUSTOMER_REPORT_COLUMNS).sort("customer_key")
    logger.info("Customer report built", rows=len(report))
    return report


def build_product_report(
    facts: Table,
    products: Table,
    as_of: date,
    *,
    thresholds: Optional[SegmentationSettings] = None,
) -> Table:
    """
    Build the product report.

    Pipeline:
    1. Keep dated facts and left-join them to the product dimension
    2. Aggregate orders, customers, sales and quantity per product
    3. Derive lifespan, segment, recency and revenue KPIs

    The average selling price is the mean of per-line sales/quantity,
    ignoring lines with zero quantity, rounded to one decimal.
    """
    thresholds = _thresholds(thresholds)
    logger.info("Building product report", facts=len(facts), products=len(products), as_of=str(as_of))

    base = dated_facts(facts).left_join(products, on="product_key")
    base = base.derive(
        "unit_price", ColumnType.FLOAT, lambda row: kpis.unit_price(row["sales_amount"], row["quantity"])
    )

    report = aggregate(base, AggregationSpec(
        group_by=["product_key", "product_name", "category", "subcategory", "cost"],
        aggregations=[
            Aggregation("first_sale_date", AggregateFunction.MIN, "order_date"),
            Aggregation("last_sale_date", AggregateFunction.MAX, "order_date"),
            Aggregation("total_orders", AggregateFunction.COUNT_DISTINCT, "order_number"),
            Aggregation("total_customers", AggregateFunction.COUNT_DISTINCT, "customer_key"),
            Aggregation("total_sales", AggregateFunction.SUM, "sales_amount"),
            Aggregation("total_quantity", AggregateFunction.SUM, "quantity"),
            Aggregation("avg_unit_price", AggregateFunction.AVG, "unit_price"),
        ],
    ))

    report = report.derive(
        "lifespan",
        ColumnType.INTEGER,
        lambda row: kpis.months_between(row["first_sale_date"], row["last_sale_date"]),
    )
    report = report.derive(
        "avg_selling_price", ColumnType.FLOAT, lambda row: kpis.round_half_up(row["avg_unit_price"], 1)
    )
    report = product_segment_rules(
        high_performer_min_sales=thresholds.high_performer_min_sales,
        mid_range_min_sales=thresholds.mid_range_min_sales,
    ).apply(report, "product_segment")

    report = report.derive(
        "recency_in_months",
        ColumnType.INTEGER,
        lambda row: kpis.recency_months(row["last_sale_date"], as_of),
    )
    report = report.derive(
        "avg_order_revenue",
        ColumnType.FLOAT,
        lambda row: kpis.avg_order_value(row["total_sales"], row["total_orders"]),
    )
    report = report.derive(
        "avg_monthly_revenue",
        ColumnType.FLOAT,
        lambda row: kpis.avg_monthly_spend(row["total_sales"], row["lifespan"]),
    )

    report = report.select(PRODUCT_REPORT_COLUMNS).sort("product_key")
    logger.info("Product report built", rows=len(report))
    return report
