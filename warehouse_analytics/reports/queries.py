"""
Analytical Query Families

Composable queries over the star schema, built from the aggregation,
window and rule primitives:

- Exploration: order date range, key measures summary
- Magnitude: totals by any dimension attribute
- Ranking: top/bottom-N with tie-aware ranks
- Change over time: monthly/yearly buckets, running totals,
  year-over-year comparison
- Part-to-whole: percentage contribution
- Segmentation: product cost ranges, customer segment counts
"""

from datetime import date
from enum import Enum
from typing import Optional, Sequence

import structlog

from warehouse_analytics.config import get_settings
from warehouse_analytics.pipeline import (
    AggregateFunction,
    Aggregation,
    AggregationSpec,
    WindowFunction,
    WindowSpec,
    aggregate,
    window,
)
from warehouse_analytics.segmentation import kpis
from warehouse_analytics.segmentation.rules import (
    average_comparison_rules,
    change_direction_rules,
    cost_bucket_rules,
)
from warehouse_analytics.table import ColumnType, Table

from .builder import dated_facts

logger = structlog.get_logger(__name__)


class TimeGrain(str, Enum):
    """Period granularity for time bucketing"""
    MONTH = "month"
    YEAR = "year"


def truncate_date(value: Optional[date], grain: TimeGrain) -> Optional[date]:
    """First day of the period containing value"""
    if value is None:
        return None
    if TimeGrain(grain) == TimeGrain.YEAR:
        return date(value.year, 1, 1)
    return date(value.year, value.month, 1)


# =============================================================================
# RANKING
# =============================================================================

def rank_by(
    table: Table,
    metric: str,
    *,
    output: str = "rank",
    partition_by: Sequence[str] = (),
    descending: bool = True,
    method: WindowFunction = WindowFunction.RANK,
) -> Table:
    """Add a rank column ordered by a metric (highest first by default)"""
    return window(table, WindowSpec(
        function=method,
        output=output,
        partition_by=partition_by,
        order_by=[metric],
        descending=descending,
    ))


def _ranked_slice(
    table: Table,
    metric: str,
    n: Optional[int],
    partition_by: Sequence[str],
    descending: bool,
    output: str,
) -> Table:
    n = n if n is not None else get_settings().report.top_n
    if n < 1:
        raise ValueError("n must be at least 1")

    table.require(metric, *partition_by)
    ranked = rank_by(
        table.filter(lambda row: row[metric] is not None),
        metric,
        output=output,
        partition_by=partition_by,
        descending=descending,
    )
    selected = ranked.filter(lambda row: row[output] <= n)
    return selected.sort(list(partition_by) + [output])


def top_n(
    table: Table,
    metric: str,
    n: Optional[int] = None,
    *,
    partition_by: Sequence[str] = (),
    output: str = "rank",
) -> Table:
    """
    Rows with the n highest metric values.

    Ties share a rank, so more than n rows come back when rows tie at
    the cut-off. Rows with a missing metric are never ranked.
    """
    return _ranked_slice(table, metric, n, partition_by, True, output)


def bottom_n(
    table: Table,
    metric: str,
    n: Optional[int] = None,
    *,
    partition_by: Sequence[str] = (),
    output: str = "rank",
) -> Table:
    """Rows with the n lowest metric values; ties handled as in top_n()"""
    return _ranked_slice(table, metric, n, partition_by, False, output)


# =============================================================================
# CHANGE OVER TIME
# =============================================================================

def _with_period(facts: Table, grain: TimeGrain, output: str = "order_period") -> Table:
    return dated_facts(facts).derive(
        output, ColumnType.DATE, lambda row: truncate_date(row["order_date"], grain)
    )


def sales_over_time(facts: Table, grain: TimeGrain = TimeGrain.MONTH) -> Table:
    """Sales, distinct customers and quantity per month or year"""
    bucketed = aggregate(_with_period(facts, grain), AggregationSpec(
        group_by=["order_period"],
        aggregations=[
            Aggregation("total_sales", AggregateFunction.SUM, "sales_amount"),
            Aggregation("total_customers", AggregateFunction.COUNT_DISTINCT, "customer_key"),
            Aggregation("total_quantity", AggregateFunction.SUM, "quantity"),
        ],
    ))
    return bucketed.sort("order_period")


def running_totals(
    facts: Table,
    grain: TimeGrain = TimeGrain.MONTH,
    *,
    reset_each_year: bool = False,
) -> Table:
    """
    Cumulative sales and moving average price per period.

    With reset_each_year the running values restart every calendar year.
    """
    periods = aggregate(_with_period(facts, grain), AggregationSpec(
        group_by=["order_period"],
        aggregations=[
            Aggregation("total_sales", AggregateFunction.SUM, "sales_amount"),
            Aggregation("avg_price", AggregateFunction.AVG, "price"),
        ],
    ))
    periods = periods.derive("order_year", ColumnType.INTEGER, lambda row: row["order_period"].year)

    partition_by = ["order_year"] if reset_each_year else []
    result = window(periods, [
        WindowSpec(
            function=WindowFunction.RUNNING_SUM,
            output="running_total_sales",
            column="total_sales",
            partition_by=partition_by,
            order_by=["order_period"],
        ),
        WindowSpec(
            function=WindowFunction.RUNNING_AVG,
            output="moving_average_price",
            column="avg_price",
            partition_by=partition_by,
            order_by=["order_period"],
        ),
    ])
    return result.drop(["order_year"]).sort("order_period")


def year_over_year(
    facts: Table,
    dimension: Optional[Table] = None,
    *,
    entity: str = "product_name",
    key: str = "product_key",
    metric: str = "sales_amount",
) -> Table:
    """
    Yearly performance of each entity against its own average and prior year.

    Output columns: order_year, entity, current_sales, avg_sales,
    diff_avg, avg_change, py_sales, diff_py, py_change. The prior-year
    value is lag(1) over the entity's years, so an entity's first year
    has a missing py_sales and is labelled "No Change".

    Args:
        facts: Sales fact table
        dimension: Dimension to left-join on ``key`` (None when the
            entity column is already on the facts)
        entity: Column identifying the compared entity
        key: Join key between facts and dimension
        metric: Fact measure to total per year
    """
    base = dated_facts(facts)
    if dimension is not None:
        base = base.left_join(dimension, on=key)
    base.require(entity, metric)
    base = base.derive("order_year", ColumnType.INTEGER, lambda row: row["order_date"].year)

    yearly = aggregate(base, AggregationSpec(
        group_by=["order_year", entity],
        aggregations=[Aggregation("current_sales", AggregateFunction.SUM, metric)],
    ))

    averages = aggregate(yearly, AggregationSpec(
        group_by=[entity],
        aggregations=[Aggregation("avg_sales", AggregateFunction.AVG, "current_sales")],
    ))
    # Looked up rather than joined: a missing entity is its own partition.
    avg_by_entity = {row[entity]: row["avg_sales"] for row in averages.rows()}
    yearly = yearly.derive("avg_sales", ColumnType.FLOAT, lambda row: avg_by_entity[row[entity]])

    def difference(current: str, reference: str):
        def compute(row):
            if row[current] is None or row[reference] is None:
                return None
            return row[current] - row[reference]
        return compute

    yearly = yearly.derive("diff_avg", ColumnType.FLOAT, difference("current_sales", "avg_sales"))
    yearly = average_comparison_rules("diff_avg").apply(yearly, "avg_change")

    yearly = window(yearly, WindowSpec(
        function=WindowFunction.LAG,
        output="py_sales",
        column="current_sales",
        partition_by=[entity],
        order_by=["order_year"],
    ))
    yearly = yearly.derive(
        "diff_py", yearly.schema["current_sales"], difference("current_sales", "py_sales")
    )
    yearly = change_direction_rules("diff_py").apply(yearly, "py_change")

    columns = [
        "order_year", entity, "current_sales", "avg_sales", "diff_avg",
        "avg_change", "py_sales", "diff_py", "py_change",
    ]
    return yearly.select(columns).sort([entity, "order_year"])


# =============================================================================
# PART-TO-WHOLE
# =============================================================================

def part_to_whole(
    table: Table,
    metric: str,
    *,
    output: str = "percentage_of_total",
    total_output: str = "overall_total",
    partition_by: Sequence[str] = (),
) -> Table:
    """Each row's share of the metric total, as a percentage rounded to 2 decimals"""
    with_total = window(table, WindowSpec(
        function=WindowFunction.TOTAL_SUM,
        output=total_output,
        column=metric,
        partition_by=partition_by,
    ))
    return with_total.derive(
        output, ColumnType.FLOAT, lambda row: kpis.percentage(row[metric], row[total_output])
    )


def category_contribution(
    facts: Table,
    products: Table,
    *,
    dimension_column: str = "category",
) -> Table:
    """Sales per product category and its share of overall sales"""
    joined = facts.left_join(products, on="product_key")
    totals = aggregate(joined, AggregationSpec(
        group_by=[dimension_column],
        aggregations=[Aggregation("total_sales", AggregateFunction.SUM, "sales_amount")],
    ))
    return part_to_whole(totals, "total_sales", total_output="overall_sales").sort(
        "total_sales", descending=True
    )


# =============================================================================
# EXPLORATION & MAGNITUDE
# =============================================================================

def order_date_range(facts: Table) -> Table:
    """First and last order date and the months between them"""
    span = aggregate(facts, AggregationSpec(aggregations=[
        Aggregation("first_order_date", AggregateFunction.MIN, "order_date"),
        Aggregation("last_order_date", AggregateFunction.MAX, "order_date"),
    ]))
    return span.derive(
        "order_range_months",
        ColumnType.INTEGER,
        lambda row: kpis.months_between(row["first_order_date"], row["last_order_date"]),
    )


def measures_summary(facts: Table, customers: Table, products: Table) -> Table:
    """Key business measures as (measure_name, measure_value) rows"""
    fact_measures = aggregate(facts, AggregationSpec(aggregations=[
        Aggregation("Total Sales", AggregateFunction.SUM, "sales_amount"),
        Aggregation("Total Quantity", AggregateFunction.SUM, "quantity"),
        Aggregation("Average Price", AggregateFunction.AVG, "price"),
        Aggregation("Total Orders", AggregateFunction.COUNT_DISTINCT, "order_number"),
        Aggregation("Total Ordering Customers", AggregateFunction.COUNT_DISTINCT, "customer_key"),
    ])).rows()[0]
    product_count = aggregate(products, AggregationSpec(aggregations=[
        Aggregation("Total Products", AggregateFunction.COUNT_DISTINCT, "product_key"),
    ])).rows()[0]
    customer_count = aggregate(customers, AggregationSpec(aggregations=[
        Aggregation("Total Customers", AggregateFunction.COUNT_DISTINCT, "customer_key"),
    ])).rows()[0]

    measures = {**fact_measures, **product_count, **customer_count}
    return Table.from_columns(
        {"measure_name": list(measures), "measure_value": list(measures.values())},
        {"measure_name": ColumnType.STRING, "measure_value": ColumnType.FLOAT},
    )


def totals_by(
    table: Table,
    by: Sequence[str],
    column: Optional[str] = None,
    *,
    function: AggregateFunction = AggregateFunction.SUM,
    output: str = "total",
) -> Table:
    """
    Magnitude of a measure per dimension attribute, largest first.

    Example:
        totals_by(customers, ["country"], "customer_key",
                  function=AggregateFunction.COUNT, output="total_customers")
    """
    totals = aggregate(table, AggregationSpec(
        group_by=list(by),
        aggregations=[Aggregation(output, function, column)],
    ))
    return totals.sort(output, descending=True)


# =============================================================================
# SEGMENTATION
# =============================================================================

def cost_range_distribution(products: Table) -> Table:
    """Number of products per cost range, largest first"""
    bucketed = cost_bucket_rules().apply(products, "cost_range")
    return totals_by(
        bucketed,
        ["cost_range"],
        "product_key",
        function=AggregateFunction.COUNT,
        output="total_products",
    )


def customer_segment_counts(customer_report: Table) -> Table:
    """Number of customers per segment of a customer report, largest first"""
    return totals_by(
        customer_report,
        ["customer_segment"],
        "customer_key",
        function=AggregateFunction.COUNT_DISTINCT,
        output="total_customers",
    )
