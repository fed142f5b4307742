"""
Segmentation Rules

A rule set is an ordered list of (predicate, label) pairs evaluated top
to bottom against a row of aggregated metrics. The first matching
predicate wins and a default label is mandatory, so no row is ever left
unclassified.

Comparisons against a missing value never match, the same way a SQL
comparison with NULL is never true.
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple, Union

import structlog

from warehouse_analytics.errors import AmbiguousRuleSetError
from warehouse_analytics.table import ColumnType, Table

logger = structlog.get_logger(__name__)

Predicate = Callable[[Mapping[str, Any]], bool]


# =============================================================================
# PREDICATES
# =============================================================================

def _compare(column: str, test: Callable[[Any], bool]) -> Predicate:
    def predicate(row: Mapping[str, Any]) -> bool:
        value = row.get(column)
        return value is not None and test(value)
    return predicate


def greater_than(column: str, threshold: Any) -> Predicate:
    return _compare(column, lambda v: v > threshold)


def at_least(column: str, threshold: Any) -> Predicate:
    return _compare(column, lambda v: v >= threshold)


def less_than(column: str, threshold: Any) -> Predicate:
    return _compare(column, lambda v: v < threshold)


def at_most(column: str, threshold: Any) -> Predicate:
    return _compare(column, lambda v: v <= threshold)


def between(column: str, low: Any, high: Any) -> Predicate:
    """Inclusive on both ends, like SQL BETWEEN"""
    return _compare(column, lambda v: low <= v <= high)


def is_missing(column: str) -> Predicate:
    return lambda row: row.get(column) is None


def all_of(*predicates: Predicate) -> Predicate:
    return lambda row: all(p(row) for p in predicates)


# =============================================================================
# RULE SETS
# =============================================================================

@dataclass(frozen=True)
class Rule:
    """A predicate and the label it assigns"""
    predicate: Predicate
    label: str


class RuleSet:
    """
    Ordered segmentation rules with a mandatory fallback label.

    Example:
        rules = RuleSet(
            "product_segment",
            [(greater_than("total_sales", 50000), "High-Performer")],
            default="Low-Performer",
        )
        rules.classify({"total_sales": 60000})  # "High-Performer"
    """

    def __init__(
        self,
        name: str,
        rules: Iterable[Union[Rule, Tuple[Predicate, str]]],
        default: Optional[str] = None,
    ):
        if not default:
            raise AmbiguousRuleSetError(f"Rule set '{name}' has no default label")

        self.name = name
        self.default = default
        self.rules: List[Rule] = [r if isinstance(r, Rule) else Rule(*r) for r in rules]

    def classify(self, row: Mapping[str, Any]) -> str:
        for rule in self.rules:
            if rule.predicate(row):
                return rule.label
        return self.default

    def apply(self, table: Table, output: Optional[str] = None) -> Table:
        """Add the label of every row as a string column"""
        output = output or self.name
        logger.debug("Applying rule set", rule_set=self.name, rows=len(table))
        return table.derive(output, ColumnType.STRING, self.classify)

    def __repr__(self) -> str:
        return f"RuleSet(name={self.name!r}, rules={len(self.rules)}, default={self.default!r})"


# =============================================================================
# BUILT-IN RULE SETS
# =============================================================================

def customer_segment_rules(
    min_lifespan_months: int = 12,
    vip_min_sales: float = 5000,
    lifespan_column: str = "lifespan",
    sales_column: str = "total_sales",
) -> RuleSet:
    """VIP / Regular / New, by customer lifespan and spending"""
    established = at_least(lifespan_column, min_lifespan_months)
    return RuleSet(
        "customer_segment",
        [
            (all_of(established, greater_than(sales_column, vip_min_sales)), "VIP"),
            (all_of(established, at_most(sales_column, vip_min_sales)), "Regular"),
        ],
        default="New",
    )


def product_segment_rules(
    high_performer_min_sales: float = 50000,
    mid_range_min_sales: float = 10000,
    sales_column: str = "total_sales",
) -> RuleSet:
    """High-Performer / Mid-Range / Low-Performer, by product revenue"""
    return RuleSet(
        "product_segment",
        [
            (greater_than(sales_column, high_performer_min_sales), "High-Performer"),
            (at_least(sales_column, mid_range_min_sales), "Mid-Range"),
        ],
        default="Low-Performer",
    )


def age_group_rules(age_column: str = "age") -> RuleSet:
    return RuleSet(
        "age_group",
        [
            (less_than(age_column, 20), "Under 20"),
            (between(age_column, 20, 29), "20-29"),
            (between(age_column, 30, 39), "30-39"),
            (between(age_column, 40, 49), "40-49"),
        ],
        default="50 and above",
    )


def cost_bucket_rules(cost_column: str = "cost") -> RuleSet:
    """
    Product cost ranges.

    The 100-500 and 500-1000 ranges share the 500 boundary; a cost of
    exactly 500 lands in "100-500" because that rule is evaluated first.
    """
    return RuleSet(
        "cost_range",
        [
            (less_than(cost_column, 100), "Below 100"),
            (between(cost_column, 100, 500), "100-500"),
            (between(cost_column, 500, 1000), "500-1000"),
        ],
        default="Above 1000",
    )


def change_direction_rules(diff_column: str, name: str = "change") -> RuleSet:
    """Increase / Decrease / No Change, by the sign of a difference"""
    return RuleSet(
        name,
        [
            (greater_than(diff_column, 0), "Increase"),
            (less_than(diff_column, 0), "Decrease"),
        ],
        default="No Change",
    )


def average_comparison_rules(diff_column: str, name: str = "avg_change") -> RuleSet:
    """Above Avg / Below Avg / Avg, by the sign of a difference from the mean"""
    return RuleSet(
        name,
        [
            (greater_than(diff_column, 0), "Above Avg"),
            (less_than(diff_column, 0), "Below Avg"),
        ],
        default="Avg",
    )
