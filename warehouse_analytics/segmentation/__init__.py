"""
Segmentation & KPI Rules Module
"""
from .kpis import (
    avg_monthly_spend,
    avg_order_value,
    ensure_finite,
    months_between,
    percentage,
    recency_months,
    round_half_up,
    safe_divide,
    unit_price,
    whole_years_between,
)
from .rules import (
    Rule,
    RuleSet,
    age_group_rules,
    cost_bucket_rules,
    customer_segment_rules,
    product_segment_rules,
)

__all__ = [
    "Rule",
    "RuleSet",
    "age_group_rules",
    "cost_bucket_rules",
    "customer_segment_rules",
    "product_segment_rules",
    "avg_monthly_spend",
    "avg_order_value",
    "ensure_finite",
    "months_between",
    "percentage",
    "recency_months",
    "round_half_up",
    "safe_divide",
    "unit_price",
    "whole_years_between",
]
