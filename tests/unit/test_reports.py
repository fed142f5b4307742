"""
Unit Tests - Report Builder
"""
from datetime import date

import pytest

from warehouse_analytics.config.settings import SegmentationSettings
from warehouse_analytics.ingestion import DIM_CUSTOMERS_SCHEMA, FACT_SALES_SCHEMA, load_rows
from warehouse_analytics.reports import (
    build_customer_report,
    build_product_report,
    customer_segment_counts,
)
from warehouse_analytics.reports.builder import CUSTOMER_REPORT_COLUMNS, PRODUCT_REPORT_COLUMNS

from tests.factories import customer_row, fact_row


def by_key(table, key):
    return {row[key]: row for row in table.rows()}


class TestCustomerReport:
    """Tests for the customer report"""
    
    def test_columns_and_rows(self, facts, customers, as_of):
        """Test one row per ordering customer, ordered by key"""
        report = build_customer_report(facts, customers, as_of)
        
        assert report.columns == CUSTOMER_REPORT_COLUMNS
        assert report.column("customer_key") == [1, 2, 3, 5]
    
    def test_metrics(self, facts, customers, as_of):
        """Test aggregated metrics and KPIs"""
        report = by_key(build_customer_report(facts, customers, as_of), "customer_key")
        jon = report[1]
        
        assert jon["customer_name"] == "Jon Yang"
        assert jon["age"] == 53
        assert jon["age_group"] == "50 and above"
        assert jon["total_orders"] == 2
        assert jon["total_sales"] == 6015.0
        assert jon["total_quantity"] == 4
        assert jon["total_products"] == 2
        assert jon["lifespan"] == 14
        assert jon["customer_segment"] == "VIP"
        assert jon["last_order_date"] == date(2023, 3, 10)
        assert jon["recency"] == 22
        assert jon["avg_order_value"] == 3007.5
        assert jon["avg_monthly_spend"] == pytest.approx(6015 / 14)
    
    def test_undated_facts_excluded(self, facts, customers, as_of):
        """Test rows without an order date do not count"""
        eugene = by_key(build_customer_report(facts, customers, as_of), "customer_key")[2]
        
        assert eugene["total_sales"] == 4000.0
        assert eugene["total_orders"] == 2
        assert eugene["customer_segment"] == "Regular"
        assert eugene["age_group"] == "40-49"
    
    def test_zero_lifespan_spend_is_missing(self, facts, customers, as_of):
        """Test single-month customers have no monthly spend"""
        ruben = by_key(build_customer_report(facts, customers, as_of), "customer_key")[3]
        
        assert ruben["lifespan"] == 0
        assert ruben["avg_monthly_spend"] is None
        assert ruben["customer_segment"] == "New"
        assert ruben["age_group"] == "Under 20"
        assert ruben["recency"] == 2
    
    def test_unmatched_customer_kept(self, facts, customers, as_of):
        """Test left-join semantics keep facts without a dimension row"""
        unknown = by_key(build_customer_report(facts, customers, as_of), "customer_key")[5]
        
        assert unknown["customer_name"] is None
        assert unknown["customer_number"] is None
        assert unknown["age"] is None
        assert unknown["total_sales"] == 50.0
    
    def test_thresholds_are_parameters(self, facts, customers, as_of):
        """Test custom thresholds change the segmentation"""
        thresholds = SegmentationSettings(vip_min_sales=3000)
        report = by_key(
            build_customer_report(facts, customers, as_of, thresholds=thresholds),
            "customer_key",
        )
        
        assert report[2]["customer_segment"] == "VIP"
    
    def test_inputs_not_mutated(self, facts, customers, as_of):
        """Test report building leaves its inputs untouched"""
        before = facts.rows()
        
        build_customer_report(facts, customers, as_of)
        
        assert facts.rows() == before
        assert facts.columns == list(FACT_SALES_SCHEMA)
    
    def test_segment_counts_end_to_end(self):
        """Test sales [6000, 4000, 1000] over lifespans [14, 13, 3] give one of each segment"""
        facts = load_rows([
            fact_row("SO1", 1, 1, "2022-01-10", 3000, 1, 3000),
            fact_row("SO2", 1, 1, "2023-03-10", 3000, 1, 3000),
            fact_row("SO3", 1, 2, "2022-01-10", 2000, 1, 2000),
            fact_row("SO4", 1, 2, "2023-02-10", 2000, 1, 2000),
            fact_row("SO5", 1, 3, "2024-01-10", 500, 1, 500),
            fact_row("SO6", 1, 3, "2024-04-10", 500, 1, 500),
        ], FACT_SALES_SCHEMA)
        customers = load_rows([
            customer_row(1, "Ana", "Lee", "1990-01-01"),
            customer_row(2, "Bo", "Chan", "1990-01-01"),
            customer_row(3, "Cy", "Diaz", "1990-01-01"),
        ], DIM_CUSTOMERS_SCHEMA)
        
        report = build_customer_report(facts, customers, date(2025, 1, 1))
        counts = {row["customer_segment"]: row["total_customers"] for row in customer_segment_counts(report).rows()}
        
        assert report.column("lifespan") == [14, 13, 3]
        assert report.column("total_sales") == [6000.0, 4000.0, 1000.0]
        assert counts == {"VIP": 1, "Regular": 1, "New": 1}


class TestProductReport:
    """Tests for the product report"""
    
    def test_columns_and_rows(self, facts, products, as_of):
        """Test one row per sold product, ordered by key"""
        report = build_product_report(facts, products, as_of)
        
        assert report.columns == PRODUCT_REPORT_COLUMNS
        assert report.column("product_key") == [10, 20, 30, 99]
    
    def test_metrics(self, facts, products, as_of):
        """Test aggregated metrics and KPIs"""
        report = by_key(build_product_report(facts, products, as_of), "product_key")
        bike = report[10]
        
        assert bike["product_name"] == "Mountain-100"
        assert bike["category"] == "Bikes"
        assert bike["total_sales"] == 6000.0
        assert bike["total_orders"] == 2
        assert bike["total_customers"] == 1
        assert bike["lifespan"] == 14
        assert bike["recency_in_months"] == 22
        assert bike["product_segment"] == "Low-Performer"
        assert bike["avg_selling_price"] == 3000.0
        assert bike["avg_order_revenue"] == 3000.0
    
    def test_zero_quantity_excluded_from_selling_price(self, facts, products, as_of):
        """Test zero-quantity lines do not drag the average price"""
        bottle = by_key(build_product_report(facts, products, as_of), "product_key")[20]
        
        # unit prices 10/2 and 1000/100; the 5/0 line is ignored
        assert bottle["avg_selling_price"] == 7.5
        assert bottle["total_orders"] == 3
        assert bottle["total_customers"] == 2
        assert bottle["total_quantity"] == 102
        assert bottle["lifespan"] == 34
    
    def test_unmatched_product_kept(self, facts, products, as_of):
        """Test facts for unknown products keep missing attributes"""
        unknown = by_key(build_product_report(facts, products, as_of), "product_key")[99]
        
        assert unknown["product_name"] is None
        assert unknown["cost"] is None
        assert unknown["total_sales"] == 50.0
        assert unknown["avg_monthly_revenue"] is None
    
    def test_segments_with_thresholds(self, facts, products, as_of):
        """Test product segment thresholds are parameters"""
        thresholds = SegmentationSettings(high_performer_min_sales=5000, mid_range_min_sales=3000)
        report = by_key(build_product_report(facts, products, as_of, thresholds=thresholds), "product_key")
        
        assert report[10]["product_segment"] == "High-Performer"
        assert report[30]["product_segment"] == "Mid-Range"
        assert report[20]["product_segment"] == "Low-Performer"
