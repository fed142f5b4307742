"""
Unit Tests - Analytical Query Families
"""
from datetime import date

import pytest

from warehouse_analytics.pipeline import AggregateFunction
from warehouse_analytics.reports import (
    TimeGrain,
    bottom_n,
    category_contribution,
    cost_range_distribution,
    measures_summary,
    order_date_range,
    part_to_whole,
    running_totals,
    sales_over_time,
    top_n,
    totals_by,
    truncate_date,
    year_over_year,
)
from warehouse_analytics.ingestion import FACT_SALES_SCHEMA, load_rows
from warehouse_analytics.table import ColumnType, Table

from tests.factories import fact_row


@pytest.fixture
def product_sales() -> Table:
    return Table.from_rows(
        [
            {"product": "a", "sales": 100.0},
            {"product": "b", "sales": 300.0},
            {"product": "c", "sales": 300.0},
            {"product": "d", "sales": 200.0},
            {"product": "e", "sales": 50.0},
            {"product": "f", "sales": None},
        ],
        {"product": ColumnType.STRING, "sales": ColumnType.FLOAT},
    )


class TestRanking:
    """Tests for top/bottom-N"""
    
    def test_top_n_keeps_ties(self, product_sales):
        """Test tied leaders both rank 1 and the next rank is skipped"""
        result = top_n(product_sales, "sales", 3)
        
        assert result.column("product") == ["b", "c", "d"]
        assert result.column("rank") == [1, 1, 3]
    
    def test_top_n_does_not_truncate_ties(self, product_sales):
        """Test ties at the cut-off are all returned"""
        result = top_n(product_sales, "sales", 1)
        
        assert result.column("product") == ["b", "c"]
    
    def test_bottom_n(self, product_sales):
        """Test lowest values first; missing metrics are not ranked"""
        result = bottom_n(product_sales, "sales", 2)
        
        assert result.column("product") == ["e", "a"]
        assert result.column("rank") == [1, 2]
    
    def test_default_n_from_settings(self, product_sales):
        """Test n defaults to the configured top_n"""
        result = top_n(product_sales, "sales")
        
        assert len(result) == 5
    
    def test_invalid_n(self, product_sales):
        """Test n must be positive"""
        with pytest.raises(ValueError):
            top_n(product_sales, "sales", 0)


class TestTimeSeries:
    """Tests for change-over-time queries"""
    
    def test_truncate_date(self):
        """Test period start truncation"""
        assert truncate_date(date(2024, 7, 19), TimeGrain.MONTH) == date(2024, 7, 1)
        assert truncate_date(date(2024, 7, 19), TimeGrain.YEAR) == date(2024, 1, 1)
        assert truncate_date(None, TimeGrain.MONTH) is None
    
    def test_sales_over_time_yearly(self, facts):
        """Test yearly buckets ignore undated facts"""
        result = sales_over_time(facts, TimeGrain.YEAR)
        
        assert result.column("order_period") == [date(2022, 1, 1), date(2023, 1, 1), date(2024, 1, 1)]
        assert result.column("total_sales") == [5010.0, 5005.0, 1050.0]
        assert result.column("total_customers") == [2, 2, 2]
        assert result.column("total_quantity") == [7, 5, 101]
    
    def test_running_totals_monthly(self, facts):
        """Test cumulative monthly sales"""
        result = running_totals(facts, TimeGrain.MONTH)
        
        assert result.column("total_sales") == [3010.0, 2000.0, 3005.0, 2000.0, 1000.0, 50.0]
        assert result.column("running_total_sales") == [3010.0, 5010.0, 8015.0, 10015.0, 11015.0, 11065.0]
        assert result.column("moving_average_price")[0] == result.column("avg_price")[0]
    
    def test_running_totals_reset_each_year(self, facts):
        """Test running values restart every year"""
        result = running_totals(facts, TimeGrain.MONTH, reset_each_year=True)
        
        assert result.column("running_total_sales") == [3010.0, 5010.0, 3005.0, 5005.0, 1000.0, 1050.0]
    
    def test_year_over_year(self, facts, products):
        """Test prior-year delta via lag within each product"""
        result = year_over_year(facts, products, entity="product_name")
        bottle = [row for row in result.rows() if row["product_name"] == "Water Bottle"]
        
        assert [row["order_year"] for row in bottle] == [2022, 2023, 2024]
        assert [row["current_sales"] for row in bottle] == [10.0, 5.0, 1000.0]
        assert [row["py_sales"] for row in bottle] == [None, 10.0, 5.0]
        assert [row["diff_py"] for row in bottle] == [None, -5.0, 995.0]
        assert [row["py_change"] for row in bottle] == ["No Change", "Decrease", "Increase"]
        assert [row["avg_change"] for row in bottle] == ["Below Avg", "Below Avg", "Above Avg"]
        assert bottle[0]["avg_sales"] == pytest.approx(1015 / 3)
    
    def test_year_over_year_flat_entity(self, facts, products):
        """Test constant sales compare as average and unchanged"""
        result = year_over_year(facts, products, entity="product_name")
        bike = [row for row in result.rows() if row["product_name"] == "Mountain-100"]
        
        assert [row["avg_change"] for row in bike] == ["Avg", "Avg"]
        assert [row["py_change"] for row in bike] == ["No Change", "No Change"]
    
    def test_year_over_year_unmatched_products(self, products):
        """Test products missing from the dimension compare as one entity"""
        facts = load_rows([
            fact_row("SO1", 98, 1, "2022-03-01", 50, 1, 50),
            fact_row("SO2", 99, 1, "2023-03-01", 70, 1, 70),
        ], FACT_SALES_SCHEMA)
        
        result = year_over_year(facts, products, entity="product_name")
        
        assert result.column("product_name") == [None, None]
        assert result.column("avg_sales") == [60.0, 60.0]
        assert result.column("avg_change") == ["Below Avg", "Above Avg"]
        assert result.column("py_sales") == [None, 50.0]
        assert result.column("py_change") == ["No Change", "Increase"]


class TestPartToWhole:
    """Tests for percentage contribution"""
    
    def test_percentages(self):
        """Test [300, 700] gives [30.00, 70.00]"""
        table = Table.from_rows(
            [{"category": "x", "sales": 300.0}, {"category": "y", "sales": 700.0}],
            {"category": ColumnType.STRING, "sales": ColumnType.FLOAT},
        )
        
        result = part_to_whole(table, "sales")
        
        assert result.column("percentage_of_total") == [30.0, 70.0]
        assert sum(result.column("percentage_of_total")) == 100.0
        assert result.column("overall_total") == [1000.0, 1000.0]
    
    def test_category_contribution(self, facts, products):
        """Test categories ordered by sales with shares near 100%"""
        result = category_contribution(facts, products)
        
        assert result.column("category") == ["Bikes", "Clothing", "Accessories", None]
        assert sum(result.column("percentage_of_total")) == pytest.approx(100.0, abs=0.05)


class TestExplorationAndSegmentation:
    """Tests for exploration, magnitude and segmentation queries"""
    
    def test_order_date_range(self, facts):
        """Test first and last order dates"""
        row = order_date_range(facts).rows()[0]
        
        assert row["first_order_date"] == date(2022, 1, 15)
        assert row["last_order_date"] == date(2024, 12, 1)
        assert row["order_range_months"] == 35
    
    def test_measures_summary(self, facts, customers, products):
        """Test key measures"""
        result = {row["measure_name"]: row["measure_value"] for row in measures_summary(facts, customers, products).rows()}
        
        assert result["Total Sales"] == 11164.0
        assert result["Total Quantity"] == 114.0
        assert result["Total Orders"] == 7.0
        assert result["Total Products"] == 4.0
        assert result["Total Customers"] == 4.0
        assert result["Total Ordering Customers"] == 4.0
    
    def test_totals_by(self, customers):
        """Test magnitude per dimension attribute, largest first"""
        result = totals_by(
            customers, ["country"], "customer_key",
            function=AggregateFunction.COUNT, output="total_customers",
        )
        
        assert result.rows() == [
            {"country": "Australia", "total_customers": 3},
            {"country": "United States", "total_customers": 1},
        ]
    
    def test_cost_range_distribution(self, products):
        """Test products bucketed by cost, 500 in the lower range"""
        result = {row["cost_range"]: row["total_products"] for row in cost_range_distribution(products).rows()}
        
        assert result == {"Above 1000": 1, "Below 100": 1, "100-500": 1, "500-1000": 1}
