"""
Test Suite Configuration
"""
import logging
from datetime import date

import pytest
import structlog

from warehouse_analytics.config import Settings
from warehouse_analytics.ingestion import (
    DIM_CUSTOMERS_SCHEMA,
    DIM_PRODUCTS_SCHEMA,
    FACT_SALES_SCHEMA,
    load_rows,
)
from warehouse_analytics.table import Table

from .factories import customer_row, fact_row, product_row


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
    )


@pytest.fixture
def as_of() -> date:
    return date(2025, 1, 1)


@pytest.fixture
def facts() -> Table:
    """
    Sales facts.

    Customer 1 spans 14 months with 6015 in sales, customer 2 spans 13
    months with 4000, customer 3 ordered once. SO6 references a product
    and a customer missing from the dimensions; SO7 has no order date.
    """
    return load_rows([
        fact_row("SO1", 10, 1, "2022-01-15", 3000, 1, 3000),
        fact_row("SO1", 20, 1, "2022-01-15", 10, 2, 5),
        fact_row("SO2", 10, 1, "2023-03-10", 3000, 1, 3000),
        fact_row("SO2", 20, 1, "2023-03-10", 5, 0, 5),
        fact_row("SO3", 30, 2, "2022-06-01", 2000, 4, 500),
        fact_row("SO4", 30, 2, "2023-07-01", 2000, 4, 500),
        fact_row("SO5", 20, 3, "2024-11-20", 1000, 100, 10),
        fact_row("SO6", 99, 5, "2024-12-01", 50, 1, 50),
        fact_row("SO7", 20, 2, "", 99, 1, 99),
    ], FACT_SALES_SCHEMA, name="fact_sales")


@pytest.fixture
def customers() -> Table:
    return load_rows([
        customer_row(1, "Jon", "Yang", "1971-10-06"),
        customer_row(2, "Eugene", "Huang", "1976-05-10"),
        customer_row(3, "Ruben", "Torres", "2005-03-01"),
        customer_row(4, "Christy", "Zhu", "1973-02-15", country="United States"),
    ], DIM_CUSTOMERS_SCHEMA, name="dim_customers")


@pytest.fixture
def products() -> Table:
    return load_rows([
        product_row(10, "Mountain-100", "Bikes", "Mountain Bikes", 1898.09),
        product_row(20, "Water Bottle", "Accessories", "Bottles and Cages", 2),
        product_row(30, "Jersey", "Clothing", "Jerseys", 500),
        product_row(40, "Touring-2000", "Bikes", "Touring Bikes", 750),
    ], DIM_PRODUCTS_SCHEMA, name="dim_products")


@pytest.fixture
def restore_logging():
    """Undo configure_logging() changes to the root logger and structlog"""
    root_logger = logging.getLogger()
    saved_handlers, saved_level = root_logger.handlers[:], root_logger.level
    
    yield
    
    root_logger.handlers = saved_handlers
    root_logger.setLevel(saved_level)
    structlog.reset_defaults()
