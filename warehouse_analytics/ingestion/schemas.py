"""
Star Schema Declarations

Column types of the sales fact table and its two dimensions.
"""

from typing import Dict

from warehouse_analytics.table import ColumnType

FACT_SALES_SCHEMA: Dict[str, ColumnType] = {
    "order_number": ColumnType.STRING,
    "product_key": ColumnType.INTEGER,
    "customer_key": ColumnType.INTEGER,
    "order_date": ColumnType.DATE,
    "shipping_date": ColumnType.DATE,
    "due_date": ColumnType.DATE,
    "sales_amount": ColumnType.FLOAT,
    "quantity": ColumnType.INTEGER,
    "price": ColumnType.FLOAT,
}

DIM_PRODUCTS_SCHEMA: Dict[str, ColumnType] = {
    "product_key": ColumnType.INTEGER,
    "product_id": ColumnType.INTEGER,
    "product_number": ColumnType.STRING,
    "product_name": ColumnType.STRING,
    "category": ColumnType.STRING,
    "subcategory": ColumnType.STRING,
    "product_line": ColumnType.STRING,
    "cost": ColumnType.FLOAT,
    "start_date": ColumnType.DATE,
}

DIM_CUSTOMERS_SCHEMA: Dict[str, ColumnType] = {
    "customer_key": ColumnType.INTEGER,
    "customer_id": ColumnType.INTEGER,
    "customer_number": ColumnType.STRING,
    "first_name": ColumnType.STRING,
    "last_name": ColumnType.STRING,
    "country": ColumnType.STRING,
    "marital_status": ColumnType.STRING,
    "gender": ColumnType.STRING,
    "birthdate": ColumnType.DATE,
    "create_date": ColumnType.DATE,
}
