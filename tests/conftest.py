"""
Shared pytest fixtures for tabular_metadata tests.
"""

import pytest

from tests.fixtures import make_column, make_database, make_relationship, make_table


@pytest.fixture
def sales_database() -> dict:
    """Sales fact table related to a Date table on a dateTime key."""
    return make_database(
        tables=[
            make_table("Sales", [
                make_column("OrderDate", "dateTime"),
                make_column("Amount", "decimal"),
            ], measures=[{"name": "Total Sales", "expression": "SUM(Sales[Amount])"}]),
            make_table("Date", [
                make_column("Date", "dateTime", isKey=True),
                make_column("Year", "int64"),
            ], dataCategory="Time"),
        ],
        relationships=[make_relationship("Sales", "OrderDate", "Date", "Date")],
        roles=[{
            "name": "Europe",
            "tablePermissions": [{"name": "Sales", "filterExpression": "Sales[Amount] > 0"}],
        }],
    )
