"""
Test Suite Configuration
"""
import pytest
from datetime import date
from typing import AsyncGenerator

import polars as pl

from bizintel.config import Settings
from bizintel.database.connection import close_database, create_tables, init_database
from bizintel.ingestion.loader import DataSnapshot, build_snapshot

PRODUCT_A = "00000000-0000-4000-8000-00000000000a"
PRODUCT_B = "00000000-0000-4000-8000-00000000000b"
CUSTOMER_1 = "00000000-0000-4000-8000-000000000001"
CUSTOMER_2 = "00000000-0000-4000-8000-000000000002"


def make_transaction(
    product_id: str,
    customer_id: str,
    transaction_date: date,
    quantity: float,
    total_amount: float,
    payment_status: str = "Paid",
    outstanding_amount: float = 0.0,
    payment_due_date: date = None,
    payment_received_date: date = None,
) -> dict:
    return {
        "transaction_id": f"txn-{product_id[-2:]}-{customer_id[-2:]}-{transaction_date.isoformat()}",
        "product_id": product_id,
        "customer_id": customer_id,
        "transaction_date": transaction_date,
        "quantity": quantity,
        "unit_price": total_amount / quantity if quantity else 0.0,
        "total_amount": total_amount,
        "payment_status": payment_status,
        "payment_due_date": payment_due_date,
        "payment_received_date": payment_received_date,
        "outstanding_amount": outstanding_amount,
    }


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(APP_ENV="testing", DEBUG=True)


@pytest.fixture
def products_records() -> list:
    return [
        {"product_id": PRODUCT_A, "product_code": "PRD-A", "category": "office", "cost_price": 6.0, "selling_price": 10.0},
        {"product_id": PRODUCT_B, "product_code": "PRD-B", "category": "office", "cost_price": 12.0, "selling_price": 20.0},
    ]


@pytest.fixture
def customers_records() -> list:
    return [
        {"customer_id": CUSTOMER_1, "customer_code": "CUS-1", "credit_limit": 10000.0, "region": "North"},
        {"customer_id": CUSTOMER_2, "customer_code": "CUS-2", "credit_limit": 5000.0, "region": "South"},
    ]


@pytest.fixture
def transactions_records() -> list:
    """
    Four months of history.

    Product A sells 100, 110, 120, 130 units at 10.00; product B sells
    steadily to a customer with overdue and partial invoices.
    """
    records = []
    for i, quantity in enumerate([100, 110, 120, 130]):
        month_date = date(2025, i + 1, 15)
        records.append(make_transaction(
            PRODUCT_A, CUSTOMER_1, month_date, quantity, quantity * 10.0,
            payment_due_date=date(2025, i + 2, 1),
            payment_received_date=date(2025, i + 2, 1),
        ))

    records.extend([
        make_transaction(PRODUCT_B, CUSTOMER_2, date(2025, 1, 10), 10, 200.0,
                         payment_status="Overdue", outstanding_amount=200.0,
                         payment_due_date=date(2025, 2, 10)),
        make_transaction(PRODUCT_B, CUSTOMER_2, date(2025, 2, 10), 12, 240.0,
                         payment_status="Partial", outstanding_amount=120.0,
                         payment_due_date=date(2025, 3, 10),
                         payment_received_date=date(2025, 4, 9)),
        make_transaction(PRODUCT_B, CUSTOMER_2, date(2025, 3, 10), 8, 160.0,
                         payment_status="Pending", outstanding_amount=160.0,
                         payment_due_date=date(2025, 4, 10)),
    ])
    return records


@pytest.fixture
def inventory_records() -> list:
    return [
        {"product_id": PRODUCT_A, "current_stock": 500.0, "reorder_point": 40.0},
        {"product_id": PRODUCT_B, "current_stock": 0.0, "reorder_point": 5.0},
    ]


@pytest.fixture
def snapshot(transactions_records, customers_records, products_records, inventory_records) -> DataSnapshot:
    return build_snapshot(transactions_records, customers_records, products_records, inventory_records)


@pytest.fixture
def transactions_df(snapshot) -> pl.DataFrame:
    return snapshot.transactions


@pytest.fixture
def customers_df(snapshot) -> pl.DataFrame:
    return snapshot.customers


@pytest.fixture
def products_df(snapshot) -> pl.DataFrame:
    return snapshot.products


@pytest.fixture
def inventory_df(snapshot) -> pl.DataFrame:
    return snapshot.inventory


@pytest.fixture
async def test_database(tmp_path) -> AsyncGenerator[str, None]:
    """File-backed SQLite database with the full schema"""
    url = f"sqlite+aiosqlite:///{tmp_path / 'bizintel_test.db'}"
    await init_database(url)
    await create_tables()
    yield url
    await close_database()
