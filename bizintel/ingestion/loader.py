"""
Snapshot Data Loader

Bulk fetch of every input collection the prediction models need.
Transactions are paginated (ordered by date) so large histories are read
in bounded pages; the reference tables are read in one query each.

The result is an immutable DataSnapshot of polars DataFrames shared by all
four models for the whole run.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

import polars as pl
import structlog
from sqlalchemy import select

from bizintel.config import get_settings
from bizintel.database.connection import get_db
from bizintel.database.models import Customer, InventoryRecord, Product, Transaction

logger = structlog.get_logger(__name__)


TRANSACTION_SCHEMA: Dict[str, pl.DataType] = {
    "transaction_id": pl.Utf8,
    "product_id": pl.Utf8,
    "customer_id": pl.Utf8,
    "transaction_date": pl.Date,
    "quantity": pl.Float64,
    "unit_price": pl.Float64,
    "total_amount": pl.Float64,
    "payment_status": pl.Utf8,
    "payment_due_date": pl.Date,
    "payment_received_date": pl.Date,
    "outstanding_amount": pl.Float64,
}

CUSTOMER_SCHEMA: Dict[str, pl.DataType] = {
    "customer_id": pl.Utf8,
    "customer_code": pl.Utf8,
    "credit_limit": pl.Float64,
    "region": pl.Utf8,
}

PRODUCT_SCHEMA: Dict[str, pl.DataType] = {
    "product_id": pl.Utf8,
    "product_code": pl.Utf8,
    "category": pl.Utf8,
    "cost_price": pl.Float64,
    "selling_price": pl.Float64,
}

INVENTORY_SCHEMA: Dict[str, pl.DataType] = {
    "product_id": pl.Utf8,
    "current_stock": pl.Float64,
    "reorder_point": pl.Float64,
}


class DataLoadError(RuntimeError):
    """Raised when the initial bulk fetch fails"""


@dataclass(frozen=True)
class DataSnapshot:
    """Read-only inputs for one pipeline run"""
    transactions: pl.DataFrame
    customers: pl.DataFrame
    products: pl.DataFrame
    inventory: pl.DataFrame
    fetched_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def counts(self) -> Dict[str, int]:
        return {
            "transactions": self.transactions.height,
            "customers": self.customers.height,
            "products": self.products.height,
            "inventory": self.inventory.height,
        }


def _normalize_value(value: Any, dtype: Optional[pl.DataType] = None) -> Any:
    """Convert ORM values to plain Python scalars polars understands"""
    if dtype == pl.Date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str):
            return date.fromisoformat(value[:10])
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


def frame_from_records(
    records: List[Dict[str, Any]],
    schema: Dict[str, pl.DataType],
) -> pl.DataFrame:
    """
    Build a DataFrame with a fixed schema from row dictionaries.

    Columns missing from the records are filled with nulls and extra keys
    are dropped, so every model sees the same column set.
    """
    rows = [
        {column: _normalize_value(record.get(column), dtype) for column, dtype in schema.items()}
        for record in records
    ]
    return pl.DataFrame(rows, schema=schema)


def build_snapshot(
    transactions: List[Dict[str, Any]],
    customers: List[Dict[str, Any]],
    products: List[Dict[str, Any]],
    inventory: Optional[List[Dict[str, Any]]] = None,
) -> DataSnapshot:
    """Build a snapshot from in-memory records (seed data, tests, dry runs)"""
    return DataSnapshot(
        transactions=frame_from_records(transactions, TRANSACTION_SCHEMA),
        customers=frame_from_records(customers, CUSTOMER_SCHEMA),
        products=frame_from_records(products, PRODUCT_SCHEMA),
        inventory=frame_from_records(inventory or [], INVENTORY_SCHEMA),
    )


class DataLoader:
    """
    Fetches the pipeline's input snapshot from the database.

    Example:
        loader = DataLoader(page_size=1000)
        snapshot = await loader.load()
    """

    def __init__(self, page_size: Optional[int] = None):
        self.page_size = page_size or get_settings().prediction.page_size

    async def _fetch_transactions(self) -> List[Dict[str, Any]]:
        columns = [getattr(Transaction, name) for name in TRANSACTION_SCHEMA]
        records: List[Dict[str, Any]] = []
        page = 0

        async with get_db() as db:
            while True:
                stmt = (
                    select(*columns)
                    .order_by(Transaction.transaction_date, Transaction.transaction_id)
                    .offset(page * self.page_size)
                    .limit(self.page_size)
                )
                result = await db.execute(stmt)
                rows = [dict(row._mapping) for row in result]
                records.extend(rows)

                logger.debug("Fetched transaction page", page=page, rows=len(rows))

                if len(rows) < self.page_size:
                    break
                page += 1

        return records

    async def _fetch_table(self, model: Any, schema: Dict[str, pl.DataType]) -> List[Dict[str, Any]]:
        columns = [getattr(model, name) for name in schema]
        async with get_db() as db:
            result = await db.execute(select(*columns))
            return [dict(row._mapping) for row in result]

    async def load(self) -> DataSnapshot:
        """
        Load all four input collections.

        Raises:
            DataLoadError: If any fetch fails; no model can run without inputs
        """
        logger.info("Fetching prediction inputs", page_size=self.page_size)

        try:
            transactions = await self._fetch_transactions()
            customers = await self._fetch_table(Customer, CUSTOMER_SCHEMA)
            products = await self._fetch_table(Product, PRODUCT_SCHEMA)
            inventory = await self._fetch_table(InventoryRecord, INVENTORY_SCHEMA)
        except Exception as e:
            logger.error("Failed to fetch prediction inputs", error=str(e))
            raise DataLoadError(f"Failed to fetch prediction inputs: {e}") from e

        snapshot = build_snapshot(transactions, customers, products, inventory)
        logger.info("Prediction inputs loaded", **snapshot.counts)
        return snapshot
