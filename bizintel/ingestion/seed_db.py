"""
Database Seeding

Loads a generated dataset into the source tables so the pipeline has
something to predict on in development and demo environments.
"""

import asyncio
from datetime import date
from typing import Any, Dict, List, Optional, Type
import uuid

import structlog
from sqlalchemy import insert

from bizintel.config import get_settings
from bizintel.data.generators import DataGenerator, GeneratedDataset
from bizintel.database.connection import create_tables, get_db, init_database
from bizintel.database.models import (
    Base,
    Customer,
    InventoryRecord,
    PaymentStatus,
    Product,
    Transaction,
)

logger = structlog.get_logger(__name__)

UUID_COLUMNS = ("product_id", "customer_id", "transaction_id")


def _table_records(model: Type[Base], rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Keep only the model's columns and coerce ids for the UUID type"""
    columns = set(model.__table__.columns.keys())
    records = []
    for row in rows:
        record = {key: value for key, value in row.items() if key in columns}
        for column in UUID_COLUMNS:
            if record.get(column) is not None:
                record[column] = uuid.UUID(str(record[column]))
        if "payment_status" in record:
            record["payment_status"] = PaymentStatus(record["payment_status"])
        records.append(record)
    return records


async def execute_batch_insert(
    model: Type[Base],
    records: List[Dict[str, Any]],
    chunk_size: Optional[int] = None,
) -> int:
    """Insert records in chunks using Core insert"""
    if not records:
        return 0

    chunk_size = chunk_size or get_settings().prediction.insert_chunk_size

    async with get_db() as db:
        for i in range(0, len(records), chunk_size):
            await db.execute(insert(model), records[i:i + chunk_size])

    logger.info("Inserted records", table=model.__tablename__, rows=len(records))
    return len(records)


async def seed_dataset(dataset: GeneratedDataset) -> Dict[str, int]:
    """
    Insert a generated dataset, parents before children.

    Returns:
        Row count per table
    """
    tables = dataset.as_records()
    counts = {}

    for name, model in (
        ("products", Product),
        ("customers", Customer),
        ("inventory", InventoryRecord),
        ("transactions", Transaction),
    ):
        counts[name] = await execute_batch_insert(model, _table_records(model, tables[name]))

    return counts


async def seed_database(
    n_products: int = 50,
    n_customers: int = 100,
    months: int = 18,
    seed: int = 42,
    end_date: Optional[date] = None,
) -> Dict[str, int]:
    """Generate a dataset and load it into an initialized database"""
    logger.info(
        "Starting database seeding",
        products=n_products,
        customers=n_customers,
        months=months,
        seed=seed,
    )
    dataset = DataGenerator(seed=seed).generate_all(
        n_products=n_products,
        n_customers=n_customers,
        months=months,
        end_date=end_date,
    )

    try:
        counts = await seed_dataset(dataset)
    except Exception as e:
        logger.error("Seeding failed", error=str(e))
        raise

    logger.info("Database seeding completed", **counts)
    return counts


async def main():
    await init_database()
    await create_tables()
    await seed_database()


if __name__ == "__main__":
    asyncio.run(main())
