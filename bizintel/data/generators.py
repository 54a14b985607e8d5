"""
Synthetic Data Generator

Generates a reproducible business dataset for development and demos.
Includes:
- Product catalog across categories
- Customers with credit limits and payment terms
- Invoiced transactions with seasonal demand and payment behaviour
- Inventory levels per product
"""

import random
import uuid
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional

import numpy as np
import polars as pl
from faker import Faker

from bizintel.ingestion.loader import (
    CUSTOMER_SCHEMA,
    INVENTORY_SCHEMA,
    PRODUCT_SCHEMA,
    TRANSACTION_SCHEMA,
    DataSnapshot,
    build_snapshot,
)


# =============================================================================
# CONFIGURATION
# =============================================================================

CATEGORIES = [
    ("electronics", ["Phones", "Laptops", "Monitors", "Accessories"]),
    ("office", ["Paper", "Furniture", "Printers", "Stationery"]),
    ("industrial", ["Tools", "Safety", "Fasteners", "Hydraulics"]),
    ("food_service", ["Beverages", "Packaging", "Cleaning", "Snacks"]),
]

REGIONS = ["North", "South", "East", "West", "Central"]
CUSTOMER_TYPES = [("retail", 0.45), ("wholesale", 0.35), ("distributor", 0.20)]
PAYMENT_TERMS = [15, 30, 45, 60]

# Payment behaviour profiles: share of customers, probability of each status
PAYMENT_PROFILES = {
    "reliable": (0.60, {"Paid": 0.90, "Partial": 0.05, "Overdue": 0.02, "Pending": 0.03}),
    "slow": (0.30, {"Paid": 0.60, "Partial": 0.15, "Overdue": 0.15, "Pending": 0.10}),
    "delinquent": (0.10, {"Paid": 0.30, "Partial": 0.20, "Overdue": 0.40, "Pending": 0.10}),
}


@dataclass
class GeneratedDataset:
    """Generated tables keyed by name, each matching its loader schema"""
    products: pl.DataFrame
    customers: pl.DataFrame
    transactions: pl.DataFrame
    inventory: pl.DataFrame

    def as_records(self) -> Dict[str, List[dict]]:
        return {
            "products": self.products.to_dicts(),
            "customers": self.customers.to_dicts(),
            "transactions": self.transactions.to_dicts(),
            "inventory": self.inventory.to_dicts(),
        }

    def to_snapshot(self) -> DataSnapshot:
        """Project the generated tables onto the pipeline's input snapshot"""
        return build_snapshot(
            self.transactions.select(list(TRANSACTION_SCHEMA)).to_dicts(),
            self.customers.select(list(CUSTOMER_SCHEMA)).to_dicts(),
            self.products.select(list(PRODUCT_SCHEMA)).to_dicts(),
            self.inventory.select(list(INVENTORY_SCHEMA)).to_dicts(),
        )


def _month_starts(end: date, months: int) -> List[date]:
    """First day of each of the `months` calendar months ending with `end`'s month"""
    year, month = end.year, end.month
    starts = []
    for _ in range(months):
        starts.append(date(year, month, 1))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(starts))


def _uuid(rng: random.Random) -> str:
    return str(uuid.UUID(int=rng.getrandbits(128), version=4))


# =============================================================================
# GENERATORS
# =============================================================================

class ProductGenerator:
    """Generate a product catalog"""

    def __init__(self, rng: random.Random, fake: Faker):
        self.rng = rng
        self.fake = fake

    def generate(self, n: int = 50) -> pl.DataFrame:
        products = []

        for i in range(n):
            category, subcategories = self.rng.choice(CATEGORIES)
            subcategory = self.rng.choice(subcategories)

            selling_price = round(self.rng.uniform(5, 800), 2)
            cost_price = round(selling_price * self.rng.uniform(0.4, 0.8), 2)

            products.append({
                "product_id": _uuid(self.rng),
                "product_code": f"PRD-{i + 1:05d}",
                "product_name": f"{self.fake.word().title()} {subcategory}",
                "category": category,
                "subcategory": subcategory,
                "cost_price": cost_price,
                "selling_price": selling_price,
            })

        return pl.DataFrame(products, infer_schema_length=None)


class CustomerGenerator:
    """Generate customers with credit terms and a payment profile"""

    def __init__(self, rng: random.Random, fake: Faker):
        self.rng = rng
        self.fake = fake

    def generate(self, n: int = 100) -> pl.DataFrame:
        customers = []
        profiles = list(PAYMENT_PROFILES)
        profile_weights = [PAYMENT_PROFILES[p][0] for p in profiles]

        for i in range(n):
            customer_type = self.rng.choices(
                [t[0] for t in CUSTOMER_TYPES],
                weights=[t[1] for t in CUSTOMER_TYPES],
            )[0]
            credit_limit = {
                "retail": self.rng.uniform(5_000, 25_000),
                "wholesale": self.rng.uniform(20_000, 100_000),
                "distributor": self.rng.uniform(50_000, 250_000),
            }[customer_type]

            customers.append({
                "customer_id": _uuid(self.rng),
                "customer_code": f"CUS-{i + 1:05d}",
                "customer_name": self.fake.company(),
                "customer_type": customer_type,
                "region": self.rng.choice(REGIONS),
                "city": self.fake.city(),
                "state": self.fake.state_abbr(),
                # A few customers have no credit line on file
                "credit_limit": round(credit_limit, 2) if self.rng.random() > 0.05 else None,
                "payment_terms": self.rng.choice(PAYMENT_TERMS),
                "payment_profile": self.rng.choices(profiles, weights=profile_weights)[0],
            })

        return pl.DataFrame(customers, infer_schema_length=None)


class TransactionGenerator:
    """
    Generate invoiced transactions.

    Each product gets a base monthly volume, a linear trend and a seasonal
    swing; each invoice's payment status follows its customer's profile.
    """

    def __init__(
        self,
        customers_df: pl.DataFrame,
        products_df: pl.DataFrame,
        rng: random.Random,
        np_rng: np.random.Generator,
        fake: Faker,
    ):
        self.customers = customers_df.select(
            ["customer_id", "region", "payment_terms", "payment_profile"]
        ).to_dicts()
        self.products = products_df.select(["product_id", "selling_price"]).to_dicts()
        self.rng = rng
        self.np_rng = np_rng
        self.salespeople = [fake.name() for _ in range(8)]

    def _payment(self, profile: str, total: float, invoice_date: date, terms: int, as_of: date) -> dict:
        statuses = PAYMENT_PROFILES[profile][1]
        due_date = invoice_date + timedelta(days=terms)

        if due_date > as_of:
            # Not yet due: either settled early or still pending
            status = "Paid" if self.rng.random() < statuses["Paid"] * 0.5 else "Pending"
        else:
            status = self.rng.choices(list(statuses), weights=list(statuses.values()))[0]
            if status == "Pending":
                status = "Overdue"

        received_date: Optional[date] = None
        if status == "Paid":
            outstanding = 0.0
            received_date = min(
                invoice_date + timedelta(days=int(self.rng.uniform(0.5, 1.3) * terms)),
                as_of,
            )
        elif status == "Partial":
            outstanding = round(total * self.rng.uniform(0.2, 0.8), 2)
            received_date = min(due_date, as_of)
        else:
            outstanding = total

        return {
            "payment_status": status,
            "payment_due_date": due_date,
            "payment_received_date": received_date,
            "outstanding_amount": outstanding,
        }

    def generate(self, months: int = 18, end_date: Optional[date] = None) -> pl.DataFrame:
        end_date = end_date or date.today()
        month_starts = _month_starts(end_date, months)
        transactions = []
        counter = 0

        for product in self.products:
            base = self.np_rng.uniform(5, 60)
            trend = self.np_rng.normal(0.02, 0.03) * base
            season_phase = self.np_rng.uniform(0, 2 * np.pi)

            for m, month_start in enumerate(month_starts):
                expected = base + trend * m + 0.2 * base * np.sin(2 * np.pi * m / 12 + season_phase)
                n_invoices = int(self.np_rng.poisson(max(expected, 0) / 5))

                for _ in range(n_invoices):
                    invoice_date = month_start + timedelta(days=self.rng.randint(0, 27))
                    if invoice_date > end_date:
                        continue
                    customer = self.rng.choice(self.customers)

                    quantity = int(self.np_rng.integers(1, 10))
                    unit_price = round(product["selling_price"] * self.rng.uniform(0.9, 1.05), 2)
                    total = round(quantity * unit_price, 2)
                    counter += 1

                    transactions.append({
                        "transaction_id": _uuid(self.rng),
                        "transaction_code": f"TXN-{counter:07d}",
                        "customer_id": customer["customer_id"],
                        "product_id": product["product_id"],
                        "transaction_date": invoice_date,
                        "quantity": float(quantity),
                        "unit_price": unit_price,
                        "total_amount": total,
                        "invoice_number": f"INV-{counter:07d}",
                        "region": customer["region"],
                        "salesperson": self.rng.choice(self.salespeople),
                        **self._payment(
                            customer["payment_profile"],
                            total,
                            invoice_date,
                            customer["payment_terms"],
                            end_date,
                        ),
                    })

        if not transactions:
            return pl.DataFrame(schema=TRANSACTION_SCHEMA)
        return pl.DataFrame(transactions, infer_schema_length=None).sort(["transaction_date", "transaction_code"])


class InventoryGenerator:
    """Generate stock levels; some products are deliberately low or out of stock"""

    def __init__(self, rng: random.Random):
        self.rng = rng

    def generate(self, products_df: pl.DataFrame) -> pl.DataFrame:
        inventory = []

        for product_id in products_df["product_id"].to_list():
            roll = self.rng.random()
            if roll < 0.05:
                stock = 0
            elif roll < 0.20:
                stock = self.rng.randint(1, 15)
            else:
                stock = self.rng.randint(20, 400)

            inventory.append({
                "product_id": product_id,
                "current_stock": float(stock),
                "reorder_point": float(self.rng.randint(10, 50)),
            })

        return pl.DataFrame(inventory, infer_schema_length=None)


# =============================================================================
# MAIN GENERATOR
# =============================================================================

class DataGenerator:
    """
    Main data generator orchestrator.

    Example:
        dataset = DataGenerator(seed=7).generate_all(n_products=20, months=12)
        snapshot = dataset.to_snapshot()
    """

    def __init__(self, seed: int = 42):
        self.seed = seed
        self.rng = random.Random(seed)
        self.np_rng = np.random.default_rng(seed)
        self.fake = Faker()
        self.fake.seed_instance(seed)

    def generate_all(
        self,
        n_products: int = 50,
        n_customers: int = 100,
        months: int = 18,
        end_date: Optional[date] = None,
    ) -> GeneratedDataset:
        """Generate a complete dataset"""
        products_df = ProductGenerator(self.rng, self.fake).generate(n_products)
        customers_df = CustomerGenerator(self.rng, self.fake).generate(n_customers)
        transactions_df = TransactionGenerator(
            customers_df, products_df, self.rng, self.np_rng, self.fake
        ).generate(months=months, end_date=end_date)
        inventory_df = InventoryGenerator(self.rng).generate(products_df)

        return GeneratedDataset(
            products=products_df,
            customers=customers_df,
            transactions=transactions_df,
            inventory=inventory_df,
        )
