"""
Unit Tests - Inventory Optimizer
"""
import math
import pytest
from datetime import date

from bizintel.ingestion.loader import build_snapshot
from bizintel.ml.inventory_optimizer import (
    NO_DEMAND_SENTINEL_DAYS,
    InventoryOptimizer,
    optimize_inventory,
    stockout_probability,
    volatility_level,
)

from tests.conftest import CUSTOMER_1, PRODUCT_A, PRODUCT_B, make_transaction

PRODUCT_C = "00000000-0000-4000-8000-00000000000c"


@pytest.fixture
def plans(transactions_df, products_df, inventory_df):
    results = InventoryOptimizer().optimize(transactions_df, products_df, inventory_df)
    return {r.product_id: r for r in results}


class TestInventoryOptimizer:
    """Tests for InventoryOptimizer"""

    def test_every_catalog_product_is_planned(self, plans):
        assert set(plans) == {PRODUCT_A, PRODUCT_B}

    def test_out_of_stock_is_critical(self, plans):
        plan = plans[PRODUCT_B]

        assert plan.current_stock == 0.0
        assert plan.stockout_probability == 1.0
        assert plan.days_until_stockout == 0.0
        assert plan.recommendation.startswith("CRITICAL")

    def test_demand_statistics(self, plans):
        plan = plans[PRODUCT_A]
        std_monthly = math.sqrt(125.0)
        std_daily = std_monthly / math.sqrt(30)

        assert plan.predicted_monthly_demand == 115.0
        assert plan.demand_volatility == round(std_monthly / 115.0, 4)
        assert plan.volatility_level == "Low"
        assert plan.safety_stock == round(1.645 * std_daily * math.sqrt(7), 2)
        assert plan.reorder_point == round(115.0 / 30 * 7 + 1.645 * std_daily * math.sqrt(7), 2)
        assert plan.days_until_stockout == round(500 / (115.0 / 30), 1)
        assert plan.recommendation.startswith("Overstocked")

    def test_zero_filled_months_raise_volatility(self, plans):
        # Product B sold nothing in April
        plan = plans[PRODUCT_B]
        assert plan.predicted_monthly_demand == 7.5
        assert plan.volatility_level in ("Medium", "High")

    def test_confidence_grows_with_history(self, plans):
        assert plans[PRODUCT_A].confidence_score == 62.0
        assert plans[PRODUCT_B].confidence_score == 59.0

    def test_probabilities_are_bounded(self, plans):
        for plan in plans.values():
            assert 0.0 <= plan.stockout_probability <= 1.0
            assert plan.safety_stock >= 0
            assert plan.reorder_point >= plan.safety_stock

    def test_no_demand_uses_sentinel(self, transactions_records, customers_records, products_records, inventory_records):
        snapshot = build_snapshot(
            transactions_records,
            customers_records,
            products_records + [{"product_id": PRODUCT_C, "product_code": "PRD-C"}],
            inventory_records + [{"product_id": PRODUCT_C, "current_stock": 50.0}],
        )
        plans = {
            r.product_id: r
            for r in InventoryOptimizer().optimize(snapshot.transactions, snapshot.products, snapshot.inventory)
        }
        plan = plans[PRODUCT_C]

        assert plan.days_until_stockout == NO_DEMAND_SENTINEL_DAYS
        assert plan.predicted_monthly_demand == 0.0
        assert plan.stockout_probability == 0.0
        assert plan.confidence_score == 50.0

    def test_missing_inventory_row_is_out_of_stock(self, transactions_df, products_df, inventory_df):
        inventory = inventory_df.filter(inventory_df["product_id"] != PRODUCT_A)
        plans = {r.product_id: r for r in InventoryOptimizer().optimize(transactions_df, products_df, inventory)}

        assert plans[PRODUCT_A].current_stock == 0.0
        assert plans[PRODUCT_A].recommendation.startswith("CRITICAL")

    def test_single_month_returns_nothing(self, customers_records, products_records, inventory_records):
        records = [make_transaction(PRODUCT_A, CUSTOMER_1, date(2025, 1, 5), 10, 100.0)]
        snapshot = build_snapshot(records, customers_records, products_records, inventory_records)

        assert InventoryOptimizer().optimize(snapshot.transactions, snapshot.products, snapshot.inventory) == []


class TestRecommendations:
    """Tests for the recommendation ladder"""

    @pytest.fixture
    def optimizer(self):
        return InventoryOptimizer(lead_time_days=7)

    def test_out_of_stock(self, optimizer):
        assert optimizer.recommend(0, 20, 100, 0) == "CRITICAL: Out of stock. Order 120 units immediately"

    def test_below_reorder_point(self, optimizer):
        message = optimizer.recommend(10, 50, 300, 1)
        assert message == "Urgent: Below reorder point. Order 300 units within 7 days"

    def test_low_days_of_supply(self, optimizer):
        message = optimizer.recommend(200, 50, 300, 20)
        assert message == "Plan reorder of 400 units: 20 days of stock remaining"

    def test_overstocked(self, optimizer):
        message = optimizer.recommend(2000, 50, 300, 200)
        assert message == "Overstocked: 200 days of supply. Consider reducing by 1100 units"

    def test_healthy(self, optimizer):
        message = optimizer.recommend(600, 50, 300, 60)
        assert message == "Healthy stock: 60 days supply. Next reorder in ~53 days"


class TestHelpers:
    """Tests for module helpers"""

    @pytest.mark.parametrize("cv,level", [(0.6, "High"), (0.5, "Medium"), (0.3, "Medium"), (0.25, "Low"), (0.0, "Low")])
    def test_volatility_level(self, cv, level):
        assert volatility_level(cv) == level

    def test_stockout_probability_at_mean_is_half(self):
        assert stockout_probability(10, 10, 2) == pytest.approx(0.5)

    def test_stockout_probability_with_zero_variance(self):
        assert stockout_probability(5, 10, 0) == 0.0
        assert stockout_probability(0, 10, 0) == 1.0


def test_optimize_inventory_wrapper(transactions_df, products_df, inventory_df):
    plans = optimize_inventory(transactions_df, products_df, inventory_df, lead_time_days=14)
    baseline = optimize_inventory(transactions_df, products_df, inventory_df)

    assert [p.product_id for p in plans] == [PRODUCT_A, PRODUCT_B]
    assert plans[0].reorder_point > baseline[0].reorder_point
    assert plans[0].safety_stock > baseline[0].safety_stock
