"""
Unit Tests - Cash Flow Predictor
"""
import pytest
from datetime import date

from bizintel.ingestion.loader import build_snapshot
from bizintel.ml.cashflow_predictor import CashFlowPredictor, forecast_cash_flow

from tests.conftest import CUSTOMER_1, PRODUCT_A, make_transaction


class TestMonthlyCollections:
    """Tests for the monthly revenue/collection aggregation"""

    def test_paid_counts_in_full_and_partial_counts_settled_part(self, transactions_df):
        monthly = CashFlowPredictor.monthly_collections(transactions_df)

        assert monthly["month"].to_list() == ["2025-01", "2025-02", "2025-03", "2025-04"]
        assert monthly["revenue"].to_list() == [1200.0, 1340.0, 1360.0, 1300.0]
        # Overdue and pending invoices contribute nothing; the partial one contributes 120
        assert monthly["paid"].to_list() == [1000.0, 1220.0, 1200.0, 1300.0]
        assert monthly["collection_rate"][3] == 1.0


class TestCashFlowPredictor:
    """Tests for CashFlowPredictor"""

    def test_forecasts_horizon_months(self, transactions_df):
        forecasts = CashFlowPredictor().forecast(transactions_df)

        assert [f.forecast_month for f in forecasts] == [
            date(2025, 5, 1), date(2025, 6, 1), date(2025, 7, 1),
        ]
        assert all(f.model_used == "holt_exponential_smoothing" for f in forecasts)

    def test_scenarios_are_ordered(self, transactions_df):
        for forecast in CashFlowPredictor().forecast(transactions_df):
            assert forecast.best_case_inflow >= forecast.most_likely_inflow >= forecast.worst_case_inflow
            assert forecast.worst_case_inflow >= 0
            assert forecast.expected_inflow == forecast.most_likely_inflow

    def test_collection_rate_and_confidence_bounds(self, transactions_df):
        for forecast in CashFlowPredictor().forecast(transactions_df):
            assert 0.0 <= forecast.collection_rate <= 1.0
            assert 0.0 <= forecast.confidence_score <= 99.0

    def test_three_months_is_enough(self, customers_records, products_records):
        records = [
            make_transaction(PRODUCT_A, CUSTOMER_1, date(2025, m, 1), 10, 1000.0 + 100 * m)
            for m in (1, 2, 3)
        ]
        snapshot = build_snapshot(records, customers_records, products_records)
        forecasts = forecast_cash_flow(snapshot.transactions)

        assert len(forecasts) == 3
        # Everything was paid: no spread between scenarios
        assert all(f.collection_rate == 1.0 for f in forecasts)
        assert all(f.best_case_inflow == f.worst_case_inflow for f in forecasts)
        assert all(f.expected_delay == 0.0 for f in forecasts)

    def test_short_history_returns_nothing(self, customers_records, products_records):
        records = [
            make_transaction(PRODUCT_A, CUSTOMER_1, date(2025, m, 1), 10, 1000.0)
            for m in (1, 2)
        ]
        snapshot = build_snapshot(records, customers_records, products_records)

        assert CashFlowPredictor().forecast(snapshot.transactions) == []

    def test_no_transactions(self, transactions_df):
        assert CashFlowPredictor().forecast(transactions_df.clear()) == []

    def test_collapsing_revenue_is_floored_at_zero(self, customers_records, products_records):
        records = [
            make_transaction(PRODUCT_A, CUSTOMER_1, date(2025, m, 1), 10, amount)
            for m, amount in zip((1, 2, 3, 4), (10000.0, 5000.0, 1000.0, 10.0))
        ]
        snapshot = build_snapshot(records, customers_records, products_records)
        forecasts = CashFlowPredictor(horizon_months=6).forecast(snapshot.transactions)

        assert all(f.most_likely_inflow >= 0 for f in forecasts)
        assert all(f.confidence_score >= 0 for f in forecasts)

    @pytest.mark.parametrize("horizon", [1, 6])
    def test_custom_horizon(self, transactions_df, horizon):
        assert len(CashFlowPredictor(horizon_months=horizon).forecast(transactions_df)) == horizon
