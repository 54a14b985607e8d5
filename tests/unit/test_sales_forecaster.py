"""
Unit Tests - Sales Forecaster
"""
import pytest
from datetime import date

from bizintel.ingestion.loader import build_snapshot
from bizintel.ml.sales_forecaster import SalesForecaster, forecast_sales

from tests.conftest import CUSTOMER_1, PRODUCT_A, PRODUCT_B, make_transaction


class TestSalesForecaster:
    """Tests for SalesForecaster"""

    def test_linear_trend_extrapolates(self, transactions_df, products_df):
        """A perfect linear series is continued exactly"""
        forecasts = [
            f for f in SalesForecaster().forecast(transactions_df, products_df)
            if f.product_id == PRODUCT_A
        ]

        assert [f.predicted_quantity for f in forecasts] == [140.0, 150.0, 160.0]
        assert [f.predicted_revenue for f in forecasts] == [1400.0, 1500.0, 1600.0]
        assert [f.prediction_month for f in forecasts] == [
            date(2025, 5, 1), date(2025, 6, 1), date(2025, 7, 1),
        ]
        assert all(f.confidence_score == 1.0 for f in forecasts)
        assert all(f.trend_direction == "up" for f in forecasts)
        assert forecasts[0].growth_rate == round(10 / 115, 4)
        assert forecasts[0].model_used == "linear_regression"

    def test_declining_product(self, transactions_df, products_df):
        forecasts = [
            f for f in SalesForecaster().forecast(transactions_df, products_df)
            if f.product_id == PRODUCT_B
        ]

        assert len(forecasts) == 3
        assert all(f.trend_direction == "down" for f in forecasts)
        assert all(f.predicted_quantity >= 0 for f in forecasts)

    def test_products_with_short_history_are_skipped(self, customers_records, products_records):
        records = [
            make_transaction(PRODUCT_A, CUSTOMER_1, date(2025, 1, 5), 10, 100.0),
            make_transaction(PRODUCT_A, CUSTOMER_1, date(2025, 2, 5), 12, 120.0),
        ]
        snapshot = build_snapshot(records, customers_records, products_records)

        assert SalesForecaster().forecast(snapshot.transactions, snapshot.products) == []

    def test_empty_transactions(self, snapshot):
        empty = snapshot.transactions.clear()
        assert forecast_sales(empty, snapshot.products) == []

    def test_unknown_products_ignored(self, transactions_df, products_df):
        catalog = products_df.filter(products_df["product_id"] == PRODUCT_A)
        forecasts = SalesForecaster().forecast(transactions_df, catalog)

        assert {f.product_id for f in forecasts} == {PRODUCT_A}

    def test_constant_demand_has_no_confidence(self, customers_records, products_records):
        records = [
            make_transaction(PRODUCT_A, CUSTOMER_1, date(2025, m, 5), 50, 500.0)
            for m in (1, 2, 3)
        ]
        snapshot = build_snapshot(records, customers_records, products_records)
        forecasts = SalesForecaster().forecast(snapshot.transactions, snapshot.products)

        assert len(forecasts) == 3
        assert all(f.confidence_score is None for f in forecasts)
        assert all(f.trend_direction == "stable" for f in forecasts)
        assert all(f.predicted_quantity == 50.0 for f in forecasts)

    def test_horizon_is_configurable(self, transactions_df, products_df):
        forecasts = SalesForecaster(horizon_months=5).forecast(transactions_df, products_df)
        assert len(forecasts) == 10

    def test_forecast_is_deterministic(self, transactions_df, products_df):
        forecaster = SalesForecaster()
        first = forecaster.forecast(transactions_df, products_df)
        second = forecaster.forecast(transactions_df, products_df)

        assert [f.to_record() for f in first] == [f.to_record() for f in second]

    @pytest.mark.parametrize("horizon", [1, 3])
    def test_confidence_in_unit_interval(self, transactions_df, products_df, horizon):
        for forecast in SalesForecaster(horizon_months=horizon).forecast(transactions_df, products_df):
            if forecast.confidence_score is not None:
                assert 0.0 <= forecast.confidence_score <= 1.0
