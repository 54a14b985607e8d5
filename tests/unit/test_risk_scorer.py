"""
Unit Tests - Risk Scorer
"""
import math
import pytest
from datetime import date

from bizintel.config.settings import DEFAULT_RISK_WEIGHTS
from bizintel.ingestion.loader import build_snapshot
from bizintel.ml.risk_scorer import (
    FEATURE_NAMES,
    RiskLevel,
    RiskScorer,
    classify_risk,
    score_customer_risk,
    validate_weights,
)

from tests.conftest import CUSTOMER_1, CUSTOMER_2, PRODUCT_A, make_transaction

REFERENCE_DATE = date(2025, 6, 30)


@pytest.fixture
def scores(transactions_df, customers_df):
    results = RiskScorer(reference_date=REFERENCE_DATE).score(transactions_df, customers_df)
    return {r.customer_id: r for r in results}


class TestRiskScorer:
    """Tests for RiskScorer"""

    def test_default_weights_sum_to_one(self):
        assert math.isclose(sum(DEFAULT_RISK_WEIGHTS.values()), 1.0)
        assert set(DEFAULT_RISK_WEIGHTS) == set(FEATURE_NAMES)

    def test_clean_customer_is_low_risk(self, scores):
        clean = scores[CUSTOMER_1]

        assert clean.risk_level == "Low"
        assert clean.risk_score == round(100 / (1 + math.exp(3)), 2)
        assert clean.overdue_invoice_count == 0
        assert clean.total_outstanding == 0.0
        assert clean.expected_delay_days == 0.0
        assert all(value == 0.0 for value in clean.features.values())

    def test_delinquent_customer_is_high_risk(self, scores):
        risky = scores[CUSTOMER_2]

        assert risky.risk_level == "High"
        assert risky.overdue_invoice_count == 1
        assert risky.total_outstanding == 480.0
        assert risky.credit_utilization == round(480 / 5000, 4)
        # 30 days late on the partial invoice, boosted by the delay probability
        assert risky.expected_delay_days == round(30 * (1 + risky.payment_delay_probability), 1)
        assert all(value == 1.0 for value in risky.features.values())

    def test_scores_are_bounded(self, scores):
        for score in scores.values():
            assert 0.0 <= score.risk_score <= 100.0
            assert 0.0 <= score.payment_delay_probability <= 1.0
            assert 0.0 <= score.credit_utilization <= 1.0
            assert all(0.0 <= v <= 1.0 for v in score.features.values())

    def test_only_customers_with_transactions_are_scored(self, transactions_df, customers_records):
        customers = build_snapshot(
            [],
            customers_records + [{"customer_id": "no-history", "credit_limit": 100.0}],
            [],
        ).customers
        results = RiskScorer(reference_date=REFERENCE_DATE).score(transactions_df, customers)

        assert {r.customer_id for r in results} == {CUSTOMER_1, CUSTOMER_2}

    def test_missing_credit_limit_uses_unit_limit(self, products_records):
        records = [make_transaction(
            PRODUCT_A, CUSTOMER_1, date(2025, 1, 5), 1, 100.0,
            payment_status="Pending", outstanding_amount=100.0,
        )]
        snapshot = build_snapshot(
            records,
            [{"customer_id": CUSTOMER_1, "credit_limit": None}],
            products_records,
        )
        features = RiskScorer(reference_date=REFERENCE_DATE).compute_features(
            snapshot.transactions, snapshot.customers
        )

        assert features["credit_utilization"][0] == 1.0

    def test_recency_capped(self, transactions_df, customers_df):
        features = RiskScorer(reference_date=date(2030, 1, 1)).compute_features(
            transactions_df, customers_df
        )
        assert features["recency_score"].to_list() == [1.0, 1.0]

    def test_single_customer_normalizes_to_zero(self, transactions_df, customers_df):
        only_one = transactions_df.filter(transactions_df["customer_id"] == CUSTOMER_2)
        results = RiskScorer(reference_date=REFERENCE_DATE).score(only_one, customers_df)

        assert len(results) == 1
        assert results[0].risk_level == "Low"

    def test_no_transactions(self, transactions_df, customers_df):
        assert RiskScorer().score(transactions_df.clear(), customers_df) == []


class TestRiskWeights:
    """Tests for weight validation and banding"""

    def test_weights_must_sum_to_one(self):
        weights = dict(DEFAULT_RISK_WEIGHTS, overdue_ratio=0.5)
        with pytest.raises(ValueError, match="sum to 1.0"):
            validate_weights(weights)

    def test_weights_must_cover_features(self):
        weights = {name: 1.0 / 5 for name in FEATURE_NAMES[:5]}
        with pytest.raises(ValueError):
            RiskScorer(weights=weights)

    @pytest.mark.parametrize("score,level", [
        (60.0, RiskLevel.HIGH),
        (59.99, RiskLevel.MEDIUM),
        (30.0, RiskLevel.MEDIUM),
        (29.99, RiskLevel.LOW),
        (0.0, RiskLevel.LOW),
    ])
    def test_classification_thresholds(self, score, level):
        assert classify_risk(score) == level


def test_score_customer_risk_wrapper(transactions_df, customers_df):
    results = score_customer_risk(transactions_df, customers_df, reference_date=REFERENCE_DATE)

    assert [r.customer_id for r in results] == [CUSTOMER_1, CUSTOMER_2]
    assert [r.risk_level for r in results] == ["Low", "High"]
