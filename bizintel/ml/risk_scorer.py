"""
Customer Payment Risk Scorer

Multi-feature weighted scoring with a logistic transform:
1. Compute six payment-behaviour features per customer
2. Min-max normalize each feature across the scored population
3. Combine with fixed weights (summing to 1.0)
4. Map the weighted sum through a sigmoid and scale to 0-100

Features:
    overdue_ratio, outstanding_ratio, avg_payment_delay,
    credit_utilization, recency_score, partial_payment_ratio
"""

import math
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import polars as pl
import structlog

from bizintel.config.settings import DEFAULT_RISK_WEIGHTS
from bizintel.ml.stats_utils import sigmoid

logger = structlog.get_logger(__name__)

FEATURE_NAMES = list(DEFAULT_RISK_WEIGHTS)
RECENCY_HORIZON_DAYS = 180
SIGMOID_SCALE = 6.0
HIGH_RISK_THRESHOLD = 60.0
MEDIUM_RISK_THRESHOLD = 30.0


class RiskLevel(str, Enum):
    """Payment risk bands"""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


def classify_risk(score: float) -> RiskLevel:
    """Bands are inclusive on their lower bound"""
    if score >= HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if score >= MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def validate_weights(weights: Mapping[str, float]) -> Dict[str, float]:
    """Check that weights cover every feature and sum to exactly 1.0"""
    if set(weights) != set(FEATURE_NAMES):
        raise ValueError(f"Risk weights must cover exactly {FEATURE_NAMES}, got {sorted(weights)}")
    total = sum(weights.values())
    if not math.isclose(total, 1.0, abs_tol=1e-9):
        raise ValueError(f"Risk weights must sum to 1.0, got {total}")
    return dict(weights)


@dataclass
class RiskScore:
    """Risk assessment for one customer"""
    customer_id: str
    risk_score: float
    risk_level: str
    payment_delay_probability: float
    expected_delay_days: float
    overdue_invoice_count: int
    total_outstanding: float
    credit_utilization: float
    features: Dict[str, float] = field(default_factory=dict)

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


class RiskScorer:
    """
    Customer payment risk scorer.

    Example:
        scorer = RiskScorer(reference_date=date(2025, 6, 30))
        scores = scorer.score(transactions_df, customers_df)
    """

    def __init__(
        self,
        weights: Optional[Mapping[str, float]] = None,
        reference_date: Optional[date] = None,
    ):
        self.weights = validate_weights(weights or DEFAULT_RISK_WEIGHTS)
        self.reference_date = reference_date or datetime.utcnow().date()

    def compute_features(self, transactions: pl.DataFrame, customers: pl.DataFrame) -> pl.DataFrame:
        """
        Raw (unnormalized) features per customer.

        Only customers present in the customer table with at least one
        transaction are returned.
        """
        delay_days = (
            (pl.col("payment_received_date") - pl.col("payment_due_date"))
            .dt.total_days()
            .clip(lower_bound=0)
        )

        aggregated = (
            transactions.join(customers.select("customer_id"), on="customer_id", how="semi")
            .group_by("customer_id")
            .agg([
                pl.len().alias("total_txns"),
                (pl.col("payment_status") == "Overdue").sum().alias("overdue_count"),
                (pl.col("payment_status") == "Partial").sum().alias("partial_count"),
                pl.col("total_amount").fill_null(0).sum().alias("total_revenue"),
                pl.col("outstanding_amount").fill_null(0).sum().alias("total_outstanding"),
                delay_days.mean().alias("avg_delay"),
                pl.col("transaction_date").max().alias("last_transaction_date"),
            ])
            .join(customers.select(["customer_id", "credit_limit"]), on="customer_id", how="left")
        )

        credit_limit = (
            pl.when(pl.col("credit_limit").is_null() | (pl.col("credit_limit") == 0))
            .then(pl.lit(1.0))
            .otherwise(pl.col("credit_limit"))
        )
        days_since_last = (
            (pl.lit(self.reference_date) - pl.col("last_transaction_date")).dt.total_days()
        )

        return aggregated.with_columns([
            (pl.col("overdue_count") / pl.col("total_txns")).alias("overdue_ratio"),
            pl.when(pl.col("total_revenue") > 0)
            .then(pl.col("total_outstanding") / pl.col("total_revenue"))
            .otherwise(pl.lit(0.0))
            .alias("outstanding_ratio"),
            pl.col("avg_delay").fill_null(0.0).cast(pl.Float64).alias("avg_payment_delay"),
            (pl.col("total_outstanding") / credit_limit).clip(upper_bound=1.0).alias("credit_utilization"),
            (days_since_last / RECENCY_HORIZON_DAYS).clip(upper_bound=1.0).alias("recency_score"),
            (pl.col("partial_count") / pl.col("total_txns")).alias("partial_payment_ratio"),
        ]).sort("customer_id")

    @staticmethod
    def normalize(features: pl.DataFrame) -> pl.DataFrame:
        """Min-max scale each feature to [0, 1]; constant features map to 0"""
        normalized = []
        for name in FEATURE_NAMES:
            col = pl.col(name)
            value_range = col.max() - col.min()
            normalized.append(
                pl.when(value_range > 0)
                .then((col - col.min()) / value_range)
                .otherwise(pl.lit(0.0))
                .alias(f"{name}_norm")
            )
        return features.with_columns(normalized)

    def score(self, transactions: pl.DataFrame, customers: pl.DataFrame) -> List[RiskScore]:
        """Score every customer with transaction history"""
        features = self.compute_features(transactions, customers)
        if features.is_empty():
            logger.info("Risk scorer: no customers with transactions")
            return []

        normalized = self.normalize(features)
        results: List[RiskScore] = []

        for row in normalized.iter_rows(named=True):
            weighted_sum = sum(row[f"{name}_norm"] * self.weights[name] for name in FEATURE_NAMES)

            # Centre the population and spread it over the sensitive range of the sigmoid
            delay_probability = sigmoid((weighted_sum - 0.5) * SIGMOID_SCALE)
            risk_score = round(delay_probability * 100, 2)

            expected_delay = row["avg_payment_delay"]
            if row["overdue_count"] > 0:
                expected_delay = expected_delay * (1 + delay_probability)

            results.append(RiskScore(
                customer_id=row["customer_id"],
                risk_score=risk_score,
                risk_level=classify_risk(risk_score).value,
                payment_delay_probability=round(delay_probability, 4),
                expected_delay_days=round(expected_delay, 1),
                overdue_invoice_count=int(row["overdue_count"]),
                total_outstanding=round(row["total_outstanding"], 2),
                credit_utilization=round(row["credit_utilization"], 4),
                features={name: round(row[f"{name}_norm"], 3) for name in FEATURE_NAMES},
            ))

        level_counts = {level.value: 0 for level in RiskLevel}
        for result in results:
            level_counts[result.risk_level] += 1

        logger.info(
            "Risk scorer complete",
            customers=len(results),
            high=level_counts[RiskLevel.HIGH.value],
            medium=level_counts[RiskLevel.MEDIUM.value],
            low=level_counts[RiskLevel.LOW.value],
        )
        return results


def score_customer_risk(
    transactions: pl.DataFrame,
    customers: pl.DataFrame,
    reference_date: Optional[date] = None,
) -> List[RiskScore]:
    """Convenience wrapper around RiskScorer"""
    return RiskScorer(reference_date=reference_date).score(transactions, customers)
