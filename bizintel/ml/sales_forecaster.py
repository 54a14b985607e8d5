"""
Sales Forecaster

Per-product linear regression of monthly demand:
1. Sum quantity and revenue per product per calendar month
2. Index months by their position in the calendar of the whole transaction set
3. Fit quantity = slope * month_index + intercept by least squares
4. Extrapolate the months following the last observed month
5. Use R² as the confidence score and recent unit price for revenue
"""

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, List, Optional

import polars as pl
import structlog

from bizintel.ml.stats_utils import add_months, linear_regression, month_key_expr, observed_months

logger = structlog.get_logger(__name__)

MODEL_NAME = "linear_regression"
MIN_MONTHS = 3
PRICE_LOOKBACK_MONTHS = 3


@dataclass
class SalesForecast:
    """Forecast for one product and one future month"""
    product_id: str
    prediction_month: date
    predicted_quantity: float
    predicted_revenue: float
    confidence_score: Optional[float]
    model_used: str
    trend_direction: str
    growth_rate: float

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


def _trend_direction(slope: float) -> str:
    if slope > 0:
        return "up"
    if slope < 0:
        return "down"
    return "stable"


def _recent_unit_price(monthly: pl.DataFrame) -> float:
    """Mean revenue/quantity over the latest months, ignoring zero-quantity months"""
    recent = (
        monthly.sort("month", descending=True)
        .head(PRICE_LOOKBACK_MONTHS)
        .filter(pl.col("quantity") > 0)
    )
    if recent.is_empty():
        return 0.0
    return float((recent["revenue"] / recent["quantity"]).mean())


class SalesForecaster:
    """
    Monthly demand forecaster.

    Example:
        forecaster = SalesForecaster(horizon_months=3)
        forecasts = forecaster.forecast(transactions_df, products_df)
    """

    def __init__(self, horizon_months: int = 3, min_months: int = MIN_MONTHS):
        self.horizon_months = horizon_months
        self.min_months = min_months

    def _monthly_demand(self, transactions: pl.DataFrame, products: pl.DataFrame) -> pl.DataFrame:
        return (
            transactions.join(products.select("product_id"), on="product_id", how="semi")
            .with_columns(month_key_expr())
            .group_by(["product_id", "month"])
            .agg([
                pl.col("quantity").fill_null(0).sum().alias("quantity"),
                pl.col("total_amount").fill_null(0).sum().alias("revenue"),
            ])
            .sort(["product_id", "month"])
        )

    def forecast(self, transactions: pl.DataFrame, products: pl.DataFrame) -> List[SalesForecast]:
        """
        Forecast demand for every product with enough history.

        Args:
            transactions: Transaction snapshot
            products: Product catalog; transactions for unknown products are ignored

        Returns:
            horizon_months forecasts per eligible product, ordered by product
        """
        months = observed_months(transactions)
        if not months:
            logger.info("Sales forecaster: no transactions")
            return []

        month_index = {month: i for i, month in enumerate(months)}
        last_index = len(months) - 1
        last_month = months[-1]

        monthly = self._monthly_demand(transactions, products)
        predictions: List[SalesForecast] = []
        skipped = 0

        for group in monthly.partition_by("product_id", maintain_order=True):
            product_id = group["product_id"][0]

            if group.height < self.min_months:
                skipped += 1
                logger.debug("Insufficient history", product_id=product_id, months=group.height)
                continue

            x = [month_index[m] for m in group["month"].to_list()]
            y = group["quantity"].to_list()

            fit = linear_regression(x, y)
            avg_unit_price = _recent_unit_price(group)

            avg_quantity = float(group["quantity"].mean())
            growth_rate = fit.slope / avg_quantity if avg_quantity > 0 else 0.0

            confidence = (
                round(max(0.0, fit.r_squared), 2) if fit.r_squared is not None else None
            )
            trend = _trend_direction(fit.slope)

            for step in range(1, self.horizon_months + 1):
                predicted_qty = max(0.0, fit.predict(last_index + step))
                predictions.append(SalesForecast(
                    product_id=product_id,
                    prediction_month=add_months(last_month, step),
                    predicted_quantity=round(predicted_qty, 2),
                    predicted_revenue=round(predicted_qty * avg_unit_price, 2),
                    confidence_score=confidence,
                    model_used=MODEL_NAME,
                    trend_direction=trend,
                    growth_rate=round(growth_rate, 4),
                ))

        logger.info(
            "Sales forecaster complete",
            predictions=len(predictions),
            products=monthly["product_id"].n_unique(),
            skipped=skipped,
        )
        return predictions


def forecast_sales(
    transactions: pl.DataFrame,
    products: pl.DataFrame,
    horizon_months: int = 3,
) -> List[SalesForecast]:
    """Convenience wrapper around SalesForecaster"""
    return SalesForecaster(horizon_months=horizon_months).forecast(transactions, products)
