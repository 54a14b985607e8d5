"""
Inventory Optimizer

Statistical safety stock and stockout risk per product:
1. Monthly demand per product over every observed month (0 when no sales)
2. Demand volatility = coefficient of variation (std dev / mean)
3. Safety stock = z * daily std dev * sqrt(lead time)
4. Reorder point = daily demand * lead time + safety stock
5. Stockout probability = P(lead-time demand > current stock) under a normal model
6. Days until stockout = current stock / daily demand
"""

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import polars as pl
import structlog

from bizintel.ml.stats_utils import month_key_expr, normal_cdf, observed_months, population_std

logger = structlog.get_logger(__name__)

DAYS_PER_MONTH = 30
DEFAULT_LEAD_TIME_DAYS = 7
Z_95 = 1.645
NO_DEMAND_SENTINEL_DAYS = 999.0
MIN_SERIES_MONTHS = 2
MAX_CONFIDENCE = 95


@dataclass
class InventoryForecast:
    """Replenishment plan and stockout risk for one product"""
    product_id: str
    current_stock: float
    predicted_monthly_demand: float
    demand_volatility: float
    volatility_level: str
    safety_stock: float
    reorder_point: float
    stockout_probability: float
    days_until_stockout: float
    recommendation: str
    confidence_score: Optional[float]

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


def volatility_level(cv: float) -> str:
    if cv > 0.5:
        return "High"
    if cv > 0.25:
        return "Medium"
    return "Low"


def stockout_probability(current_stock: float, mean_demand: float, std_demand: float) -> float:
    """
    Probability that lead-time demand exceeds the stock on hand.

    Out of stock is certain; with no demand variance the outcome is
    deterministic and treated as covered.
    """
    if current_stock <= 0:
        return 1.0
    if std_demand <= 0:
        return 0.0
    z_score = (current_stock - mean_demand) / std_demand
    return 1.0 - normal_cdf(z_score)


class InventoryOptimizer:
    """
    Safety stock and reorder point calculator.

    Example:
        optimizer = InventoryOptimizer(lead_time_days=7)
        plans = optimizer.optimize(transactions_df, products_df, inventory_df)
    """

    def __init__(self, lead_time_days: int = DEFAULT_LEAD_TIME_DAYS, service_level_z: float = Z_95):
        self.lead_time_days = lead_time_days
        self.service_level_z = service_level_z

    def recommend(
        self,
        current_stock: float,
        reorder_point: float,
        avg_monthly_demand: float,
        days_until_stockout: float,
    ) -> str:
        """Decision ladder, first matching rung wins"""
        if current_stock <= 0:
            return f"CRITICAL: Out of stock. Order {round(reorder_point + avg_monthly_demand)} units immediately"
        if current_stock < reorder_point:
            order_qty = round((reorder_point + avg_monthly_demand - current_stock) / 100) * 100
            return f"Urgent: Below reorder point. Order {order_qty} units within {self.lead_time_days} days"
        if days_until_stockout < 30:
            order_qty = round(avg_monthly_demand * 1.5 / 100) * 100
            return f"Plan reorder of {order_qty} units: {round(days_until_stockout)} days of stock remaining"
        if days_until_stockout > 120:
            excess = round((current_stock - avg_monthly_demand * 3) / 100) * 100
            return f"Overstocked: {round(days_until_stockout)} days of supply. Consider reducing by {excess} units"
        return (
            f"Healthy stock: {round(days_until_stockout)} days supply. "
            f"Next reorder in ~{round(days_until_stockout - self.lead_time_days)} days"
        )

    def optimize(
        self,
        transactions: pl.DataFrame,
        products: pl.DataFrame,
        inventory: pl.DataFrame,
    ) -> List[InventoryForecast]:
        """
        Build a replenishment plan for every catalog product.

        Products without an inventory record are treated as out of stock.
        """
        months = observed_months(transactions)
        if len(months) < MIN_SERIES_MONTHS:
            logger.info("Inventory optimizer: not enough monthly data", months=len(months))
            return []

        monthly = (
            transactions.with_columns(month_key_expr())
            .group_by(["product_id", "month"])
            .agg(pl.col("quantity").fill_null(0).sum().alias("quantity"))
        )
        demand_by_product: Dict[str, Dict[str, float]] = {}
        for row in monthly.iter_rows(named=True):
            demand_by_product.setdefault(row["product_id"], {})[row["month"]] = row["quantity"]

        stock_by_product = {
            row["product_id"]: row["current_stock"] or 0.0
            for row in inventory.iter_rows(named=True)
        }

        lead_time = self.lead_time_days
        results: List[InventoryForecast] = []

        for product_id in products["product_id"].sort().to_list():
            product_demand = demand_by_product.get(product_id, {})
            series = [product_demand.get(month, 0.0) for month in months]

            avg_monthly = sum(series) / len(series)
            std_monthly = population_std(series)
            cv = std_monthly / avg_monthly if avg_monthly > 0 else 0.0

            avg_daily = avg_monthly / DAYS_PER_MONTH
            std_daily = std_monthly / math.sqrt(DAYS_PER_MONTH)

            safety_stock = self.service_level_z * std_daily * math.sqrt(lead_time)
            reorder_point = avg_daily * lead_time + safety_stock

            current_stock = float(stock_by_product.get(product_id, 0.0))
            days_until_stockout = (
                round(current_stock / avg_daily, 1) if avg_daily > 0 else NO_DEMAND_SENTINEL_DAYS
            )

            probability = stockout_probability(
                current_stock,
                mean_demand=avg_daily * lead_time,
                std_demand=std_daily * math.sqrt(lead_time),
            )

            months_with_data = len(product_demand)
            confidence = min(MAX_CONFIDENCE, 50 + 3 * months_with_data)

            results.append(InventoryForecast(
                product_id=product_id,
                current_stock=round(current_stock, 2),
                predicted_monthly_demand=round(avg_monthly, 2),
                demand_volatility=round(cv, 4),
                volatility_level=volatility_level(cv),
                safety_stock=round(safety_stock, 2),
                reorder_point=round(reorder_point, 2),
                stockout_probability=round(probability, 4),
                days_until_stockout=days_until_stockout,
                recommendation=self.recommend(current_stock, reorder_point, avg_monthly, days_until_stockout),
                confidence_score=float(confidence),
            ))

        logger.info(
            "Inventory optimizer complete",
            products=len(results),
            high_volatility=sum(1 for r in results if r.volatility_level == "High"),
            stockout_risk=sum(1 for r in results if r.stockout_probability > 0.5),
        )
        return results


def optimize_inventory(
    transactions: pl.DataFrame,
    products: pl.DataFrame,
    inventory: pl.DataFrame,
    lead_time_days: int = DEFAULT_LEAD_TIME_DAYS,
) -> List[InventoryForecast]:
    """Convenience wrapper around InventoryOptimizer"""
    return InventoryOptimizer(lead_time_days=lead_time_days).optimize(transactions, products, inventory)
