"""
Prediction Models Module
"""
from .sales_forecaster import SalesForecaster, SalesForecast, forecast_sales
from .risk_scorer import RiskScorer, RiskScore, RiskLevel, score_customer_risk
from .cashflow_predictor import CashFlowPredictor, CashFlowForecast, forecast_cash_flow
from .inventory_optimizer import InventoryOptimizer, InventoryForecast, optimize_inventory

__all__ = [
    "SalesForecaster",
    "SalesForecast",
    "forecast_sales",
    "RiskScorer",
    "RiskScore",
    "RiskLevel",
    "score_customer_risk",
    "CashFlowPredictor",
    "CashFlowForecast",
    "forecast_cash_flow",
    "InventoryOptimizer",
    "InventoryForecast",
    "optimize_inventory",
]
