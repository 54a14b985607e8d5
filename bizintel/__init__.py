"""
BizIntel Prediction Platform

Batch predictions for business intelligence: sales forecasts, customer
payment risk, cash-flow scenarios and inventory recommendations.
"""

__version__ = "1.0.0"
