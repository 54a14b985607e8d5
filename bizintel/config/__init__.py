"""
BizIntel Prediction Platform
Configuration Module
"""
from .settings import Settings, PredictionSettings, get_settings

__all__ = ["Settings", "PredictionSettings", "get_settings"]
