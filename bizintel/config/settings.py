"""
BizIntel Prediction Platform
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

import math
from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_RISK_WEIGHTS: Dict[str, float] = {
    "overdue_ratio": 0.25,
    "outstanding_ratio": 0.20,
    "avg_payment_delay": 0.20,
    "credit_utilization": 0.15,
    "recency_score": 0.10,
    "partial_payment_ratio": 0.10,
}


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="bizintel", alias="POSTGRES_DB", description="Database name")
    user: str = Field(default="bizintel", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(default=None, description="Full SQLAlchemy URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class PredictionSettings(BaseSettings):
    """Prediction pipeline parameters"""

    model_config = SettingsConfigDict(env_prefix="PREDICTION_", protected_namespaces=())

    model_version: str = Field(default="v1.0.0", description="Version tag stored on each run")
    horizon_months: int = Field(default=3, ge=1, description="Forecast horizon in months")
    page_size: int = Field(default=1000, ge=1, description="Rows per page when fetching transactions")
    insert_chunk_size: int = Field(default=500, ge=1, description="Rows per insert statement")

    # Inventory
    lead_time_days: int = Field(default=7, ge=1, description="Replenishment lead time in days")
    service_level_z: float = Field(default=1.645, description="Z-score of the target service level (95%)")

    # Cash flow smoothing
    holt_alpha: float = Field(default=0.3, gt=0, le=1, description="Holt level smoothing")
    holt_beta: float = Field(default=0.1, gt=0, le=1, description="Holt trend smoothing")
    ses_alpha: float = Field(default=0.3, gt=0, le=1, description="Collection rate smoothing")

    # Risk scoring
    risk_weights: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_RISK_WEIGHTS),
        description="Risk feature weights, must sum to 1.0",
    )

    # Scheduling
    schedule_cron: str = Field(default="0 2 * * *", description="Cron schedule for the prediction flow")

    @field_validator("risk_weights")
    @classmethod
    def validate_risk_weights(cls, v: Dict[str, float]) -> Dict[str, float]:
        """Weights must cover every risk feature and sum to 1.0"""
        missing = set(DEFAULT_RISK_WEIGHTS) - set(v)
        unknown = set(v) - set(DEFAULT_RISK_WEIGHTS)
        if missing or unknown:
            raise ValueError(
                f"Risk weights must cover exactly {sorted(DEFAULT_RISK_WEIGHTS)}; "
                f"missing={sorted(missing)}, unknown={sorted(unknown)}"
            )
        if not math.isclose(sum(v.values()), 1.0, abs_tol=1e-9):
            raise ValueError(f"Risk weights must sum to 1.0, got {sum(v.values())}")
        return v


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="bizintel-predictions", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    prediction: PredictionSettings = Field(default_factory=PredictionSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
