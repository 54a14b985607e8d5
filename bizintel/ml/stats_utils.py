"""
Statistical Helpers

Closed-form statistics shared by the prediction models: least squares,
goodness of fit, smoothing, the logistic function and the normal CDF.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence

import numpy as np
import polars as pl
from scipy import special, stats


# =============================================================================
# CALENDAR MONTHS
# =============================================================================

def month_key_expr(column: str = "transaction_date") -> pl.Expr:
    """YYYY-MM key of a date column"""
    return pl.col(column).dt.strftime("%Y-%m").alias("month")


def observed_months(transactions: pl.DataFrame) -> List[str]:
    """Sorted calendar months present anywhere in the transaction set"""
    if transactions.is_empty():
        return []
    return (
        transactions.select(month_key_expr())
        .get_column("month")
        .unique()
        .sort()
        .to_list()
    )


def add_months(month: str, offset: int) -> date:
    """First day of the month `offset` months after a YYYY-MM key"""
    year, mon = (int(part) for part in month.split("-"))
    index = year * 12 + (mon - 1) + offset
    return date(index // 12, index % 12 + 1, 1)


# =============================================================================
# REGRESSION
# =============================================================================

@dataclass
class LinearFit:
    """Ordinary least squares line y = slope * x + intercept"""
    slope: float
    intercept: float
    r_squared: Optional[float]

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


def linear_regression(x: Sequence[float], y: Sequence[float]) -> LinearFit:
    """
    Fit y on x by ordinary least squares.

    R² is None when y has no variance (the coefficient of determination
    is undefined for a constant series).
    """
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)

    x_mean = xs.mean()
    y_mean = ys.mean()
    ss_xx = float(np.sum((xs - x_mean) ** 2))

    slope = float(np.sum((xs - x_mean) * (ys - y_mean)) / ss_xx) if ss_xx > 0 else 0.0
    intercept = float(y_mean - slope * x_mean)

    fitted = slope * xs + intercept
    ss_res = float(np.sum((ys - fitted) ** 2))
    ss_tot = float(np.sum((ys - y_mean) ** 2))
    r_squared = 1.0 - ss_res / ss_tot if ss_tot > 0 else None

    return LinearFit(slope=slope, intercept=intercept, r_squared=r_squared)


# =============================================================================
# DESCRIPTIVE STATISTICS
# =============================================================================

def population_std(values: Sequence[float]) -> float:
    """Population standard deviation (ddof=0)"""
    if len(values) == 0:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def sigmoid(x: float) -> float:
    """Logistic function"""
    return float(special.expit(x))


def normal_cdf(z: float) -> float:
    """Standard normal cumulative distribution Φ(z)"""
    return float(stats.norm.cdf(z))


# =============================================================================
# EXPONENTIAL SMOOTHING
# =============================================================================

@dataclass
class SmoothingResult:
    """Output of simple exponential smoothing"""
    level: float
    smoothed: List[float] = field(default_factory=list)

    @property
    def forecast(self) -> float:
        return self.level


@dataclass
class HoltResult:
    """Output of Holt's linear (double exponential) smoothing"""
    level: float
    trend: float
    fitted: List[float] = field(default_factory=list)

    def forecast(self, horizon: int) -> List[float]:
        """Point forecasts level + h * trend for h = 1..horizon"""
        return [self.level + h * self.trend for h in range(1, horizon + 1)]


def exponential_smoothing(series: Sequence[float], alpha: float = 0.3) -> SmoothingResult:
    """Simple exponential smoothing initialized with the first observation"""
    if len(series) == 0:
        return SmoothingResult(level=0.0)

    smoothed = [float(series[0])]
    for value in series[1:]:
        smoothed.append(alpha * float(value) + (1 - alpha) * smoothed[-1])

    return SmoothingResult(level=smoothed[-1], smoothed=smoothed)


def holt_smoothing(series: Sequence[float], alpha: float = 0.3, beta: float = 0.1) -> HoltResult:
    """
    Holt's linear method.

    level_0 = y_0, trend_0 = y_1 - y_0, then for i >= 1
        level_i = alpha * y_i + (1 - alpha) * (level_{i-1} + trend_{i-1})
        trend_i = beta * (level_i - level_{i-1}) + (1 - beta) * trend_{i-1}

    The fitted series is level_0 followed by level_i + trend_i.
    """
    if len(series) == 0:
        return HoltResult(level=0.0, trend=0.0)
    if len(series) == 1:
        return HoltResult(level=float(series[0]), trend=0.0, fitted=[float(series[0])])

    level = float(series[0])
    trend = float(series[1]) - float(series[0])
    fitted = [level]

    for value in series[1:]:
        previous_level = level
        level = alpha * float(value) + (1 - alpha) * (previous_level + trend)
        trend = beta * (level - previous_level) + (1 - beta) * trend
        fitted.append(level + trend)

    return HoltResult(level=level, trend=trend, fitted=fitted)


def mean_absolute_percentage_error(actual: Sequence[float], predicted: Sequence[float]) -> float:
    """MAPE as a fraction; periods with a non-positive actual contribute zero error"""
    if len(actual) == 0:
        return 0.0
    errors = [
        abs((a - p) / a) if a > 0 else 0.0
        for a, p in zip(actual, predicted)
    ]
    return float(np.mean(errors))
