"""
Data Quality Module
"""
from .validators import DataValidator, ValidationResult, ValidationStatus, validate_snapshot

__all__ = [
    "DataValidator",
    "ValidationResult",
    "ValidationStatus",
    "validate_snapshot",
]
