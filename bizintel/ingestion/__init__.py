"""
Data Ingestion Module
"""
from .loader import DataLoader, DataLoadError, DataSnapshot, build_snapshot

__all__ = [
    "DataLoader",
    "DataLoadError",
    "DataSnapshot",
    "build_snapshot",
]
