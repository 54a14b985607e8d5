"""
Database Module
"""
from .connection import init_database, close_database, create_tables, get_db
from .models import Base

__all__ = [
    "init_database",
    "close_database",
    "create_tables",
    "get_db",
    "Base",
]
