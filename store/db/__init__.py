"""
Store Database Module.

Provides database connection management, entity mapping and repositories.
Uses SQLAlchemy Core with the asyncio extension.
"""

from store.db.connection import DatabaseConnection
from store.db.context import Query, StoreDbContext
from store.db.errors import (
    ConcurrencyConflict,
    ConfigurationError,
    ConstraintViolation,
    StoreError,
)
from store.db.unit_of_work import UnitOfWork

__all__ = [
    "ConcurrencyConflict",
    "ConfigurationError",
    "ConstraintViolation",
    "DatabaseConnection",
    "Query",
    "StoreDbContext",
    "StoreError",
    "UnitOfWork",
]
