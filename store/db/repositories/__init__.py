"""
Repository implementations for the Store database.

Repositories provide a clean interface for database CRUD operations,
composing SQLAlchemy queries over the shared StoreDbContext.
"""

from store.db.repositories.base import Repository
from store.db.repositories.sales import SalesRepository

__all__ = [
    "Repository",
    "SalesRepository",
]
