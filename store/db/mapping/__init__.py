"""
Entity mappings for the Store database.

Each module in this package defines EntityMap subclasses; StoreEntityMapper
discovers them and StoreModel turns them into SQLAlchemy tables.
"""

from store.db.mapping.base import EntityMap, EntityMapper, OwnedCollection, StoreModel
from store.db.mapping.columns import UTCDateTime
from store.db.mapping.discovery import (
    StoreEntityMapper,
    get_entity_mapper,
    get_store_model,
)

__all__ = [
    "EntityMap",
    "EntityMapper",
    "OwnedCollection",
    "StoreEntityMapper",
    "StoreModel",
    "UTCDateTime",
    "get_entity_mapper",
    "get_store_model",
]
