"""
Entity map discovery.

Finds every concrete EntityMap defined in the store.db.mapping package, so
adding a mapping module is enough to make its maps part of the store model.
"""

import importlib
import inspect
import logging
import pkgutil
from functools import lru_cache

from store.db.mapping.base import EntityMap, EntityMapper, StoreModel

logger = logging.getLogger(__name__)

MAPPING_PACKAGE = "store.db.mapping"


class StoreEntityMapper(EntityMapper):
    """EntityMapper populated from the modules of a mapping package."""

    def __init__(self, package: str = MAPPING_PACKAGE):
        super().__init__()

        root = importlib.import_module(package)
        for module_info in sorted(
            pkgutil.iter_modules(root.__path__, prefix=f"{package}."),
            key=lambda info: info.name,
        ):
            module = importlib.import_module(module_info.name)
            for _, member in inspect.getmembers(module, inspect.isclass):
                if (
                    issubclass(member, EntityMap)
                    and member.__module__ == module.__name__
                    and not inspect.isabstract(member)
                ):
                    self.register(member())

        logger.debug(
            "Discovered %d entity maps in %s: %s",
            len(self.mappings),
            package,
            ", ".join(type(m).__name__ for m in self.mappings),
        )


@lru_cache(maxsize=1)
def get_entity_mapper() -> EntityMapper:
    """Entity maps of this package, discovered once per process."""
    return StoreEntityMapper()


@lru_cache(maxsize=1)
def get_store_model() -> StoreModel:
    """Store model configured once per process from the discovered maps."""
    return StoreModel(get_entity_mapper())
