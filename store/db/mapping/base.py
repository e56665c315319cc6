"""
Entity mapping contract and model configuration.

An EntityMap describes how one Pydantic entity is stored: its table, key
columns, store-generated identity, concurrency token and owned collections.
StoreModel turns a set of maps into SQLAlchemy tables on one MetaData.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Iterable, TypeVar

from pydantic import BaseModel
from sqlalchemy import Column, Constraint, MetaData, Table
from sqlalchemy.exc import NoReferenceError

from store.db.errors import ConfigurationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class OwnedCollection:
    """Child rows stored with, and deleted with, their parent entity."""

    field: str
    entity_type: type[BaseModel]
    foreign_key: str
    principal_key: str


class EntityMap(ABC, Generic[ModelT]):
    """
    Storage mapping for one entity type.

    Subclasses must set:
    - entity_type: the Pydantic model stored by this map
    - table_name: name of the table
    - key: field names identifying a row

    and implement columns(). Concrete subclasses placed in the
    store.db.mapping package are picked up by StoreEntityMapper.
    """

    entity_type: type[ModelT]
    table_name: str
    key: tuple[str, ...]

    # Store-generated key column; unset (None or 0) values are omitted on insert
    identity: str | None = None
    # Column compared on update/delete and replaced on every write
    concurrency_token: str | None = None
    # Columns written on insert only
    insert_only: tuple[str, ...] = ()
    owned: tuple[OwnedCollection, ...] = ()

    @abstractmethod
    def columns(self) -> list[Column | Constraint]:
        """Columns and constraints of the table."""
        pass

    def map(self, metadata: MetaData) -> Table:
        """Define this map's table on the given metadata."""
        return Table(self.table_name, metadata, *self.columns())

    def to_row(self, entity: ModelT, table: Table) -> dict:
        """Convert an entity to a column dict for the table."""
        return entity.model_dump(include=set(table.c.keys()))

    def from_row(self, row: Any) -> ModelT:
        """Convert a database row to an entity."""
        return self.entity_type.model_validate(dict(row._mapping))

    def key_of(self, entity: ModelT) -> dict:
        """Key field values of an entity."""
        return {name: getattr(entity, name) for name in self.key}


class EntityMapper:
    """Ordered collection of entity maps consumed by StoreModel."""

    def __init__(self, mappings: Iterable[EntityMap] = ()):
        self.mappings: list[EntityMap] = list(mappings)

    def register(self, entity_map: EntityMap) -> None:
        """Add a map that discovery would not find on its own."""
        self.mappings.append(entity_map)


class StoreModel:
    """
    Table metadata configured from an EntityMapper.

    Every inconsistency between maps, entities and tables is reported here as
    ConfigurationError, before any repository runs a query.
    """

    def __init__(self, mapper: EntityMapper):
        self.metadata = MetaData()
        self._maps: dict[type[BaseModel], EntityMap] = {}
        self._tables: dict[type[BaseModel], Table] = {}

        for entity_map in mapper.mappings:
            self._configure(entity_map)

        self._validate_owned()
        self._validate_foreign_keys()

        if not self._maps:
            logger.warning("Store model configured without any entity maps")
        else:
            logger.info(
                "Store model configured with %d entity maps", len(self._maps)
            )

    @property
    def entity_types(self) -> list[type[BaseModel]]:
        """Entity types with a map."""
        return list(self._maps)

    def is_mapped(self, entity_type: type[BaseModel]) -> bool:
        return entity_type in self._maps

    def entity_map(self, entity_type: type[ModelT]) -> EntityMap[ModelT]:
        """Get the map for an entity type."""
        try:
            return self._maps[entity_type]
        except KeyError:
            raise ConfigurationError(
                f"No entity map configured for {entity_type.__name__}"
            ) from None

    def table(self, entity_type: type[BaseModel]) -> Table:
        """Get the table for an entity type."""
        self.entity_map(entity_type)
        return self._tables[entity_type]

    def _configure(self, entity_map: EntityMap) -> None:
        map_name = type(entity_map).__name__
        entity_type = getattr(entity_map, "entity_type", None)
        table_name = getattr(entity_map, "table_name", None)
        key = getattr(entity_map, "key", None)

        if entity_type is None or table_name is None or not key:
            raise ConfigurationError(
                f"{map_name} must declare entity_type, table_name and key"
            )
        if entity_type in self._maps:
            raise ConfigurationError(
                f"{entity_type.__name__} is mapped by both "
                f"{type(self._maps[entity_type]).__name__} and {map_name}"
            )
        if table_name in self.metadata.tables:
            raise ConfigurationError(
                f"Table {table_name!r} of {map_name} is already mapped"
            )

        table = entity_map.map(self.metadata)
        fields = set(entity_type.model_fields)

        declared = [*key, *entity_map.insert_only]
        if entity_map.identity:
            declared.append(entity_map.identity)
        if entity_map.concurrency_token:
            declared.append(entity_map.concurrency_token)

        for name in declared:
            if name not in table.c or name not in fields:
                raise ConfigurationError(
                    f"{map_name}: {name!r} must be both a column of "
                    f"{table_name!r} and a field of {entity_type.__name__}"
                )

        primary_key = {column.name for column in table.primary_key.columns}
        if primary_key != set(key):
            raise ConfigurationError(
                f"{map_name}: key {key} does not match primary key of {table_name!r}"
            )

        self._maps[entity_type] = entity_map
        self._tables[entity_type] = table

    def _validate_owned(self) -> None:
        for entity_type, entity_map in self._maps.items():
            for owned in entity_map.owned:
                if owned.field not in entity_type.model_fields:
                    raise ConfigurationError(
                        f"{entity_type.__name__} has no field {owned.field!r}"
                    )
                child_table = self.table(owned.entity_type)
                if owned.foreign_key not in child_table.c:
                    raise ConfigurationError(
                        f"{child_table.name!r} has no column {owned.foreign_key!r}"
                    )

    def _validate_foreign_keys(self) -> None:
        for table in self.metadata.tables.values():
            for foreign_key in table.foreign_keys:
                try:
                    foreign_key.column
                except NoReferenceError as e:
                    raise ConfigurationError(
                        f"{table.name!r} references an unmapped table: {e}"
                    ) from e
