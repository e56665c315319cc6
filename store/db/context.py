"""
Database context: change tracking and lazy queries over the store model.

StoreDbContext wraps one AsyncSession. Mutations are staged with add/update/
remove and only reach the database when commit() runs, all in one transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, Generic, TypeVar
from uuid import uuid4

from pydantic import BaseModel
from sqlalchemy import Select, Table, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from store.db.errors import ConcurrencyConflict, ConstraintViolation
from store.db.mapping import EntityMap, StoreModel, get_store_model

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def new_row_version() -> str:
    """Generate an opaque concurrency token."""
    return uuid4().hex


class EntityState(StrEnum):
    """State of a staged change"""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass
class _Change:
    state: EntityState
    entity: BaseModel
    entity_map: EntityMap


# Values copied onto entities once the transaction has committed
_Writeback = tuple[BaseModel, dict[str, Any]]


class Query(Generic[ModelT]):
    """
    Composable query materialized as Pydantic models.

    Builder methods return new queries and never touch the database;
    only all(), first() and count() execute.
    """

    def __init__(
        self,
        session: AsyncSession,
        statement: Select,
        model_class: type[ModelT],
        converter: Callable[[Any], ModelT] | None = None,
    ):
        self._session = session
        self._statement = statement
        self._model_class = model_class
        self._converter = converter

    @property
    def statement(self) -> Select:
        """Underlying SQLAlchemy select."""
        return self._statement

    @property
    def c(self):
        """Selected columns, addressable by result field name."""
        return self._statement.selected_columns

    def _derive(self, statement: Select) -> Query[ModelT]:
        return Query(self._session, statement, self._model_class, self._converter)

    def where(self, *criteria) -> Query[ModelT]:
        return self._derive(self._statement.where(*criteria))

    def filter_by(self, **values) -> Query[ModelT]:
        """Narrow by equality on selected columns."""
        return self.where(*(self.c[name] == value for name, value in values.items()))

    def order_by(self, *clauses) -> Query[ModelT]:
        return self._derive(self._statement.order_by(*clauses))

    def limit(self, limit: int) -> Query[ModelT]:
        return self._derive(self._statement.limit(limit))

    def offset(self, offset: int) -> Query[ModelT]:
        return self._derive(self._statement.offset(offset))

    async def all(self) -> list[ModelT]:
        result = await self._session.execute(self._statement)
        return [self._to_model(row) for row in result.fetchall()]

    async def first(self) -> ModelT | None:
        result = await self._session.execute(self._statement.limit(1))
        row = result.fetchone()

        if row is None:
            return None

        return self._to_model(row)

    async def count(self) -> int:
        stmt = select(func.count()).select_from(self._statement.subquery())
        result = await self._session.execute(stmt)
        return result.scalar_one()

    def _to_model(self, row: Any) -> ModelT:
        if self._converter is not None:
            return self._converter(row)
        return self._model_class.model_validate(dict(row._mapping))


class StoreDbContext:
    """
    Unit-of-work primitives shared by all repositories.

    Usage:
        context = StoreDbContext(session)
        context.add(customer)
        affected = await context.commit()

    A context, like its session, must not be shared between concurrent tasks.
    """

    def __init__(self, session: AsyncSession, model: StoreModel | None = None):
        self.session = session
        self.model = model or get_store_model()
        self._changes: dict[int, _Change] = {}

    def table(self, entity_type: type[BaseModel]) -> Table:
        """Table mapped to an entity type."""
        return self.model.table(entity_type)

    def set(self, entity_type: type[ModelT]) -> Query[ModelT]:
        """Query over every row of an entity's table."""
        entity_map = self.model.entity_map(entity_type)
        return Query(
            self.session,
            select(self.table(entity_type)),
            entity_type,
            entity_map.from_row,
        )

    def query(self, statement: Select, model_class: type[ModelT]) -> Query[ModelT]:
        """
        Query over an arbitrary select, materialized as model_class.

        Mapped model classes are converted through their map; projections
        are validated from the selected columns.
        """
        converter = None
        if self.model.is_mapped(model_class):
            converter = self.model.entity_map(model_class).from_row
        return Query(self.session, statement, model_class, converter)

    async def find(self, entity: ModelT) -> ModelT | None:
        """
        Read an entity by the key fields of a partially populated instance.

        Returns:
            Stored entity or None if no row matches
        """
        entity_type = type(entity)
        entity_map = self.model.entity_map(entity_type)
        table = self.table(entity_type)
        return await (
            self.set(entity_type).where(*self._key_criteria(entity_map, table, entity)).first()
        )

    async def load_collection(self, entity: ModelT, field: str) -> ModelT:
        """Populate an owned collection of an entity from the database."""
        entity_map = self.model.entity_map(type(entity))
        owned = next((o for o in entity_map.owned if o.field == field), None)
        if owned is None:
            raise ValueError(f"{type(entity).__name__}.{field} is not an owned collection")

        child_table = self.table(owned.entity_type)
        children = await (
            self.set(owned.entity_type)
            .where(
                child_table.c[owned.foreign_key]
                == getattr(entity, owned.principal_key)
            )
            .all()
        )
        setattr(entity, field, children)
        return entity

    # =========================================================================
    # Change tracking
    # =========================================================================

    def add(self, entity: BaseModel) -> None:
        """Stage an insert."""
        self._stage(EntityState.ADDED, entity)

    def update(self, entity: BaseModel) -> None:
        """Stage an update of every non-key column."""
        self._stage(EntityState.MODIFIED, entity)

    def remove(self, entity: BaseModel) -> None:
        """Stage a delete."""
        self._stage(EntityState.DELETED, entity)

    def has_changes(self) -> bool:
        return bool(self._changes)

    def discard_changes(self) -> None:
        self._changes.clear()

    def _stage(self, state: EntityState, entity: BaseModel) -> None:
        # Unmapped types fail here rather than at commit
        entity_map = self.model.entity_map(type(entity))

        # One change per instance; a pending insert absorbs later updates
        # and is cancelled by a remove
        staged = self._changes.get(id(entity))
        if staged is not None and staged.state == EntityState.ADDED:
            if state == EntityState.DELETED:
                del self._changes[id(entity)]
                logger.debug("Unstaged added %s", type(entity).__name__)
            return

        self._changes[id(entity)] = _Change(state, entity, entity_map)
        logger.debug("Staged %s %s", state, type(entity).__name__)

    async def commit(self) -> int:
        """
        Write all staged changes in one transaction.

        Returns:
            Number of rows affected

        Raises:
            ConcurrencyConflict: An update or delete matched no row
            ConstraintViolation: The store rejected a constraint
        """
        changes = list(self._changes.values())
        self._changes = {}
        affected = 0
        writebacks: list[_Writeback] = []

        try:
            for change in changes:
                rows, values = await self._apply(change)
                affected += rows
                writebacks.extend(values)
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning("Commit rejected by constraint: %s", e.orig)
            raise ConstraintViolation(str(e.orig)) from e
        except Exception:
            await self.session.rollback()
            raise

        for entity, values in writebacks:
            for name, value in values.items():
                setattr(entity, name, value)

        logger.debug(
            "Committed %d change(s), %d row(s) affected",
            len(changes),
            affected,
            extra={"json_fields": {"changes": len(changes), "affected": affected}},
        )
        return affected

    async def _apply(self, change: _Change) -> tuple[int, list[_Writeback]]:
        if change.state == EntityState.ADDED:
            return await self._insert(change.entity_map, change.entity)
        if change.state == EntityState.MODIFIED:
            return await self._update(change.entity_map, change.entity)
        return await self._delete(change.entity_map, change.entity)

    async def _insert(
        self,
        entity_map: EntityMap,
        entity: BaseModel,
        overrides: dict[str, Any] | None = None,
    ) -> tuple[int, list[_Writeback]]:
        table = self.table(entity_map.entity_type)
        row = entity_map.to_row(entity, table)
        row.update(overrides or {})

        if entity_map.identity and not row.get(entity_map.identity):
            row.pop(entity_map.identity, None)
        for name in entity_map.key:
            if row.get(name) is None:
                row.pop(name, None)

        token = entity_map.concurrency_token
        if token and row.get(token) is None:
            row[token] = new_row_version()

        result = await self.session.execute(table.insert().values(**row))
        values = dict(
            zip(
                (column.name for column in table.primary_key.columns),
                result.inserted_primary_key,
            )
        )
        values.update(overrides or {})
        if token:
            values[token] = row[token]

        affected = 1
        writebacks: list[_Writeback] = [(entity, values)]

        for owned in entity_map.owned:
            child_map = self.model.entity_map(owned.entity_type)
            parent_value = values.get(
                owned.principal_key, getattr(entity, owned.principal_key)
            )
            for child in getattr(entity, owned.field):
                rows, child_writebacks = await self._insert(
                    child_map, child, {owned.foreign_key: parent_value}
                )
                affected += rows
                writebacks.extend(child_writebacks)

        return affected, writebacks

    async def _update(
        self,
        entity_map: EntityMap,
        entity: BaseModel,
        overrides: dict[str, Any] | None = None,
    ) -> tuple[int, list[_Writeback]]:
        table = self.table(entity_map.entity_type)
        keys = entity_map.key_of(entity)
        keys.update(
            (name, value) for name, value in (overrides or {}).items() if name in keys
        )
        criteria = [table.c[name] == value for name, value in keys.items()]

        row = entity_map.to_row(entity, table)
        row.update(overrides or {})
        for name in (*entity_map.key, *entity_map.insert_only):
            row.pop(name, None)

        values: dict[str, Any] = {}
        token = entity_map.concurrency_token
        if token:
            criteria.append(table.c[token] == getattr(entity, token))
            values[token] = row[token] = new_row_version()

        result = await self.session.execute(update(table).where(*criteria).values(**row))
        if result.rowcount == 0:
            raise ConcurrencyConflict(entity_map.entity_type, keys)

        affected = result.rowcount
        writebacks: list[_Writeback] = [(entity, values)] if values else []

        # Owned children are updated in place by key; adding or dropping
        # children goes through their own operations
        for owned in entity_map.owned:
            child_map = self.model.entity_map(owned.entity_type)
            parent_value = keys.get(
                owned.principal_key, getattr(entity, owned.principal_key)
            )
            for child in getattr(entity, owned.field):
                rows, child_writebacks = await self._update(
                    child_map, child, {owned.foreign_key: parent_value}
                )
                affected += rows
                writebacks.extend(child_writebacks)

        return affected, writebacks

    async def _delete(
        self, entity_map: EntityMap, entity: BaseModel
    ) -> tuple[int, list[_Writeback]]:
        table = self.table(entity_map.entity_type)
        criteria = self._key_criteria(entity_map, table, entity)

        token = entity_map.concurrency_token
        if token:
            criteria.append(table.c[token] == getattr(entity, token))

        affected = 0
        for owned in entity_map.owned:
            child_table = self.table(owned.entity_type)
            result = await self.session.execute(
                delete(child_table).where(
                    child_table.c[owned.foreign_key]
                    == getattr(entity, owned.principal_key)
                )
            )
            affected += result.rowcount

        result = await self.session.execute(delete(table).where(*criteria))
        if result.rowcount == 0:
            raise ConcurrencyConflict(entity_map.entity_type, entity_map.key_of(entity))

        return affected + result.rowcount, []

    @staticmethod
    def _key_criteria(entity_map: EntityMap, table: Table, entity: BaseModel) -> list:
        return [table.c[name] == getattr(entity, name) for name in entity_map.key]
