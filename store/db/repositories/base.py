"""
Base repository with the shared stage/commit operations.

Repositories hold a StoreDbContext instead of owning a session, so every
repository built on the same context takes part in the same unit of work.
"""

from datetime import datetime, timezone

from pydantic import BaseModel

from store.db.context import StoreDbContext
from store.models.base import AuditedModel
from store.models.user import UserInfo


class Repository:
    """
    Generic add/update/remove/commit over a StoreDbContext.

    Audited entities get their creation or last-update columns stamped
    with the current user before being staged.
    """

    def __init__(self, user_info: UserInfo, context: StoreDbContext):
        self.user_info = user_info
        self.context = context

    def add(self, entity: BaseModel) -> None:
        if isinstance(entity, AuditedModel):
            entity.creation_user = self.user_info.name
            entity.creation_date_time = datetime.now(timezone.utc)
        self.context.add(entity)

    def update(self, entity: BaseModel) -> None:
        if isinstance(entity, AuditedModel):
            entity.last_update_user = self.user_info.name
            entity.last_update_date_time = datetime.now(timezone.utc)
        self.context.update(entity)

    def remove(self, entity: BaseModel) -> None:
        self.context.remove(entity)

    async def commit_changes(self) -> int:
        """Commit staged changes and return the affected-row count."""
        return await self.context.commit()

    async def _add_and_commit(self, entity: BaseModel) -> int:
        self.add(entity)
        return await self.commit_changes()

    async def _update_and_commit(self, entity: BaseModel) -> int:
        self.update(entity)
        return await self.commit_changes()

    async def _remove_and_commit(self, entity: BaseModel) -> int:
        self.remove(entity)
        return await self.commit_changes()
