"""
Per-workspace data access.

Each workspace keeps its rows in its own schema. Workspace models are
declared in the placeholder schema ``workspace`` and every session handed
out here is bound to an engine that translates that placeholder to the
workspace's real schema, so a session can never reach another tenant.

Sessions are opened lazily, cached per workspace, and must be released
with ``destroy_data_source_for_workspace`` once the workspace is done.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.engine import Engine, Row
from sqlalchemy.orm import Session, sessionmaker

from crm_integrity.core.config import settings
from crm_integrity.db.base import WORKSPACE_SCHEMA, WorkspaceBase
from crm_integrity.db.models import WORKSPACE_ENTITIES

logger = logging.getLogger(__name__)

_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


class UnknownWorkspaceEntityError(ValueError):
    """Raised when a repository is requested for an entity that doesn't exist."""

    def __init__(self, entity_name: str):
        self.entity_name = entity_name
        super().__init__(f"Unknown workspace entity: {entity_name}")


def uuid_to_base36(value: UUID) -> str:
    """Encode a UUID as a compact lowercase base36 string."""
    number = value.int
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def get_workspace_schema_name(workspace_id: UUID, prefix: str | None = None) -> str:
    """Return the schema name holding a workspace's data."""
    if prefix is None:
        prefix = settings.WORKSPACE_SCHEMA_PREFIX
    return f"{prefix}{uuid_to_base36(workspace_id)}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkspaceRepository:
    """Query/update handle for one entity inside one workspace schema."""

    def __init__(self, session: Session, model: type[WorkspaceBase], workspace_id: UUID):
        self.session = session
        self.model = model
        self.workspace_id = workspace_id

    def column(self, name: str):
        return getattr(self.model, name)

    def grouped_count(
        self,
        columns: Sequence[str],
        *criteria,
        min_count: int = 2,
    ) -> Iterator[Row]:
        """
        Group rows matching ``criteria`` by ``columns``.

        Yields rows exposing the grouped columns plus ``row_count`` for
        every group with at least ``min_count`` members.
        """
        group_columns = [self.column(name) for name in columns]
        row_count = func.count().label("row_count")
        stmt = (
            select(*group_columns, row_count)
            .where(*criteria)
            .group_by(*group_columns)
            .having(func.count() >= min_count)
        )
        # Buffered: callers commit corrections while iterating.
        yield from self.session.execute(stmt).all()

    def find(self, *criteria, order_by: Sequence[Any] = ()) -> list[WorkspaceBase]:
        """Return the rows matching ``criteria`` in the requested order."""
        stmt = select(self.model).where(*criteria).order_by(*order_by)
        return list(self.session.scalars(stmt).all())

    def update(self, record_id: UUID, values: dict[str, Any]) -> int:
        """Update one row and commit. Returns the number of rows touched."""
        stmt = (
            update(self.model)
            .where(self.model.id == record_id)
            .values(**values, updated_at=_utcnow())
        )
        result = self.session.execute(stmt)
        self.session.commit()
        return result.rowcount

    def soft_delete(self, record_id: UUID) -> int:
        """Mark one live row as deleted and commit."""
        now = _utcnow()
        stmt = (
            update(self.model)
            .where(self.model.id == record_id, self.model.deleted_at.is_(None))
            .values(deleted_at=now, updated_at=now)
        )
        result = self.session.execute(stmt)
        self.session.commit()
        return result.rowcount


class WorkspaceDataSourceManager:
    """Hands out workspace-scoped sessions and repositories."""

    def __init__(self, engine: Engine, schema_prefix: str | None = None):
        self._engine = engine
        self._schema_prefix = schema_prefix
        self._session_factory = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False
        )
        self._sessions: dict[UUID, Session] = {}

    def get_schema_name(self, workspace_id: UUID) -> str:
        return get_workspace_schema_name(workspace_id, self._schema_prefix)

    def get_engine_for_workspace(self, workspace_id: UUID) -> Engine:
        """Engine sharing the core pool, with the workspace schema translated."""
        return self._engine.execution_options(
            schema_translate_map={WORKSPACE_SCHEMA: self.get_schema_name(workspace_id)}
        )

    def get_session_for_workspace(self, workspace_id: UUID) -> Session:
        session = self._sessions.get(workspace_id)
        if session is None:
            session = self._session_factory(bind=self.get_engine_for_workspace(workspace_id))
            self._sessions[workspace_id] = session
            logger.debug("Opened data source for workspace %s", workspace_id)
        return session

    def get_repository_for_workspace(
        self, workspace_id: UUID, entity_name: str
    ) -> WorkspaceRepository:
        """
        Return a repository for ``entity_name`` scoped to one workspace.

        Raises:
            UnknownWorkspaceEntityError: If the entity name is not registered
        """
        model = WORKSPACE_ENTITIES.get(entity_name)
        if model is None:
            raise UnknownWorkspaceEntityError(entity_name)
        return WorkspaceRepository(
            self.get_session_for_workspace(workspace_id), model, workspace_id
        )

    def has_data_source(self, workspace_id: UUID) -> bool:
        return workspace_id in self._sessions

    def destroy_data_source_for_workspace(self, workspace_id: UUID) -> None:
        """Close the workspace session; uncommitted work is rolled back."""
        session = self._sessions.pop(workspace_id, None)
        if session is None:
            return
        session.close()
        logger.debug("Released data source for workspace %s", workspace_id)

    @contextmanager
    def workspace_data_source(self, workspace_id: UUID) -> Iterator[WorkspaceDataSourceManager]:
        """Scope a block of work to one workspace, releasing it on every exit path."""
        try:
            yield self
        finally:
            self.destroy_data_source_for_workspace(workspace_id)
