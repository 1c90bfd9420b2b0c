"""
Test configuration and fixtures.

Provides:
- In-memory SQLite engine with the core schema created
- One attached in-memory database per workspace, so workspace sessions go
  through the same schema translation they use on PostgreSQL
- Helpers to seed workspace rows
"""
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Generator

# Settings are read at import time; point them at SQLite before importing the app.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("ENV", "test")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from crm_integrity.db.base import Base, WorkspaceBase
from crm_integrity.db.enums import WorkspaceActivationStatus
from crm_integrity.db.models import Company, Person, ViewField, ViewSort, Workspace
from crm_integrity.db.workspace_datasource import WorkspaceDataSourceManager


BASE_TIME = datetime(2024, 9, 1, 12, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    """Timestamp ``minutes`` after BASE_TIME; larger means more recently created."""
    return BASE_TIME + timedelta(minutes=minutes)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db_engine() -> Generator[Engine, None, None]:
    """Single-connection in-memory engine; attached workspace databases live on it."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Core-schema session."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(scope="function")
def data_source_manager(db_engine: Engine) -> WorkspaceDataSourceManager:
    return WorkspaceDataSourceManager(db_engine)


# =============================================================================
# Workspace Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def create_workspace(db: Session, db_engine: Engine, data_source_manager: WorkspaceDataSourceManager):
    """Factory creating a workspace row plus its attached schema."""
    created = 0

    def _create(
        status: WorkspaceActivationStatus = WorkspaceActivationStatus.ACTIVE,
        display_name: str | None = None,
    ) -> Workspace:
        nonlocal created
        created += 1
        workspace = Workspace(
            id=uuid.uuid4(),
            display_name=display_name or f"Workspace {created}",
            activation_status=status.value,
            created_at=at(created),
            updated_at=at(created),
        )
        db.add(workspace)
        db.commit()

        schema = data_source_manager.get_schema_name(workspace.id)
        with db_engine.connect() as conn:
            conn.exec_driver_sql(f"ATTACH DATABASE ':memory:' AS {schema}")
            conn.commit()
        WorkspaceBase.metadata.create_all(
            data_source_manager.get_engine_for_workspace(workspace.id)
        )
        return workspace

    return _create


@pytest.fixture(scope="function")
def active_workspace(create_workspace) -> Workspace:
    return create_workspace()


@pytest.fixture(scope="function")
def workspace_session(data_source_manager: WorkspaceDataSourceManager):
    """Open an independent session on a workspace schema (for seeding/asserting)."""
    sessions: list[Session] = []

    def _open(workspace: Workspace) -> Session:
        session = Session(
            bind=data_source_manager.get_engine_for_workspace(workspace.id),
            autoflush=False,
        )
        sessions.append(session)
        return session

    yield _open

    for session in sessions:
        session.close()


@pytest.fixture(scope="function")
def seed(workspace_session):
    """Insert workspace rows and commit. Returns the rows, ids loaded."""

    def _seed(workspace: Workspace, *rows):
        session = workspace_session(workspace)
        session.add_all(rows)
        session.commit()
        for row in rows:
            session.refresh(row)
        session.close()
        return rows

    return _seed


@pytest.fixture(scope="function")
def seed_companies(seed):
    """seed_companies(workspace, ("acme.com", 1[, deleted]), ...) -> companies in argument order."""

    def _seed_companies(workspace: Workspace, *specs) -> list[Company]:
        rows = [
            Company(
                id=uuid.uuid4(),
                name=domain or "No domain",
                domain_name_primary_link_url=domain,
                created_at=at(minutes),
                updated_at=at(minutes),
                deleted_at=BASE_TIME if any(deleted) else None,
            )
            for domain, minutes, *deleted in specs
        ]
        return list(seed(workspace, *rows))

    return _seed_companies


@pytest.fixture(scope="function")
def seed_people(seed):
    """seed_people(workspace, ("a@b.com", 1), ...) -> people in argument order."""

    def _seed_people(workspace: Workspace, *specs) -> list[Person]:
        rows = [
            Person(
                id=uuid.uuid4(),
                name_first_name="Test",
                name_last_name="Person",
                emails_primary_email=email,
                created_at=at(minutes),
                updated_at=at(minutes),
                deleted_at=BASE_TIME if any(deleted) else None,
            )
            for email, minutes, *deleted in specs
        ]
        return list(seed(workspace, *rows))

    return _seed_people


@pytest.fixture(scope="function")
def seed_view_fields(seed):
    """seed_view_fields(workspace, (field_metadata_id, view_id, minutes), ...)."""

    def _seed_view_fields(workspace: Workspace, *specs) -> list[ViewField]:
        rows = [
            ViewField(
                id=uuid.uuid4(),
                field_metadata_id=field_metadata_id,
                view_id=view_id,
                position=index,
                created_at=at(minutes),
                updated_at=at(minutes),
                deleted_at=BASE_TIME if any(deleted) else None,
            )
            for index, (field_metadata_id, view_id, minutes, *deleted) in enumerate(specs)
        ]
        return list(seed(workspace, *rows))

    return _seed_view_fields


@pytest.fixture(scope="function")
def seed_view_sorts(seed):
    """seed_view_sorts(workspace, (field_metadata_id, view_id, minutes), ...)."""

    def _seed_view_sorts(workspace: Workspace, *specs) -> list[ViewSort]:
        rows = [
            ViewSort(
                id=uuid.uuid4(),
                field_metadata_id=field_metadata_id,
                view_id=view_id,
                direction="asc",
                created_at=at(minutes),
                updated_at=at(minutes),
                deleted_at=BASE_TIME if any(deleted) else None,
            )
            for field_metadata_id, view_id, minutes, *deleted in specs
        ]
        return list(seed(workspace, *rows))

    return _seed_view_sorts


@pytest.fixture(scope="function")
def load(workspace_session):
    """load(workspace, Model, id) -> fresh row read back from the workspace schema."""

    def _load(workspace: Workspace, model, record_id):
        session = workspace_session(workspace)
        row = session.get(model, record_id, populate_existing=True)
        session.expunge_all()
        return row

    return _load
