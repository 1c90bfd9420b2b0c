"""SQLAlchemy models for the core schema and workspace schemas."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Index, Integer, String, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from crm_integrity.db.base import Base, WorkspaceBase
from crm_integrity.db.enums import DEFAULT_WORKSPACE_ACTIVATION_STATUS


# =============================================================================
# Core schema
# =============================================================================

class Workspace(Base):
    """
    A tenant in the multi-tenant system.

    Every workspace owns an isolated schema holding its companies, people
    and views. Nothing in a workspace schema references another workspace.
    """

    __tablename__ = "workspaces"
    __table_args__ = (
        Index("ix_workspaces_activation_status", "activation_status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    activation_status: Mapped[str] = mapped_column(
        String(30),
        default=DEFAULT_WORKSPACE_ACTIVATION_STATUS,
        server_default=text(f"'{DEFAULT_WORKSPACE_ACTIVATION_STATUS}'"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)


# =============================================================================
# Workspace schema
# =============================================================================

class Company(WorkspaceBase):
    """A company record. Primary domain must be unique among live rows."""

    __tablename__ = "company"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    domain_name_primary_link_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)


class Person(WorkspaceBase):
    """A person record. Primary email must be unique among live rows."""

    __tablename__ = "person"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name_first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name_last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    emails_primary_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)


class ViewField(WorkspaceBase):
    """A field shown in a view. One live row per (field_metadata_id, view_id)."""

    __tablename__ = "view_field"
    __table_args__ = (
        Index("ix_view_field_view_id_field_metadata_id", "view_id", "field_metadata_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    field_metadata_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    view_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, server_default=text("0"), nullable=False)
    is_visible: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=text("true"), nullable=False
    )
    size: Mapped[int] = mapped_column(Integer, default=0, server_default=text("0"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)


class ViewSort(WorkspaceBase):
    """A sort applied to a view. One live row per (field_metadata_id, view_id)."""

    __tablename__ = "view_sort"
    __table_args__ = (
        Index("ix_view_sort_view_id_field_metadata_id", "view_id", "field_metadata_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    field_metadata_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    view_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    direction: Mapped[str] = mapped_column(
        String(4), default="asc", server_default=text("'asc'"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)


# Entity names accepted by WorkspaceDataSourceManager.get_repository_for_workspace
WORKSPACE_ENTITIES: dict[str, type[WorkspaceBase]] = {
    "company": Company,
    "person": Person,
    "viewField": ViewField,
    "viewSort": ViewSort,
}
