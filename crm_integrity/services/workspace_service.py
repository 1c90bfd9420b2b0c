"""Workspace service - tenant lookup for maintenance commands."""

import logging
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from crm_integrity.db.enums import WorkspaceActivationStatus
from crm_integrity.db.models import Workspace

logger = logging.getLogger(__name__)


def get_workspace_by_id(db: Session, workspace_id: UUID) -> Workspace | None:
    """Get workspace by ID."""
    return db.query(Workspace).filter(Workspace.id == workspace_id).first()


def list_active_workspace_ids(
    db: Session,
    workspace_ids: Sequence[UUID] | None = None,
) -> list[UUID]:
    """
    Return the ids of active, non-deleted workspaces.

    Without ``workspace_ids`` every active workspace is returned, oldest
    first. With ``workspace_ids`` only those that are active are returned,
    in the order given; the others are logged and left out.
    """
    query = db.query(Workspace.id).filter(
        Workspace.activation_status == WorkspaceActivationStatus.ACTIVE.value,
        Workspace.deleted_at.is_(None),
    )

    if not workspace_ids:
        rows = query.order_by(Workspace.created_at, Workspace.id).all()
        return [row.id for row in rows]

    requested = list(dict.fromkeys(workspace_ids))
    active = {row.id for row in query.filter(Workspace.id.in_(requested)).all()}
    for workspace_id in requested:
        if workspace_id not in active:
            logger.warning("Workspace %s not found or not active, skipping", workspace_id)
    return [workspace_id for workspace_id in requested if workspace_id in active]
