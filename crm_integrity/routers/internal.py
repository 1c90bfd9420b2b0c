"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from external cron or a deploy hook.
"""
from uuid import UUID

from fastapi import APIRouter, Header, HTTPException, Query
from pydantic import BaseModel

from crm_integrity.core.config import settings
from crm_integrity.db.session import SessionLocal, engine
from crm_integrity.db.workspace_datasource import WorkspaceDataSourceManager
from crm_integrity.services import unique_constraint_service


router = APIRouter(prefix="/internal/scheduled", tags=["internal"])


def verify_internal_secret(x_internal_secret: str = Header(...)):
    """Verify the internal secret header."""
    expected = settings.INTERNAL_SECRET
    if not expected:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if x_internal_secret != expected:
        raise HTTPException(status_code=403, detail="Invalid internal secret")


def get_data_source_manager() -> WorkspaceDataSourceManager:
    return WorkspaceDataSourceManager(engine)


class UniqueConstraintEnforcementResponse(BaseModel):
    dry_run: bool
    workspaces_processed: int
    workspaces_failed: int
    corrections_applied: int
    corrections_planned: int
    corrections_skipped: int
    failed_workspace_ids: list[UUID]


@router.post(
    "/enforce-unique-constraints",
    response_model=UniqueConstraintEnforcementResponse,
)
def enforce_unique_constraints(
    x_internal_secret: str = Header(...),
    dry_run: bool = Query(True, description="Detect and log only, write nothing"),
):
    """
    Sweep every active workspace for duplicate company domains, person
    emails, view fields and view sorts.

    Defaults to a dry run; pass dry_run=false to apply corrections.
    """
    verify_internal_secret(x_internal_secret)

    with SessionLocal() as db:
        summary = unique_constraint_service.run(
            db,
            get_data_source_manager(),
            dry_run=dry_run,
        )

    return UniqueConstraintEnforcementResponse(
        dry_run=summary.dry_run,
        workspaces_processed=len(summary.outcomes),
        workspaces_failed=len(summary.failed),
        corrections_applied=summary.corrections_applied,
        corrections_planned=summary.corrections_planned,
        corrections_skipped=summary.corrections_skipped,
        failed_workspace_ids=summary.failed_workspace_ids,
    )
