"""Service layer modules."""

from crm_integrity.services.workspace_service import (
    get_workspace_by_id,
    list_active_workspace_ids,
)
from crm_integrity.services.unique_constraint_service import (
    UNIQUE_CONSTRAINT_RULES,
    EnforcementSummary,
    run as enforce_unique_constraints,
)
