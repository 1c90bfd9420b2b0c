"""Enum definitions for application constants."""

from enum import Enum


class WorkspaceActivationStatus(str, Enum):
    """Lifecycle of a workspace (tenant)."""

    PENDING_CREATION = "pending_creation"
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class WorkspacePassStatus(str, Enum):
    """Status of one workspace during an enforcement run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class CorrectionAction(str, Enum):
    """What was done (or would be done) to a duplicate row."""

    RENAME = "rename"
    SOFT_DELETE = "soft_delete"
    SKIP = "skip"


DEFAULT_WORKSPACE_ACTIVATION_STATUS = WorkspaceActivationStatus.PENDING_CREATION.value
