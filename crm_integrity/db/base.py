from datetime import datetime

from sqlalchemy import DateTime, MetaData
from sqlalchemy.orm import DeclarativeBase

# Placeholder schema for workspace-scoped tables. Sessions opened through
# WorkspaceDataSourceManager translate it to the workspace's own schema.
WORKSPACE_SCHEMA = "workspace"


class Base(DeclarativeBase):
    """Base class for core (shared) SQLAlchemy models."""
    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class WorkspaceBase(DeclarativeBase):
    """Base class for models stored in a per-workspace schema."""
    metadata = MetaData(schema=WORKSPACE_SCHEMA)
    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }
