"""Structured logging helpers."""

import logging
from typing import Any

from crm_integrity.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_log_context(
    *,
    workspace_id: str | None = None,
    entity: str | None = None,
    record_id: str | None = None,
    dry_run: bool | None = None,
) -> dict[str, Any]:
    """Return a log context dict with only the provided fields."""
    context: dict[str, Any] = {}
    if workspace_id:
        context["workspace_id"] = workspace_id
    if entity:
        context["entity"] = entity
    if record_id:
        context["record_id"] = record_id
    if dry_run is not None:
        context["dry_run"] = dry_run
    return context


def configure_logging(level: int | None = None) -> None:
    """Configure root logging for CLI and worker entry points."""
    logging.basicConfig(
        level=level if level is not None else settings.log_level_value,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
