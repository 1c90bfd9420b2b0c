"""
Unique constraint enforcement across workspaces.

Some uniqueness rules are not enforced by the database (company domain,
person email, one view field / view sort per field and view). Before the
matching unique indexes can be created, existing duplicates have to be
neutralized in every workspace:

- Company / Person: the most recently created row keeps its value, the
  others get a numbered suffix.
- ViewField / ViewSort: the most recently created row stays live, the
  others are soft deleted.

Dry runs detect and log exactly the same corrections without writing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from crm_integrity.core.structured_logging import build_log_context
from crm_integrity.db.enums import CorrectionAction, WorkspacePassStatus
from crm_integrity.db.workspace_datasource import WorkspaceDataSourceManager, WorkspaceRepository
from crm_integrity.services import workspace_service

logger = logging.getLogger(__name__)


# ============================================================================
# Remediation strategies
# ============================================================================

def append_index_suffix(value: str, index: int) -> str:
    """acme.com -> acme.com1 for the second row, acme.com2 for the third."""
    return f"{value}{index}"


def append_email_plus_suffix(value: str, index: int) -> str | None:
    """a@b.com -> a+1@b.com. Returns None when the value has no domain part."""
    local, sep, domain = value.rpartition("@")
    if not sep:
        return None
    return f"{local}+{index}@{domain}"


@dataclass(frozen=True)
class SuffixRename:
    """Rewrite ``column`` on non-canonical rows with ``renamer(value, index)``."""

    column: str
    renamer: Callable[[str, int], str | None]


@dataclass(frozen=True)
class SoftDelete:
    """Soft delete non-canonical rows."""


Remediation = SuffixRename | SoftDelete


@dataclass(frozen=True)
class UniqueConstraintRule:
    """One uniqueness rule for one workspace entity."""

    entity_name: str  # Repository name, see WORKSPACE_ENTITIES
    label: str  # Used in log lines
    key_columns: tuple[str, ...]
    remediation: Remediation
    exclude_null_keys: bool = False  # Null never counts as a duplicate


# Order matters: passes run in this order for every workspace.
UNIQUE_CONSTRAINT_RULES: tuple[UniqueConstraintRule, ...] = (
    UniqueConstraintRule(
        entity_name="company",
        label="company",
        key_columns=("domain_name_primary_link_url",),
        remediation=SuffixRename("domain_name_primary_link_url", append_index_suffix),
        exclude_null_keys=True,
    ),
    UniqueConstraintRule(
        entity_name="person",
        label="person",
        key_columns=("emails_primary_email",),
        remediation=SuffixRename("emails_primary_email", append_email_plus_suffix),
        exclude_null_keys=True,
    ),
    UniqueConstraintRule(
        entity_name="viewField",
        label="ViewField",
        key_columns=("field_metadata_id", "view_id"),
        remediation=SoftDelete(),
    ),
    UniqueConstraintRule(
        entity_name="viewSort",
        label="ViewSort",
        key_columns=("field_metadata_id", "view_id"),
        remediation=SoftDelete(),
    ),
)


# ============================================================================
# Results
# ============================================================================

@dataclass(frozen=True)
class DuplicateGroup:
    """A uniqueness key shared by more than one live row."""

    key: dict[str, Any]
    count: int

    def describe(self) -> str:
        return " and ".join(f"{column} {value}" for column, value in self.key.items())


@dataclass(frozen=True)
class FieldCorrection:
    """A correction applied (or planned, in dry runs) to one duplicate row."""

    workspace_id: UUID
    entity: str
    record_id: UUID
    action: CorrectionAction
    old_value: str | None = None
    new_value: str | None = None
    applied: bool = False


@dataclass
class WorkspaceOutcome:
    """What happened to one workspace during a run."""

    workspace_id: UUID
    status: WorkspacePassStatus = WorkspacePassStatus.PENDING
    corrections: list[FieldCorrection] = field(default_factory=list)
    error: str | None = None
    resource_released: bool = False


@dataclass
class EnforcementSummary:
    """Outcomes of one run over all requested workspaces."""

    dry_run: bool
    outcomes: list[WorkspaceOutcome] = field(default_factory=list)

    @property
    def completed(self) -> list[WorkspaceOutcome]:
        return [o for o in self.outcomes if o.status == WorkspacePassStatus.COMPLETED]

    @property
    def failed(self) -> list[WorkspaceOutcome]:
        return [o for o in self.outcomes if o.status == WorkspacePassStatus.FAILED]

    @property
    def failed_workspace_ids(self) -> list[UUID]:
        return [o.workspace_id for o in self.failed]

    def _corrections(self) -> Iterator[FieldCorrection]:
        for outcome in self.outcomes:
            yield from outcome.corrections

    @property
    def corrections_applied(self) -> int:
        return sum(1 for c in self._corrections() if c.applied)

    @property
    def corrections_planned(self) -> int:
        """Corrections a dry run would have applied."""
        return sum(
            1
            for c in self._corrections()
            if not c.applied and c.action != CorrectionAction.SKIP
        )

    @property
    def corrections_skipped(self) -> int:
        return sum(1 for c in self._corrections() if c.action == CorrectionAction.SKIP)


# ============================================================================
# Detection
# ============================================================================

def find_duplicate_keys(
    repository: WorkspaceRepository,
    rule: UniqueConstraintRule,
) -> Iterator[DuplicateGroup]:
    """Yield every key value held by more than one live row."""
    model = repository.model
    criteria = [model.deleted_at.is_(None)]
    if rule.exclude_null_keys:
        criteria.extend(repository.column(name).is_not(None) for name in rule.key_columns)

    for row in repository.grouped_count(rule.key_columns, *criteria):
        mapping = row._mapping
        yield DuplicateGroup(
            key={name: mapping[name] for name in rule.key_columns},
            count=mapping["row_count"],
        )


def find_group_rows(repository: WorkspaceRepository, group: DuplicateGroup) -> list:
    """Live rows sharing ``group.key``, most recently created first."""
    model = repository.model
    criteria = [repository.column(name) == value for name, value in group.key.items()]
    return repository.find(
        *criteria,
        model.deleted_at.is_(None),
        order_by=(model.created_at.desc(), model.id),
    )


# ============================================================================
# Resolution
# ============================================================================

def resolve_duplicate_group(
    repository: WorkspaceRepository,
    rule: UniqueConstraintRule,
    group: DuplicateGroup,
    *,
    dry_run: bool,
) -> Iterator[FieldCorrection]:
    """
    Keep the newest row of ``group`` and remediate the others.

    Writes are committed one row at a time and skipped entirely in dry runs.
    Suffixed values are not checked against existing rows, so ``acme.com1``
    may collide with a company that already uses that domain.
    """
    workspace_id = repository.workspace_id
    rows = find_group_rows(repository, group)

    for index, record in enumerate(rows[1:], start=1):
        log_extra = build_log_context(
            workspace_id=str(workspace_id),
            entity=rule.entity_name,
            record_id=str(record.id),
            dry_run=dry_run,
        )
        remediation = rule.remediation

        if isinstance(remediation, SoftDelete):
            if not dry_run:
                repository.soft_delete(record.id)
            logger.info(
                "Soft deleted duplicate %s %s for %s",
                rule.label,
                record.id,
                group.describe(),
                extra=log_extra,
            )
            yield FieldCorrection(
                workspace_id=workspace_id,
                entity=rule.entity_name,
                record_id=record.id,
                action=CorrectionAction.SOFT_DELETE,
                applied=not dry_run,
            )
            continue

        old_value = getattr(record, remediation.column)
        new_value = remediation.renamer(old_value, index)
        if new_value is None:
            logger.warning(
                "Skipped %s %s: cannot disambiguate %s %r",
                rule.label,
                record.id,
                remediation.column,
                old_value,
                extra=log_extra,
            )
            yield FieldCorrection(
                workspace_id=workspace_id,
                entity=rule.entity_name,
                record_id=record.id,
                action=CorrectionAction.SKIP,
                old_value=old_value,
            )
            continue

        if not dry_run:
            repository.update(record.id, {remediation.column: new_value})
        logger.info(
            "Updated %s %s %s from %s to %s",
            rule.label,
            record.id,
            remediation.column,
            old_value,
            new_value,
            extra=log_extra,
        )
        yield FieldCorrection(
            workspace_id=workspace_id,
            entity=rule.entity_name,
            record_id=record.id,
            action=CorrectionAction.RENAME,
            old_value=old_value,
            new_value=new_value,
            applied=not dry_run,
        )


def enforce_unique_constraint(
    data_source_manager: WorkspaceDataSourceManager,
    workspace_id: UUID,
    rule: UniqueConstraintRule,
    *,
    dry_run: bool,
) -> Iterator[FieldCorrection]:
    """Detect and resolve every duplicate group of one rule in one workspace."""
    repository = data_source_manager.get_repository_for_workspace(workspace_id, rule.entity_name)
    for group in find_duplicate_keys(repository, rule):
        yield from resolve_duplicate_group(repository, rule, group, dry_run=dry_run)


def enforce_unique_constraints_for_workspace(
    data_source_manager: WorkspaceDataSourceManager,
    workspace_id: UUID,
    *,
    dry_run: bool,
    rules: Sequence[UniqueConstraintRule] = UNIQUE_CONSTRAINT_RULES,
) -> Iterator[FieldCorrection]:
    """Run every rule, in order, against one workspace."""
    for rule in rules:
        yield from enforce_unique_constraint(
            data_source_manager, workspace_id, rule, dry_run=dry_run
        )


# ============================================================================
# Orchestration
# ============================================================================

def process_workspace(
    data_source_manager: WorkspaceDataSourceManager,
    workspace_id: UUID,
    *,
    dry_run: bool,
    rules: Sequence[UniqueConstraintRule] = UNIQUE_CONSTRAINT_RULES,
) -> WorkspaceOutcome:
    """
    Run one workspace pass and always release its data source.

    A failure stops the remaining passes for this workspace only.
    Corrections committed before the failure are kept and reported.
    """
    outcome = WorkspaceOutcome(workspace_id=workspace_id)
    log_extra = build_log_context(workspace_id=str(workspace_id), dry_run=dry_run)
    logger.info("Running command for workspace %s", workspace_id, extra=log_extra)

    outcome.status = WorkspacePassStatus.RUNNING
    try:
        with data_source_manager.workspace_data_source(workspace_id):
            for correction in enforce_unique_constraints_for_workspace(
                data_source_manager, workspace_id, dry_run=dry_run, rules=rules
            ):
                outcome.corrections.append(correction)
        outcome.status = WorkspacePassStatus.COMPLETED
    except Exception as exc:
        outcome.status = WorkspacePassStatus.FAILED
        outcome.error = str(exc) or exc.__class__.__name__
        logger.exception(
            "Running command on workspace %s failed with error: %s",
            workspace_id,
            outcome.error,
            extra=log_extra,
        )
    outcome.resource_released = not data_source_manager.has_data_source(workspace_id)

    logger.info(
        "Finished running command for workspace %s (status=%s, corrections=%s)",
        workspace_id,
        outcome.status.value,
        len(outcome.corrections),
        extra=log_extra,
    )
    return outcome


def run(
    db: Session,
    data_source_manager: WorkspaceDataSourceManager,
    *,
    dry_run: bool = False,
    workspace_ids: Sequence[UUID] | None = None,
    rules: Sequence[UniqueConstraintRule] = UNIQUE_CONSTRAINT_RULES,
) -> EnforcementSummary:
    """
    Enforce unique constraints on every active workspace, one at a time.

    ``workspace_ids`` restricts the run to those workspaces (inactive ones
    are skipped). Workspace failures are logged and reported in the
    summary, never raised.
    """
    logger.info(
        "Running command to enforce unique constraints",
        extra=build_log_context(dry_run=dry_run),
    )
    summary = EnforcementSummary(dry_run=dry_run)

    for workspace_id in workspace_service.list_active_workspace_ids(db, workspace_ids):
        summary.outcomes.append(
            process_workspace(data_source_manager, workspace_id, dry_run=dry_run, rules=rules)
        )

    logger.info(
        "Command completed! workspaces=%s failed=%s",
        len(summary.outcomes),
        len(summary.failed),
        extra=build_log_context(dry_run=dry_run),
    )
    return summary
