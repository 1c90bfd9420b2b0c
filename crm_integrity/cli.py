"""CLI tools for CRM data maintenance."""

import click

from crm_integrity.core.structured_logging import configure_logging
from crm_integrity.db.enums import CorrectionAction, WorkspacePassStatus
from crm_integrity.db.session import SessionLocal, engine
from crm_integrity.db.workspace_datasource import WorkspaceDataSourceManager


@click.group()
def cli():
    """CRM maintenance CLI tools."""
    configure_logging()


@cli.command()
def list_active_workspaces():
    """
    List the workspaces maintenance commands will run against.

    Example:
        python -m crm_integrity.cli list-active-workspaces
    """
    from crm_integrity.services import workspace_service

    db = SessionLocal()
    try:
        workspace_ids = workspace_service.list_active_workspace_ids(db)
        click.echo(f"Found {len(workspace_ids)} active workspace(s)")
        for workspace_id in workspace_ids:
            click.echo(f"  {workspace_id}")
    finally:
        db.close()


@cli.command()
@click.option("--dry-run", is_flag=True, help="Preview corrections without applying")
@click.option(
    "--workspace-id",
    "-w",
    "workspace_ids",
    multiple=True,
    type=click.UUID,
    help="Only run on this workspace (repeatable). Defaults to all active workspaces.",
)
def enforce_unique_constraints(dry_run: bool, workspace_ids: tuple):
    """
    Enforce unique constraints on company domain, person email, ViewField and ViewSort.

    For every duplicate, the most recently created row is kept. Older
    companies get a numbered domain suffix, older people a +N email
    alias, and older view fields / view sorts are soft deleted.

    Run before adding the matching unique indexes.

    Example:
        python -m crm_integrity.cli enforce-unique-constraints --dry-run
        python -m crm_integrity.cli enforce-unique-constraints -w <workspace-id>
    """
    from crm_integrity.services import unique_constraint_service

    if dry_run:
        click.echo("🔍 DRY RUN - no changes will be made")
        click.echo()

    db = SessionLocal()
    try:
        summary = unique_constraint_service.run(
            db,
            WorkspaceDataSourceManager(engine),
            dry_run=dry_run,
            workspace_ids=list(workspace_ids) or None,
        )
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise
    finally:
        db.close()

    if not summary.outcomes:
        click.echo("✓ No active workspaces to process")

    for outcome in summary.outcomes:
        if outcome.status == WorkspacePassStatus.COMPLETED:
            click.echo(
                f"✓ {outcome.workspace_id}: {len(outcome.corrections)} correction(s)"
            )
        else:
            click.echo(f"❌ {outcome.workspace_id}: {outcome.error}")
        for correction in outcome.corrections:
            if correction.action == CorrectionAction.RENAME:
                click.echo(
                    f"  {correction.entity} {correction.record_id}: "
                    f"{correction.old_value} → {correction.new_value}"
                )
            elif correction.action == CorrectionAction.SOFT_DELETE:
                click.echo(f"  {correction.entity} {correction.record_id}: soft deleted")
            else:
                click.echo(
                    f"  {correction.entity} {correction.record_id}: skipped ({correction.old_value})"
                )

    click.echo()
    verb = "would apply" if dry_run else "applied"
    total = summary.corrections_planned if dry_run else summary.corrections_applied
    click.echo(f"✓ {verb.capitalize()} {total} correction(s)")
    if summary.failed:
        click.echo(f"❌ {len(summary.failed)} workspace(s) failed")
    click.echo("✓ Command completed")


if __name__ == "__main__":
    cli()
