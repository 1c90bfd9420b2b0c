import uuid

import pytest
from click.testing import CliRunner

from crm_integrity import cli as cli_module
from crm_integrity.db.models import Company, ViewField


@pytest.fixture(scope="function")
def runner(session_factory, db_engine, monkeypatch):
    monkeypatch.setattr(cli_module, "SessionLocal", session_factory)
    monkeypatch.setattr(cli_module, "engine", db_engine)
    return CliRunner()


def test_enforce_unique_constraints_dry_run(runner, active_workspace, seed_companies, load):
    older, _ = seed_companies(active_workspace, ("acme.com", 1), ("acme.com", 2))

    result = runner.invoke(cli_module.cli, ["enforce-unique-constraints", "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "DRY RUN" in result.output
    assert f"✓ {active_workspace.id}: 1 correction(s)" in result.output
    assert "acme.com → acme.com1" in result.output
    assert "Would apply 1 correction(s)" in result.output
    assert "Command completed" in result.output
    assert load(active_workspace, Company, older.id).domain_name_primary_link_url == "acme.com"


def test_enforce_unique_constraints_applies_for_selected_workspace(
    runner, create_workspace, seed_view_fields, load
):
    selected = create_workspace()
    other = create_workspace()
    field_id, view_id = uuid.uuid4(), uuid.uuid4()
    selected_old, _ = seed_view_fields(selected, (field_id, view_id, 1), (field_id, view_id, 2))
    other_old, _ = seed_view_fields(other, (field_id, view_id, 1), (field_id, view_id, 2))

    result = runner.invoke(
        cli_module.cli,
        ["enforce-unique-constraints", "-w", str(selected.id)],
    )

    assert result.exit_code == 0, result.output
    assert "soft deleted" in result.output
    assert "Applied 1 correction(s)" in result.output
    assert load(selected, ViewField, selected_old.id).deleted_at is not None
    assert load(other, ViewField, other_old.id).deleted_at is None


def test_enforce_unique_constraints_reports_failed_workspace(
    runner, active_workspace, seed_companies, monkeypatch
):
    seed_companies(active_workspace, ("acme.com", 1), ("acme.com", 2))

    from crm_integrity.db.workspace_datasource import WorkspaceDataSourceManager

    def broken(self, workspace_id, entity_name):
        raise ConnectionError("database unavailable")

    monkeypatch.setattr(WorkspaceDataSourceManager, "get_repository_for_workspace", broken)

    result = runner.invoke(cli_module.cli, ["enforce-unique-constraints"])

    assert result.exit_code == 0, result.output
    assert f"❌ {active_workspace.id}: database unavailable" in result.output
    assert "1 workspace(s) failed" in result.output
    assert "Command completed" in result.output


def test_enforce_unique_constraints_without_workspaces(runner):
    result = runner.invoke(cli_module.cli, ["enforce-unique-constraints"])

    assert result.exit_code == 0, result.output
    assert "No active workspaces" in result.output
    assert "Command completed" in result.output


def test_list_active_workspaces(runner, create_workspace):
    workspace = create_workspace()

    result = runner.invoke(cli_module.cli, ["list-active-workspaces"])

    assert result.exit_code == 0, result.output
    assert "Found 1 active workspace(s)" in result.output
    assert str(workspace.id) in result.output
