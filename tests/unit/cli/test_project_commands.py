"""Unit tests for project commands with a mocked API client."""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from vadis_intake.cli.main import app
from vadis_intake.contracts.project import (
    ProjectDTO,
    ProjectStatus,
    ProjectUpdate,
    WorkflowStep,
)
from vadis_intake.errors import APIError

runner = CliRunner()

CREATE_ARGS = [
    "project",
    "create",
    "--title",
    "Ocean's Edge",
    "--logline",
    "A lighthouse keeper finds letters from a drowned future.",
    "--budget-range",
    "1m-5m",
    "--funding-goal",
    "250000",
    "--timeline",
    "12 months",
]


@pytest.fixture(autouse=True)
def quiet_logs(monkeypatch):
    monkeypatch.setenv("VADIS_LOG_LEVEL", "ERROR")


@pytest.fixture
def cli_api(mock_api):
    with patch("vadis_intake.cli.commands.project.get_api_client", return_value=mock_api):
        yield mock_api


@pytest.fixture
def script_pdf(tmp_path):
    path = tmp_path / "oceans_edge.pdf"
    path.write_bytes(b"%PDF-1.4\n" + b"0" * 512)
    return path


class TestCreate:
    def test_create_json(self, cli_api, script_pdf):
        result = runner.invoke(app, [*CREATE_ARGS, "--script", str(script_pdf), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["id"] == 42
        draft, script_file = cli_api.create_project.await_args.args
        assert draft.funding_goal == 250_000
        assert script_file.filename == "oceans_edge.pdf"
        cli_api.close.assert_awaited_once()

    def test_create_prints_summary(self, cli_api, script_pdf):
        result = runner.invoke(app, [*CREATE_ARGS, "--script", str(script_pdf)])

        assert result.exit_code == 0
        assert "Project created successfully" in result.stdout
        assert "42" in result.stdout

    def test_missing_logline_is_reported(self, cli_api):
        result = runner.invoke(app, ["project", "create", "--title", "Ocean's Edge"])

        assert result.exit_code == 1
        assert "logline required" in result.stdout
        cli_api.create_project.assert_not_awaited()

    def test_script_required_for_script_analysis(self, cli_api):
        result = runner.invoke(app, CREATE_ARGS)

        assert result.exit_code == 1
        assert "script file required" in result.stdout

    def test_created_project_step_is_saved(self, cli_api, script_pdf):
        result = runner.invoke(app, [*CREATE_ARGS, "--script", str(script_pdf)])

        assert result.exit_code == 0
        cli_api.save_workflow_step.assert_awaited_once_with(
            42, WorkflowStep.ANALYSIS, {"flow": "script_analysis"}
        )

    def test_failed_step_save_keeps_created_project(self, cli_api, script_pdf):
        cli_api.save_workflow_step.side_effect = APIError("Workflow store down", status_code=503)

        result = runner.invoke(app, [*CREATE_ARGS, "--script", str(script_pdf), "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["id"] == 42

    def test_oversized_script_rejected(self, cli_api, script_pdf, monkeypatch):
        monkeypatch.setenv("VADIS_MAX_SCRIPT_BYTES", "100")

        result = runner.invoke(app, [*CREATE_ARGS, "--script", str(script_pdf)])

        assert result.exit_code == 1
        assert "too-large" in result.stdout
        cli_api.create_project.assert_not_awaited()

    def test_non_pdf_rejected(self, cli_api, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("INT. LIGHTHOUSE - NIGHT")

        result = runner.invoke(app, [*CREATE_ARGS, "--script", str(notes)])

        assert result.exit_code == 1
        assert "invalid-type" in result.stdout

    def test_project_workflow_without_script(self, cli_api):
        result = runner.invoke(
            app, ["project", "create", "--title", "Night Train", "--flow", "project_workflow"]
        )

        assert result.exit_code == 0
        draft, script_file = cli_api.create_project.await_args.args
        assert draft.project_type == "project_workflow"
        assert script_file is None

    def test_server_message_shown_verbatim(self, cli_api, script_pdf):
        cli_api.create_project.side_effect = APIError("Title already taken", status_code=409)

        result = runner.invoke(app, [*CREATE_ARGS, "--script", str(script_pdf)])

        assert result.exit_code == 1
        assert "Error:" in result.stdout
        assert "Title already taken" in result.stdout

    def test_unknown_flow(self, cli_api):
        result = runner.invoke(app, ["project", "create", "--title", "X", "--flow", "wizard"])

        assert result.exit_code == 1
        assert "Unknown intake flow" in result.stdout


class TestShowUpdateFinalize:
    def test_show_json(self, cli_api):
        result = runner.invoke(app, ["project", "show", "42", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["title"] == "Ocean's Edge"
        cli_api.get_project.assert_awaited_once_with(42)

    def test_show_table(self, cli_api):
        result = runner.invoke(app, ["project", "show", "42"])

        assert result.exit_code == 0
        assert "Ocean's Edge" in result.stdout
        assert "draft" in result.stdout

    def test_show_not_found(self, cli_api):
        cli_api.get_project.side_effect = APIError("Project not found", status_code=404)

        result = runner.invoke(app, ["project", "show", "999"])

        assert result.exit_code == 1
        assert "Project not found" in result.stdout

    def test_update_sends_only_given_fields(self, cli_api):
        cli_api.update_project.return_value = ProjectDTO(
            id=42, title="Ocean's Edge", status=ProjectStatus.IN_PROGRESS
        )

        result = runner.invoke(app, ["project", "update", "42", "--status", "in_progress"])

        assert result.exit_code == 0
        cli_api.update_project.assert_awaited_once_with(
            42, ProjectUpdate(status=ProjectStatus.IN_PROGRESS)
        )

    def test_update_validates_before_sending(self, cli_api):
        result = runner.invoke(app, ["project", "update", "42", "--funding-goal", "10"])

        assert result.exit_code == 1
        cli_api.update_project.assert_not_awaited()

    def test_update_without_changes(self, cli_api):
        result = runner.invoke(app, ["project", "update", "42"])

        assert result.exit_code == 1
        assert "nothing to update" in result.stdout

    def test_finalize_and_publish(self, cli_api):
        cli_api.finalize_project.return_value = ProjectDTO(
            id=42, title="Ocean's Edge", status=ProjectStatus.PUBLISHED, is_published=True
        )

        result = runner.invoke(app, ["project", "finalize", "42", "--publish"])

        assert result.exit_code == 0
        assert "finalized" in result.stdout
        cli_api.finalize_project.assert_awaited_once_with(42, True)
