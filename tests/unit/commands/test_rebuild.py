import json
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from render_rebuild.errors import AbortReason, ConfigurationError, RebuildAborted
from render_rebuild.main import app
from render_rebuild.schemas import (
    DatabaseSummary,
    RebuildOutcome,
    RebuildReport,
    ServiceOutcome,
    ServiceResult,
)

runner = CliRunner()


def make_report(outcome: RebuildOutcome = RebuildOutcome.SUCCEEDED) -> RebuildReport:
    return RebuildReport(
        outcome=outcome,
        database=DatabaseSummary(id="db-1", name="app-db", status="available"),
        services=[ServiceResult(id="srv-1", name="api", outcome=ServiceOutcome.DEPLOYED)],
    )


@pytest.fixture(autouse=True)
def cli_env(settings):
    with (
        patch("render_rebuild.main.setup_logging"),
        patch("render_rebuild.main.get_settings", return_value=settings),
        patch("render_rebuild.commands.rebuild.get_settings", return_value=settings),
    ):
        yield


@pytest.fixture
def mock_run_rebuild():
    with patch("render_rebuild.commands.rebuild.run_rebuild", new_callable=AsyncMock) as mock:
        yield mock


def test_rebuild_success(mock_run_rebuild):
    mock_run_rebuild.return_value = make_report()

    result = runner.invoke(app, ["rebuild", "--yes"])

    assert result.exit_code == 0, result.output
    assert "srv-1" in result.output
    assert "Deployed" in result.output
    mock_run_rebuild.assert_awaited_once()


def test_rebuild_json_output(mock_run_rebuild):
    mock_run_rebuild.return_value = make_report()

    result = runner.invoke(app, ["rebuild", "--yes", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["database"] == {
        "id": "db-1",
        "name": "app-db",
        "status": "available",
        "type": "PostgreSQL",
        "created_at": None,
    }
    assert data["services"][0]["outcome"] == "Deployed"


def test_rebuild_requires_confirmation(mock_run_rebuild):
    result = runner.invoke(app, ["rebuild"], input="n\n")

    assert result.exit_code == 1
    mock_run_rebuild.assert_not_awaited()


def test_rebuild_partial_exits_nonzero(mock_run_rebuild):
    mock_run_rebuild.return_value = make_report(RebuildOutcome.PARTIAL)

    result = runner.invoke(app, ["rebuild", "--yes"])

    assert result.exit_code == 1
    assert "partial" in result.output


def test_rebuild_lists_missing_settings(mock_run_rebuild):
    mock_run_rebuild.side_effect = ConfigurationError(["database_name", "region"])

    result = runner.invoke(app, ["rebuild", "--yes"])

    assert result.exit_code == 2  # noqa: PLR2004
    assert "database_name" in result.output
    assert "region" in result.output


def test_rebuild_aborted(mock_run_rebuild):
    mock_run_rebuild.side_effect = RebuildAborted(AbortReason.DELETION_FAILED, "status 500")

    result = runner.invoke(app, ["rebuild", "--yes"])

    assert result.exit_code == 1
    assert "DeletionFailed" in result.output


def test_missing_settings_reported_before_confirmation(settings, mock_run_rebuild):
    settings = settings.model_copy(update={"database_name": None})
    with patch("render_rebuild.commands.rebuild.get_settings", return_value=settings):
        result = runner.invoke(app, ["rebuild"])

    assert result.exit_code == 2  # noqa: PLR2004
    assert "database_name" in result.output
    assert "Continue?" not in result.output
    mock_run_rebuild.assert_not_awaited()
