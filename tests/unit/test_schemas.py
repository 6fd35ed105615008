import pytest

from render_rebuild.schemas import (
    Database,
    DatabaseSummary,
    DeployEvent,
    RebuildOutcome,
    RebuildReport,
    ServiceOutcome,
    ServiceResult,
)


def result(outcome: ServiceOutcome) -> ServiceResult:
    return ServiceResult(id=f"srv-{outcome.value}", outcome=outcome)


@pytest.mark.parametrize(
    ("outcomes", "expected"),
    [
        ([], RebuildOutcome.SUCCEEDED),
        ([ServiceOutcome.DEPLOYED, ServiceOutcome.DEPLOYED], RebuildOutcome.SUCCEEDED),
        ([ServiceOutcome.DEPLOYED, ServiceOutcome.SKIPPED], RebuildOutcome.PARTIAL),
        ([ServiceOutcome.ERROR, ServiceOutcome.NOT_DEPLOYED], RebuildOutcome.FAILED),
    ],
)
def test_summarize(outcomes, expected):
    assert RebuildReport.summarize([result(o) for o in outcomes]) == expected


def test_database_accepts_render_payload():
    database = Database.model_validate(
        {
            "id": "dpg-1",
            "name": "app-db",
            "status": "creating",
            "createdAt": "2026-03-01T12:00:00Z",
            "plan": "free",
            "region": "oregon",
            "databaseUser": "app",
        }
    )

    assert database.is_creating
    assert database.created_at.year == 2026  # noqa: PLR2004
    assert database.model_extra["databaseUser"] == "app"


def test_database_summary():
    database = Database(id="dpg-1", name="app-db", status="available")

    summary = DatabaseSummary.from_database(database)

    assert summary.model_dump(include={"id", "status", "type"}) == {
        "id": "dpg-1",
        "status": "available",
        "type": "PostgreSQL",
    }


def test_deploy_event_without_details():
    event = DeployEvent.model_validate({"type": "server_available"})

    assert event.details.status is None
    assert event.details.deploy_id is None
