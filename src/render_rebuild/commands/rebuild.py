import asyncio
import json

from rich.console import Console
from rich.table import Table
import typer

from render_rebuild.config import Settings, get_settings
from render_rebuild.errors import ConfigurationError, RebuildError
from render_rebuild.orchestrator import RebuildOrchestrator
from render_rebuild.schemas import RebuildOutcome, RebuildReport, ServiceOutcome

console = Console()

OUTCOME_STYLES = {
    ServiceOutcome.DEPLOYED: "green",
    ServiceOutcome.NOT_DEPLOYED: "red",
    ServiceOutcome.ERROR: "red",
    ServiceOutcome.SKIPPED: "yellow",
}


async def run_rebuild(settings: Settings) -> RebuildReport:
    """
    Async implementation of rebuild
    """
    orchestrator = RebuildOrchestrator(settings)
    return await orchestrator.rebuild()


def print_report(report: RebuildReport) -> None:
    db = report.database
    console.print(
        f"Database: [cyan]{db.name}[/cyan] ({db.id}) is [bold green]{db.status}[/bold green]"
    )

    table = Table(title="Services")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Outcome")
    table.add_column("Error", overflow="fold")
    for result in report.services:
        style = OUTCOME_STYLES[result.outcome]
        table.add_row(
            result.id,
            result.name or "",
            f"[{style}]{result.outcome.value}[/{style}]",
            result.error or "",
        )
    console.print(table)

    if report.outcome == RebuildOutcome.SUCCEEDED:
        console.print("[bold green]✓ Rebuild complete[/bold green]")
    else:
        console.print(f"[bold yellow]Rebuild finished: {report.outcome.value}[/bold yellow]")


def print_missing(missing: list[str]) -> None:
    console.print(
        "[bold yellow]The following settings still don't have a value:[/bold yellow] "
        + ", ".join(f"[red]{name}[/red]" for name in missing)
    )
    console.print("[yellow]Please add them for the rebuild to run[/yellow]")


def rebuild(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    json_output: bool = typer.Option(False, "--json", help="Output the report as JSON"),
):
    """Delete the database, create a new one and redeploy dependent services"""
    settings = get_settings()

    missing = settings.missing_fields()
    if missing:
        print_missing(missing)
        raise typer.Exit(code=2)

    if not yes:
        typer.confirm(
            "This deletes the current database and all of its data. Continue?", abort=True
        )

    try:
        report = asyncio.run(run_rebuild(settings))
    except ConfigurationError as e:
        print_missing(e.missing)
        raise typer.Exit(code=2) from None
    except RebuildError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from None
    except KeyboardInterrupt:
        console.print("[bold red]Rebuild interrupted[/bold red]")
        raise typer.Exit(code=130) from None

    if json_output:
        typer.echo(json.dumps(report.model_dump(mode="json"), indent=2))
    else:
        print_report(report)

    if report.outcome != RebuildOutcome.SUCCEEDED:
        raise typer.Exit(code=1)
