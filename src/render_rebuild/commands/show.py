import asyncio
from collections.abc import Awaitable, Callable
import json
from typing import Any

from pydantic import BaseModel
from rich.console import Console
from rich.table import Table
import typer

from render_rebuild.clients.render import RenderClient
from render_rebuild.config import Settings, get_settings
from render_rebuild.errors import RebuildError
from render_rebuild.queries import ResourceQueries
from render_rebuild.schemas import ConnectionInfo, Database

console = Console()

app = typer.Typer(help="Read-only views of the Render account")


async def run_query(
    settings: Settings, query: Callable[[ResourceQueries], Awaitable[Any]]
) -> Any:
    async with RenderClient(settings.api_key(), base_url=settings.render_api_url) as client:
        queries = ResourceQueries(
            client, service_type=settings.service_type, plan=settings.database_plan
        )
        return await query(queries)


def _execute(query: Callable[[ResourceQueries], Awaitable[Any]]) -> Any:
    settings = get_settings()
    missing = [f for f in settings.missing_fields() if f in ("render_api_key", "render_api_url")]
    if missing:
        console.print(f"[bold red]Missing settings:[/bold red] {', '.join(missing)}")
        raise typer.Exit(code=2)
    try:
        return asyncio.run(run_query(settings, query))
    except RebuildError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from None


def _dump(value: BaseModel | list[BaseModel] | None) -> Any:
    if value is None:
        return None
    if isinstance(value, list):
        return [item.model_dump(mode="json") for item in value]
    return value.model_dump(mode="json")


@app.command()
def database(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    connection_info: bool = typer.Option(
        False, "--connection-info", help="Also show the connection strings"
    ),
):
    """Show the database a rebuild would replace"""

    async def fetch(q: ResourceQueries) -> tuple[Database | None, ConnectionInfo | None]:
        db = await q.get_current_database()
        if db is None or not connection_info:
            return db, None
        return db, await q.client.get_connection_info(db.id)

    db, info = _execute(fetch)

    if json_output:
        data = _dump(db)
        if data is not None and info is not None:
            data["connection_info"] = {
                "internal_connection_string": info.internal_connection_string,
                "external_connection_string": info.external_connection_string,
            }
        typer.echo(json.dumps(data, indent=2))
        return
    if db is None:
        console.print("[yellow]No database found on this plan[/yellow]")
        return
    console.print(f"ID: [cyan]{db.id}[/cyan]")
    console.print(f"Name: [magenta]{db.name}[/magenta]")
    console.print(f"Status: {db.status}")
    console.print(f"Plan: {db.plan}  Region: {db.region}  Version: {db.version}")
    console.print(f"Created: {db.created_at}")
    if info is not None:
        console.print(f"Internal: {info.internal_connection_string or '-'}", soft_wrap=True)
        console.print(f"External: {info.external_connection_string or '-'}", soft_wrap=True)


@app.command()
def services(json_output: bool = typer.Option(False, "--json", help="Output as JSON")):
    """Show the services a rebuild would redeploy"""
    items = _execute(lambda q: q.list_dependent_services())

    if json_output:
        typer.echo(json.dumps(_dump(items), indent=2))
        return
    table = Table(title="Services")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Type")
    for service in items:
        table.add_row(service.id, service.name, service.type or "")
    console.print(table)


@app.command()
def owner(json_output: bool = typer.Option(False, "--json", help="Output as JSON")):
    """Show the account that owns the resources"""
    result = _execute(lambda q: q.get_owner())

    if json_output:
        typer.echo(json.dumps(_dump(result), indent=2))
        return
    console.print(f"ID: [cyan]{result.id}[/cyan]")
    console.print(f"Name: [magenta]{result.name}[/magenta]")
    if result.email:
        console.print(f"Email: {result.email}")
