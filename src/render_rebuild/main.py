import typer

from render_rebuild.commands import rebuild, show
from render_rebuild.config import get_settings
from render_rebuild.logging_config import setup_logging

app = typer.Typer(no_args_is_help=True)


@app.callback()
def callback():
    """
    Render database rebuild
    """
    settings = get_settings()
    setup_logging(
        service_name=settings.service_name,
        log_format=settings.log_format,
        log_level=settings.log_level,
    )


app.command(name="rebuild")(rebuild.rebuild)
app.add_typer(show.app, name="show")
