"""Core CLI application."""

from __future__ import annotations

import typer

from .client_commands import clients_app
from .db_commands import db_app
from .stats_commands import stats_app

app = typer.Typer(add_completion=False, no_args_is_help=True)
app.add_typer(db_app, name="db")
app.add_typer(clients_app, name="clients")
app.add_typer(stats_app, name="stats")


@app.callback()
def main(
    ctx: typer.Context,
    config: str = typer.Option(None, "--config", "-c", help="Path to settings.yaml"),
    log_level: str = typer.Option(None, "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"),
) -> None:
    """tuneefy - signed share items, usage stats and API clients."""
    from ..logger import configure_logging

    configure_logging(level=log_level)
    ctx.obj = {"config": config}
