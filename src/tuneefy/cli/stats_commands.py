"""Usage statistics report."""

from __future__ import annotations

from typing import Optional

import typer
from rich.table import Table

from ..stats import VIEW_KINDS, StatsAggregator
from ..store import RecordStore
from .common import console, context_settings

stats_app = typer.Typer(help="Usage statistics")


@stats_app.command("show")
def show(
    ctx: typer.Context,
    kind: str = typer.Option("track", "--kind", "-k", help="track, album or artist"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Rows to show (defaults to website.stats_limit)"),
) -> None:
    """Show item totals, platform shares and the most viewed items."""
    if kind not in VIEW_KINDS:
        raise typer.BadParameter(f"kind must be one of {', '.join(VIEW_KINDS)}")

    settings = context_settings(ctx)
    store = RecordStore.from_settings(settings)
    aggregator = StatsAggregator.from_settings(settings)

    summary = store.items_summary()
    console.print(f"📊 Items: {summary.total} total")
    console.print(f"   Tracks: {summary.tracks} | Albums: {summary.total - summary.tracks} | Pending intents: {summary.intents}")
    console.print()

    shares = aggregator.platform_shares()
    share_table = Table(title="Platform Shares")
    share_table.add_column("Platform", style="cyan")
    share_table.add_column("Listens", justify="right")
    for platform, count in shares.items():
        share_table.add_row(platform, str(count))
    console.print(share_table)

    views = aggregator.most_viewed(kind, limit)
    view_table = Table(title=f"Most Viewed ({kind})")
    if kind != "artist":
        view_table.add_column("ID", justify="right")
        view_table.add_column(kind.capitalize(), style="green")
    view_table.add_column("Artist", style="yellow")
    view_table.add_column("Views", justify="right")
    for view in views:
        cells = [view.artist or "-", str(view.count)]
        if kind != "artist":
            cells = [str(view.id), (view.track if kind == "track" else view.album) or "-"] + cells
        view_table.add_row(*cells)
    console.print(view_table)
