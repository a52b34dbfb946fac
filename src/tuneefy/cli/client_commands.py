"""API client administration."""

from __future__ import annotations

from typing import Optional

import typer
from rich.table import Table

from ..clients import ClientRegistry, generate_credentials
from ..errors import DuplicateClient
from .common import console, context_settings

clients_app = typer.Typer(help="API client administration")


@clients_app.command("list")
def list_clients(ctx: typer.Context) -> None:
    """List API clients with their item and intent counts."""
    registry = ClientRegistry.from_settings(context_settings(ctx))
    clients = registry.list_clients()

    if not clients:
        console.print("No API clients registered")
        return

    table = Table(title="API Clients")
    table.add_column("Client ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="green")
    table.add_column("Email", style="yellow")
    table.add_column("Created", style="magenta")
    table.add_column("Items", justify="right")
    table.add_column("Intents", justify="right")

    for client in clients:
        table.add_row(
            client.client_id,
            client.name,
            client.email or "-",
            client.created_at.strftime("%Y-%m-%d %H:%M"),
            str(client.items),
            str(client.intents),
        )

    console.print(table)


@clients_app.command("add")
def add_client(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Display name of the client"),
    email: Optional[str] = typer.Option(None, "--email", help="Contact email"),
    url: Optional[str] = typer.Option(None, "--url", help="Client homepage"),
    description: Optional[str] = typer.Option(None, "--description", help="What the client does"),
    client_id: Optional[str] = typer.Option(None, "--client-id", help="Identifier (generated if omitted)"),
    client_secret: Optional[str] = typer.Option(None, "--client-secret", help="Secret (generated if omitted)"),
) -> None:
    """Register a new API client."""
    registry = ClientRegistry.from_settings(context_settings(ctx))

    generated_id, generated_secret = generate_credentials()
    try:
        client = registry.add_client(
            name,
            client_id or generated_id,
            client_secret or generated_secret,
            description,
            email,
            url,
        )
    except DuplicateClient as e:
        console.print(f"❌ {e}")
        raise typer.Exit(1)

    console.print(f"✅ Added API client {client.name}")
    console.print(f"Client ID: {client.client_id}")
    console.print(f"Client secret: {client.client_secret}")
