"""Helpers shared by the CLI command groups."""

from __future__ import annotations

import typer
from rich.console import Console

from ..config import Settings, load_settings

console = Console()


def get_config_path(ctx: typer.Context) -> str | None:
    """Retrieve the configured settings path from the Typer context."""
    obj = getattr(ctx, "obj", None)
    if isinstance(obj, dict):
        return obj.get("config")
    return None


def context_settings(ctx: typer.Context) -> Settings:
    return load_settings(get_config_path(ctx))
