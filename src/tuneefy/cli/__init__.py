"""CLI commands for tuneefy."""

from .core import app


def main() -> None:
    """Console entry point for the tuneefy CLI."""
    app()


__all__ = ["app", "main"]
