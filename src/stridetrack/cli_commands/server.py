"""CLI command for the JSON dashboard server."""

from __future__ import annotations

import click

from stridetrack.dashboard import DEFAULT_PORT


@click.command()
@click.option("--port", default=DEFAULT_PORT, type=int, help=f"Server port (default {DEFAULT_PORT})")
def dashboard(port: int) -> None:
    """Serve the JSON API for the local project on 127.0.0.1."""
    from stridetrack.dashboard import main as dashboard_main

    dashboard_main(port=port)


def register(cli: click.Group) -> None:
    """Register server commands with the CLI group."""
    cli.add_command(dashboard)
