"""Setup commands."""

import typer

from soundstats.infrastructure.cli.async_helpers import async_command
from soundstats.infrastructure.cli.ui import console


def register_setup_commands(app: typer.Typer) -> None:
    """Register setup commands with the Typer app."""
    app.command(
        name="init-db",
        help="Create the database schema",
        rich_help_panel="⚙️ System",
    )(init_db)


@async_command
async def init_db() -> None:
    """Create missing tables."""
    from soundstats.infrastructure.persistence.database.db_models import (
        init_db as create_schema,
    )

    await create_schema()
    console.print("[bold green]✓ Database ready[/bold green]")
