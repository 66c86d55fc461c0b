"""Ingestion commands: live polling, upload processing and the scheduler."""

from typing import Annotated

import typer

from soundstats.config import get_logger
from soundstats.infrastructure.cli.async_helpers import async_command
from soundstats.infrastructure.cli.ui import (
    command_error_handler,
    console,
    render_now_playing_result,
    render_upload_result,
)

logger = get_logger(__name__)


def register_ingestion_commands(app: typer.Typer) -> None:
    """Register ingestion commands with the Typer app."""
    app.command(
        name="now-playing",
        help="Poll current playback once and update listening history",
        rich_help_panel="🎧 Ingestion",
    )(now_playing)
    app.command(
        name="process-uploads",
        help="Import pending streaming history uploads",
        rich_help_panel="🎧 Ingestion",
    )(process_uploads)
    app.command(
        name="add-upload",
        help="Queue an export file for import",
        rich_help_panel="🎧 Ingestion",
    )(add_upload)
    app.command(
        name="serve",
        help="Run the polling and import schedules",
        rich_help_panel="🎧 Ingestion",
    )(serve)


@async_command
async def now_playing(
    premium_only: Annotated[
        bool,
        typer.Option("--premium-only", help="Only poll premium users"),
    ] = False,
) -> None:
    """Poll current playback once."""
    from soundstats.application.workflows.flows import run_update_now_playing

    result = await run_update_now_playing(premium_only=premium_only)
    render_now_playing_result(result)


@async_command
async def process_uploads() -> None:
    """Import one batch of pending uploads."""
    from soundstats.application.workflows.flows import run_process_uploads

    result = await run_process_uploads()
    render_upload_result(result)


@async_command
async def add_upload(
    user_id: Annotated[str, typer.Argument(help="Owner of the export")],
    file_url: Annotated[
        str, typer.Argument(help="file:// or http(s) URL, or a local path")
    ],
) -> None:
    """Queue an export file for the next upload run."""
    from soundstats.infrastructure.persistence.unit_of_work import (
        unit_of_work_factory,
    )

    file_name = file_url.rstrip("/").rsplit("/", 1)[-1]
    async with unit_of_work_factory()() as uow:
        upload = await uow.get_upload_repository().add_upload(
            user_id, file_url, file_name=file_name
        )
    console.print(f"[green]✓ Queued upload {upload.id}[/green] [dim]({file_name})[/dim]")


@command_error_handler
def serve() -> None:
    """Serve the scheduled deployments until interrupted."""
    from soundstats.application.workflows.flows import serve_schedules

    console.print("[bold]Serving schedules[/bold] [dim](Ctrl+C to stop)[/dim]")
    serve_schedules()
