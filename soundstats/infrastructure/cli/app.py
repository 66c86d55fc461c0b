"""SoundStats CLI - Main application entry point and app structure."""

from importlib.metadata import PackageNotFoundError, version
from typing import Annotated

from rich.console import Console
import typer

from soundstats.config import get_logger, log_startup_info, setup_loguru_logger
from soundstats.infrastructure.cli.analytics_commands import (
    register_analytics_commands,
)
from soundstats.infrastructure.cli.ingestion_commands import (
    register_ingestion_commands,
)
from soundstats.infrastructure.cli.setup_commands import register_setup_commands

try:
    VERSION = version("soundstats")
except PackageNotFoundError:
    VERSION = "0.0.0"

console = Console(width=80)
logger = get_logger(__name__)

app = typer.Typer(
    help=f"🎵 SoundStats v{VERSION} - Listening history engine",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
)

register_setup_commands(app)
register_ingestion_commands(app)
register_analytics_commands(app)


@app.command(name="version", rich_help_panel="⚙️ System")
def version_command() -> None:
    """Show version information."""
    console.print(
        f"[bold bright_blue]🎵 SoundStats[/bold bright_blue] [dim]v{VERSION}[/dim]"
    )


@app.callback()
def init_cli(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output"),
    ] = False,
) -> None:
    """Initialize SoundStats CLI."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    setup_loguru_logger(verbose)
    log_startup_info()


def main() -> int:
    """Application entry point."""
    try:
        return app() or 0
    except Exception:
        logger.exception("Unhandled exception")
        return 1
