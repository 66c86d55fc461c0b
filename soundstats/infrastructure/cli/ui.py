"""UI helpers for CLI interaction.

Rendering of use case results as rich tables, kept apart from the command
definitions.
"""

from collections.abc import Callable
import functools

from rich.console import Console
from rich.table import Table
import typer

from soundstats.config import get_logger
from soundstats.domain.entities import (
    LeaderboardPage,
    ListeningTotals,
    Metric,
    NowPlayingResult,
    PlaytimeBucket,
    Streak,
    StreakType,
    Timeframe,
    TopEntities,
    UploadBatchResult,
)

console = Console()
logger = get_logger(__name__)


def command_error_handler[**P, R](func: Callable[P, R]) -> Callable[P, R]:
    """Standardize error handling for CLI commands.

    Errors are logged with their traceback, shown as a one-line message and
    turned into exit code 1.
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        operation = func.__name__.replace("_", " ")

        with logger.contextualize(operation=operation):
            try:
                logger.debug(f"Executing {operation}")
                return func(*args, **kwargs)

            except typer.Exit:
                raise

            except typer.Abort:
                logger.info(f"Operation {operation} aborted by user")
                raise

            except Exception as e:
                logger.exception(f"Error during {operation}")
                console.print(f"\n[bold red]✗ Error during {operation}:[/bold red] {e}")
                raise typer.Exit(code=1) from e

    return wrapper


def _signed(value: int | None) -> str:
    if value is None:
        return "-"
    if value > 0:
        return f"[green]▲ {value}[/green]"
    if value < 0:
        return f"[red]▼ {-value}[/red]"
    return "="


def _percent(value: float | None) -> str:
    return "-" if value is None else f"{value:+.1f}%"


def format_duration_ms(ms: int) -> str:
    """Human playtime, e.g. `3h 05m`."""
    minutes, _ = divmod(ms // 1000, 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m" if hours else f"{minutes}m"


def render_now_playing_result(result: NowPlayingResult) -> None:
    if not result.lease_held:
        console.print("[yellow]Another now-playing run holds the lease; skipped.[/yellow]")
        return

    table = Table(title="Now Playing", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Users processed", str(result.processed))
    table.add_row("Entries inserted", str(result.inserted))
    table.add_row("Progress updated", str(result.updated))
    table.add_row("Previous deleted", str(result.finalized_deleted))
    table.add_row("Previous clamped", str(result.finalized_clamped))
    table.add_row("Not playing", str(result.skipped))
    table.add_row("Failed", f"[red]{result.failed_count}[/red]" if result.failed else "0")
    console.print(table)

    if result.failed:
        console.print(f"[dim]Failed users: {', '.join(result.failed)}[/dim]")


def render_upload_result(result: UploadBatchResult) -> None:
    if not result.lease_held:
        console.print("[yellow]Another upload run holds the lease; skipped.[/yellow]")
        return

    table = Table(title="Uploads", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Files processed", str(result.processed))
    table.add_row("Invalid files", str(result.invalid))
    table.add_row("Failed files", str(result.failed))
    table.add_row("Entries inserted", str(result.inserted))
    table.add_row("Live entries replaced", str(result.deleted))
    table.add_row("Unresolved entries", str(result.unresolved))
    console.print(table)


def render_streaks(streaks: list[Streak], streak_type: StreakType) -> None:
    if not streaks:
        console.print(f"[yellow]No active {streak_type} streaks.[/yellow]")
        return

    table = Table(title=f"Active {streak_type} streaks", show_header=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Days", justify="right", style="bold")
    table.add_column("Since")
    table.add_column("Today", justify="center")
    for position, streak in enumerate(streaks, start=1):
        table.add_row(
            str(position),
            streak.entity_name or streak.entity_id,
            str(streak.length),
            streak.start_date.isoformat(),
            "✓" if streak.is_extended_today else "",
        )
    console.print(table)


def render_leaderboard(page: LeaderboardPage) -> None:
    table = Table(
        title=f"{page.metric} leaderboard ({page.timeframe})",
        caption=f"Page {page.page} of {page.total_pages}",
        show_header=True,
    )
    table.add_column("Rank", justify="right")
    table.add_column("User", style="cyan")
    table.add_column("Value", justify="right", style="bold")
    table.add_column("Change", justify="center")
    table.add_column("Δ %", justify="right")

    for entry in page.entries:
        value = (
            format_duration_ms(entry.value)
            if page.metric is Metric.PLAYTIME
            else str(entry.value)
        )
        user = f"[bold]{entry.user_id}[/bold] (you)" if entry.is_current_user else entry.user_id
        table.add_row(
            str(entry.rank),
            user,
            value,
            _signed(entry.rank_change),
            _percent(entry.percent_change),
        )
    console.print(table)


def render_top_entities(top: TopEntities) -> None:
    if not top.entries:
        console.print(f"[yellow]No {top.kind} plays in this window.[/yellow]")
        return

    table = Table(title=f"Top {top.kind}s ({top.timeframe})", show_header=True)
    table.add_column("Rank", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Plays", justify="right", style="bold")
    table.add_column("Playtime", justify="right")
    table.add_column("Change", justify="center")

    has_previous = top.timeframe is not Timeframe.ALL_TIME
    for entry in top.entries:
        change = (
            "[blue]new[/blue]"
            if has_previous and entry.previous_rank is None
            else _signed(entry.rank_change)
        )
        table.add_row(
            str(entry.rank),
            entry.name,
            str(entry.count),
            format_duration_ms(entry.playtime_ms),
            change,
        )
    console.print(table)


def render_totals(totals: ListeningTotals) -> None:
    table = Table(title=f"Totals ({totals.timeframe})", show_header=True)
    table.add_column("Total", style="cyan")
    table.add_column("Value", justify="right", style="bold")
    table.add_column("Δ %", justify="right")
    table.add_row(
        "Playtime",
        format_duration_ms(totals.playtime_ms.value),
        _percent(totals.playtime_ms.percent_change),
    )
    table.add_row(
        "Artists", str(totals.artists.value), _percent(totals.artists.percent_change)
    )
    table.add_row(
        "Tracks", str(totals.tracks.value), _percent(totals.tracks.percent_change)
    )
    console.print(table)


def render_playtime_series(buckets: list[PlaytimeBucket]) -> None:
    hourly = len(buckets) == 24 and buckets[0].start.date() == buckets[-1].start.date()
    label_format = "%H:00" if hourly else "%Y-%m-%d"
    peak = max((bucket.playtime_ms for bucket in buckets), default=0)

    table = Table(title="Playtime", show_header=True)
    table.add_column("Hour" if hourly else "Day", style="cyan")
    table.add_column("Playtime", justify="right")
    table.add_column("")
    for bucket in buckets:
        width = round(bucket.playtime_ms / peak * 30) if peak else 0
        table.add_row(
            bucket.start.strftime(label_format),
            format_duration_ms(bucket.playtime_ms),
            "[green]" + "█" * width + "[/green]",
        )
    console.print(table)
