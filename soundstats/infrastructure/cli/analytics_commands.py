"""Analytics commands: streaks, leaderboards and listening summaries."""

from datetime import date, datetime
from typing import Annotated

import typer

from soundstats.domain.entities import EntityKind, Metric, StreakType, Timeframe
from soundstats.infrastructure.cli.async_helpers import async_command
from soundstats.infrastructure.cli.ui import (
    render_leaderboard,
    render_playtime_series,
    render_streaks,
    render_top_entities,
    render_totals,
)


def register_analytics_commands(app: typer.Typer) -> None:
    """Register analytics commands with the Typer app."""
    app.command(
        name="streaks",
        help="Show a user's active listening streaks",
        rich_help_panel="📊 Analytics",
    )(streaks)
    app.command(
        name="leaderboard",
        help="Rank a user against their friends",
        rich_help_panel="📊 Analytics",
    )(leaderboard)
    app.command(
        name="top",
        help="Show a user's most played tracks, artists or albums",
        rich_help_panel="📊 Analytics",
    )(top)
    app.command(
        name="totals",
        help="Show a user's listening totals against the previous period",
        rich_help_panel="📊 Analytics",
    )(totals)
    app.command(
        name="playtime",
        help="Chart a user's playtime per day, or per hour for one day",
        rich_help_panel="📊 Analytics",
    )(playtime)


@async_command
async def streaks(
    user_id: Annotated[str, typer.Argument(help="User ID")],
    streak_type: Annotated[
        StreakType,
        typer.Option("--type", "-t", help="Entity the streak is measured over"),
    ] = StreakType.TRACK,
    limit: Annotated[
        int, typer.Option("--limit", "-l", min=1, help="Maximum streaks shown")
    ] = 10,
    as_of: Annotated[
        datetime | None,
        typer.Option("--as-of", formats=["%Y-%m-%d"], help="Effective date (UTC)"),
    ] = None,
) -> None:
    """Show active streaks."""
    from soundstats.application.use_cases import GetListeningStreaksUseCase
    from soundstats.infrastructure.persistence.unit_of_work import (
        unit_of_work_factory,
    )

    use_case = GetListeningStreaksUseCase(uow_factory=unit_of_work_factory())
    effective: date | None = as_of.date() if as_of else None
    if streak_type is StreakType.OVERALL:
        overall = await use_case.get_overall_streak(user_id, effective)
        render_streaks([overall] if overall else [], streak_type)
        return
    render_streaks(
        await use_case.execute(user_id, streak_type, limit, effective), streak_type
    )


@async_command
async def leaderboard(
    user_id: Annotated[str, typer.Argument(help="Viewing user ID")],
    metric: Annotated[
        Metric, typer.Option("--metric", "-m", help="Value to rank by")
    ] = Metric.PLAYTIME,
    timeframe: Annotated[
        Timeframe, typer.Option("--timeframe", "-t", help="Comparison window")
    ] = Timeframe.WEEK,
    page: Annotated[int, typer.Option("--page", "-p", min=1)] = 1,
    limit: Annotated[int, typer.Option("--limit", "-l", min=1)] = 10,
    ascending: Annotated[
        bool, typer.Option("--ascending", help="Lowest value first")
    ] = False,
) -> None:
    """Show one leaderboard page."""
    from soundstats.application.use_cases import GetLeaderboardUseCase
    from soundstats.infrastructure.persistence.unit_of_work import (
        unit_of_work_factory,
    )

    use_case = GetLeaderboardUseCase(uow_factory=unit_of_work_factory())
    result = await use_case.execute(
        user_id,
        metric,
        timeframe,
        page=page,
        limit=limit,
        descending=not ascending,
    )
    render_leaderboard(result)


@async_command
async def top(
    user_id: Annotated[str, typer.Argument(help="User ID")],
    kind: Annotated[
        EntityKind, typer.Option("--kind", "-k", help="Entity to rank")
    ] = EntityKind.ARTIST,
    timeframe: Annotated[
        Timeframe, typer.Option("--timeframe", "-t", help="Comparison window")
    ] = Timeframe.MONTH,
    limit: Annotated[int, typer.Option("--limit", "-l", min=1)] = 10,
) -> None:
    """Show a top-entities table."""
    from soundstats.application.use_cases import GetTopEntitiesUseCase
    from soundstats.infrastructure.persistence.unit_of_work import (
        unit_of_work_factory,
    )

    use_case = GetTopEntitiesUseCase(uow_factory=unit_of_work_factory())
    render_top_entities(await use_case.execute(user_id, kind, timeframe, limit))


@async_command
async def totals(
    user_id: Annotated[str, typer.Argument(help="User ID")],
    timeframe: Annotated[
        Timeframe, typer.Option("--timeframe", "-t", help="Comparison window")
    ] = Timeframe.WEEK,
) -> None:
    """Show period totals."""
    from soundstats.application.use_cases import GetListeningTotalsUseCase
    from soundstats.infrastructure.persistence.unit_of_work import (
        unit_of_work_factory,
    )

    use_case = GetListeningTotalsUseCase(uow_factory=unit_of_work_factory())
    render_totals(await use_case.execute(user_id, timeframe))


@async_command
async def playtime(
    user_id: Annotated[str, typer.Argument(help="User ID")],
    start: Annotated[
        datetime,
        typer.Option("--from", formats=["%Y-%m-%d"], help="First day (UTC)"),
    ],
    end: Annotated[
        datetime | None,
        typer.Option("--to", formats=["%Y-%m-%d"], help="Last day (UTC)"),
    ] = None,
) -> None:
    """Show a playtime series."""
    from soundstats.application.use_cases import GetPlaytimeSeriesUseCase
    from soundstats.infrastructure.persistence.unit_of_work import (
        unit_of_work_factory,
    )

    use_case = GetPlaytimeSeriesUseCase(uow_factory=unit_of_work_factory())
    first = start.date()
    last = end.date() if end else first
    render_playtime_series(await use_case.execute(user_id, first, last))
