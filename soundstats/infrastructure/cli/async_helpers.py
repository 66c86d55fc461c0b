"""Async helpers for CLI commands."""

import asyncio
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any

from soundstats.infrastructure.cli.ui import command_error_handler
from soundstats.infrastructure.persistence.database.db_connection import (
    dispose_engine,
)


def async_command[R](func: Callable[..., Awaitable[R]]) -> Callable[..., R]:
    """Run an async command body with `asyncio.run`.

    The database engine is disposed before the event loop closes, since its
    connections are bound to that loop.
    """

    @command_error_handler
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> R:
        async def run() -> R:
            try:
                return await func(*args, **kwargs)
            finally:
                await dispose_engine()

        return asyncio.run(run())

    return wrapper
