"""Repository decorator for standardizing DB operations.

Wraps async repository methods with:
- Trace logging with timing information and ID-like keyword context
- Classification of SQLAlchemy errors into log levels before re-raising
"""

import asyncio
from collections.abc import Callable, Coroutine
import functools
import time
from typing import Any, ParamSpec, TypeVar

from sqlalchemy.exc import (
    DatabaseError,
    IntegrityError,
    MultipleResultsFound,
    NoResultFound,
    OperationalError,
    SQLAlchemyError,
    TimeoutError,
)

from soundstats.config import get_logger

P = ParamSpec("P")
T = TypeVar("T")

logger = get_logger(__name__)

# Checked in order; first match wins
_ERROR_CLASSIFICATION: list[tuple[type[Exception], str, str]] = [
    (NoResultFound, "DEBUG", "DB record not found"),
    (MultipleResultsFound, "WARNING", "Multiple results found"),
    (IntegrityError, "WARNING", "DB integrity error"),
    (TimeoutError, "ERROR", "DB timeout error"),
    (OperationalError, "ERROR", "DB operational error"),
    (DatabaseError, "ERROR", "DB error"),
    (SQLAlchemyError, "ERROR", "SQLAlchemy error"),
]


def db_operation(operation_name: str | None = None):
    """Decorate repository methods with consistent logging and error handling.

    Args:
        operation_name: Optional name for the operation (defaults to function name)

    Example:
        @db_operation("get_latest_entry")
        async def get_latest_entry(self, user_id: str) -> ListeningHistoryEntry | None:
            ...
    """

    def decorator(
        func: Callable[P, Coroutine[Any, Any, T]],
    ) -> Callable[P, Coroutine[Any, Any, T]]:
        func_name = operation_name or func.__name__

        if not asyncio.iscoroutinefunction(func):
            raise TypeError(
                f"db_operation can only be used with async functions, but {func_name} is not async",
            )

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            start_time = time.perf_counter()
            repo_name = args[0].__class__.__name__ if args else "Repository"
            context = _build_log_context(kwargs)

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                exec_time = (time.perf_counter() - start_time) * 1000
                _log_failure(e, f"{repo_name}.{func_name}", func_name, exec_time, context)
                raise

            logger.trace(
                f"DB operation completed: {repo_name}.{func_name}",
                operation=func_name,
                exec_time_ms=(time.perf_counter() - start_time) * 1000,
                **context,
            )
            return result

        return wrapper

    return decorator


def _log_failure(
    error: Exception,
    qualified_name: str,
    operation: str,
    exec_time: float,
    context: dict[str, Any],
) -> None:
    for error_type, level, label in _ERROR_CLASSIFICATION:
        if isinstance(error, error_type):
            logger.log(
                level,
                f"{label}: {qualified_name}",
                operation=operation,
                error=str(error),
                exec_time_ms=exec_time,
                **context,
            )
            return

    logger.exception(
        f"Unhandled exception in {qualified_name}",
        operation=operation,
        error=str(error),
        exec_time_ms=exec_time,
        **context,
    )


def _build_log_context(kwargs: dict[str, Any]) -> dict[str, Any]:
    """Build a logging context from scalar keyword arguments.

    ID-like parameters (`*_id`) take precedence over other simple values.
    """
    id_params = {
        k: v
        for k, v in kwargs.items()
        if k.endswith("_id") and isinstance(v, int | str)
    }
    simple_params = {
        k: v
        for k, v in kwargs.items()
        if (
            not k.startswith("_")
            and not isinstance(v, dict | list | set | tuple)
            and k not in id_params
        )
    }
    return {**simple_params, **id_params}
