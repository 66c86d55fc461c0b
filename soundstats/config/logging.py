"""Logging configuration and utilities using Loguru.

Centralized logging setup for SoundStats: structured logging with Loguru,
an error handling decorator for external API calls, and a bridge that routes
Prefect's standard-library logs into Loguru.

Public API:
----------
setup_loguru_logger(verbose: bool = False) -> None
    Configure console and file sinks

get_logger(name: str) -> Logger
    Get a context-aware logger for your module
    Usage: logger = get_logger(__name__)

log_startup_info() -> None
    Log a banner and the active configuration

@resilient_operation(operation_name: str)
    Log and re-raise failures of boundary operations
    Usage: @resilient_operation("spotify_current_playback")

configure_prefect_logging() -> None
    Forward Prefect logs to Loguru
"""

import functools
import logging
from pathlib import Path
import sys
from typing import Any

from loguru import logger

from .settings import settings

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================


def setup_loguru_logger(verbose: bool = False) -> None:
    """Configure Loguru logger for the application.

    Args:
        verbose: Enable verbose logging with debug level and detailed tracebacks

    Note:
        - Removes default logger and sets up console and file handlers
        - Console format is colorized and simplified
        - File format is serialized JSON with rotation and retention
    """
    logger.remove()

    log_file_path = Path(settings.logging.log_file)
    log_file_path.parent.mkdir(parents=True, exist_ok=True)

    # Add contextual info to all log records
    logger.configure(extra={"service": "soundstats", "module": "root"})

    console_level = "DEBUG" if verbose else settings.logging.console_level
    logger.add(
        sink=sys.stdout,
        level=console_level,
        format=(
            "<green>{time:HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:"
            "<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
        backtrace=verbose,
        diagnose=verbose,
    )

    # Queue writes unless real-time debugging is requested
    enqueue_logs = not settings.logging.real_time_debug
    logger.add(
        sink=str(log_file_path),
        level=settings.logging.file_level,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {process}:{thread} | {extra[service]} | {extra[module]} | {name}:{function}:{line} | {message}",
        rotation="10 MB",
        retention="1 week",
        compression="zip",
        backtrace=True,
        diagnose=True,
        enqueue=enqueue_logs,
        catch=True,
        serialize=True,
    )


# =============================================================================
# LOGGER FACTORY
# =============================================================================


def get_logger(name: str) -> Any:  # Use Any for Loguru logger type
    """Get a pre-configured logger instance for the given module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Loguru logger bound with module and service context
    """
    return logger.bind(
        module=name,
        service="soundstats",
    )


# =============================================================================
# STARTUP LOGGING
# =============================================================================


def log_startup_info() -> None:
    """Log a startup banner and all configuration values at debug level.

    Credentials are masked.
    """
    local_logger = get_logger(__name__)
    separator = "=" * 50

    local_logger.info(separator)
    local_logger.info("SoundStats listening history engine")
    local_logger.info(separator)

    local_logger.debug("Configuration:")
    for section_name, section_values in settings.model_dump().items():
        if not isinstance(section_values, dict):
            local_logger.debug("  {}: {}", section_name.upper(), str(section_values))
            continue

        local_logger.debug("  {}:", section_name.upper())
        for key, value in section_values.items():
            if section_name == "credentials" and value and "url" not in key:
                value = "********"
            local_logger.debug("    {}: {}", key.upper(), str(value))


# =============================================================================
# ERROR HANDLING DECORATORS
# =============================================================================


def resilient_operation(operation_name=None):
    """Decorator for service boundary operations with standardized error logging.

    Use on external API calls so failures are logged once with the operation
    name before propagating to the caller.

    Args:
        operation_name: Optional name for the operation (defaults to function name)

    Example:
        >>> @resilient_operation("spotify_several_tracks")
        >>> async def get_several_tracks(self, track_ids):
        >>>     ...
    """

    def decorator(func):
        op_name = operation_name or func.__name__

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                logger.bind(operation=op_name).warning(
                    f"Error in {op_name}: {e!s}"
                )
                raise

        return wrapper

    return decorator


# =============================================================================
# THIRD-PARTY LOGGING INTEGRATION
# =============================================================================


def configure_prefect_logging() -> None:
    """Forward Prefect's standard-library logs to Loguru.

    Note:
        - Preserves the originating logger name as module context
        - Disables propagation to prevent duplicate logs
    """

    class PrefectLoguruHandler(logging.Handler):
        def emit(self, record):
            try:
                level = logger.level(record.levelname).name
            except ValueError:
                level = record.levelno

            logger.bind(module=record.name).log(level, self.format(record))

    prefect_logger = logging.getLogger("prefect")
    prefect_logger.handlers = [PrefectLoguruHandler()]
    prefect_logger.propagate = False
