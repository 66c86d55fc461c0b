"""Configuration module for SoundStats.

Public API:
----------
settings: Settings instance
    Pydantic settings object with nested configuration groups

get_logger(name: str) -> Logger
    Get a context-aware logger for your module

setup_loguru_logger(verbose: bool = False) -> None
    Configure Loguru logger for the application

resilient_operation(operation_name: str)
    Decorator for logging failures of external API calls

log_startup_info() -> None
    Log system configuration at startup

configure_prefect_logging() -> None
    Configure Prefect to use our Loguru setup

Usage:
------
```python
from soundstats.config import get_logger, settings

logger = get_logger(__name__)
logger.info("Polling users", concurrency=settings.ingestion.live_concurrency)
```
"""

from .logging import (
    configure_prefect_logging,
    get_logger,
    log_startup_info,
    resilient_operation,
    setup_loguru_logger,
)
from .settings import settings

__all__ = [
    "configure_prefect_logging",
    "get_logger",
    "log_startup_info",
    "resilient_operation",
    "settings",
    "setup_loguru_logger",
]
