"""Scheduled workflows."""

from .flows import (
    process_uploads_flow,
    run_process_uploads,
    run_update_now_playing,
    serve_schedules,
    update_now_playing_flow,
)

__all__ = [
    "process_uploads_flow",
    "run_process_uploads",
    "run_update_now_playing",
    "serve_schedules",
    "update_now_playing_flow",
]
