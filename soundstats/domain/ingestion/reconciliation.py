"""Session-continuity rules for merging live playback into the ledger.

Polling samples progress at coarse intervals, so the progress recorded when
the track changes is a lower bound. Near-complete and very short tracks are
treated as fully played, and very short listens are rolled back.
"""

from enum import StrEnum

from attrs import define

from soundstats.domain.entities import ListeningHistoryEntry, NowPlaying


class LedgerAction(StrEnum):
    """What to do with the ledger for the current poll."""

    INSERT = "insert"
    UPDATE_PROGRESS = "update_progress"
    FINALIZE_AND_INSERT = "finalize_and_insert"


class Finalization(StrEnum):
    """What happens to the previous entry when the track changes."""

    KEEP = "keep"
    DELETE = "delete"
    CLAMP = "clamp"


@define(frozen=True, slots=True)
class ReconciliationRules:
    """Thresholds for finalizing a previous listen."""

    min_listen_ms: int = 20_000
    finished_ratio: float = 0.8
    short_track_ms: int = 60_000


@define(frozen=True, slots=True)
class ReconciliationPlan:
    """Decision for one user's poll."""

    action: LedgerAction
    finalization: Finalization | None = None
    clamp_to_ms: int | None = None


def finalize_previous(
    progress_ms: int,
    duration_ms: int | None,
    rules: ReconciliationRules = ReconciliationRules(),
) -> tuple[Finalization, int | None]:
    """Decide how a superseded entry is finalized.

    A listen past the finished ratio counts as complete even on tracks shorter
    than the minimum listen; otherwise short listens are rolled back and
    surviving listens of short tracks are rounded up to the full duration.

    Returns:
        The finalization and, for CLAMP, the progress to write
    """
    if duration_ms is not None and progress_ms > rules.finished_ratio * duration_ms:
        return Finalization.CLAMP, duration_ms

    if progress_ms < rules.min_listen_ms:
        return Finalization.DELETE, None

    if duration_ms is not None and duration_ms < rules.short_track_ms:
        return Finalization.CLAMP, duration_ms

    return Finalization.KEEP, None


def decide_reconciliation(
    previous: ListeningHistoryEntry | None,
    current: NowPlaying,
    previous_duration_ms: int | None,
    rules: ReconciliationRules = ReconciliationRules(),
) -> ReconciliationPlan:
    """Pick the ledger action for a poll given the user's latest entry.

    Args:
        previous: Most recent ledger entry for the user, if any
        current: Track currently playing
        previous_duration_ms: Catalog duration of the previous entry's track
        rules: Finalization thresholds

    Returns:
        ReconciliationPlan describing the writes to perform
    """
    if previous is None:
        return ReconciliationPlan(action=LedgerAction.INSERT)

    if previous.track_id == current.track_id:
        return ReconciliationPlan(action=LedgerAction.UPDATE_PROGRESS)

    finalization, clamp_to_ms = finalize_previous(
        previous.progress_ms, previous_duration_ms, rules
    )
    return ReconciliationPlan(
        action=LedgerAction.FINALIZE_AND_INSERT,
        finalization=finalization,
        clamp_to_ms=clamp_to_ms,
    )
