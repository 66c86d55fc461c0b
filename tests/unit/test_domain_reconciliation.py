"""Tests for live playback reconciliation rules."""

import pytest

from soundstats.domain.entities import ListeningHistoryEntry, NowPlaying
from soundstats.domain.ingestion import (
    Finalization,
    LedgerAction,
    ReconciliationRules,
    decide_reconciliation,
    finalize_previous,
)
from tests.fixtures.builders import utc


def _entry(track_id: str, progress_ms: int) -> ListeningHistoryEntry:
    return ListeningHistoryEntry(
        id=1,
        user_id="alice",
        track_id=track_id,
        played_at=utc(2024, 1, 1, 12, 0),
        progress_ms=progress_ms,
    )


def _now_playing(track_id: str, progress_ms: int = 5_000) -> NowPlaying:
    return NowPlaying(
        track_id=track_id,
        played_at=utc(2024, 1, 1, 12, 5),
        progress_ms=progress_ms,
    )


class TestFinalizePrevious:
    """Test how a superseded entry is finalized."""

    def test_short_listen_is_deleted(self):
        """Test that a listen under the minimum is rolled back."""
        assert finalize_previous(15_000, 200_000) == (Finalization.DELETE, None)

    def test_near_complete_listen_is_clamped(self):
        """Test that progress past 80% is rounded up to the full duration."""
        assert finalize_previous(170_000, 200_000) == (Finalization.CLAMP, 200_000)

    def test_finished_very_short_track_is_clamped(self):
        """Test 9000 ms of a 10000 ms track counts as a full play."""
        assert finalize_previous(9_000, 10_000) == (Finalization.CLAMP, 10_000)

    def test_surviving_listen_of_short_track_is_clamped(self):
        """Test tracks under a minute are treated as fully played."""
        assert finalize_previous(25_000, 50_000) == (Finalization.CLAMP, 50_000)

    def test_skip_on_short_track_is_still_deleted(self):
        """Test the minimum listen applies when the track is not finished."""
        assert finalize_previous(2_000, 50_000) == (Finalization.DELETE, None)

    def test_partial_listen_is_kept(self):
        """Test a mid-track change leaves progress as observed."""
        assert finalize_previous(100_000, 200_000) == (Finalization.KEEP, None)

    def test_unknown_duration_never_clamps(self):
        """Test missing catalog duration only allows delete or keep."""
        assert finalize_previous(100_000, None) == (Finalization.KEEP, None)
        assert finalize_previous(10_000, None) == (Finalization.DELETE, None)

    def test_custom_rules(self):
        """Test thresholds come from the rules object."""
        rules = ReconciliationRules(min_listen_ms=5_000, finished_ratio=0.5)
        assert finalize_previous(6_000, 200_000, rules) == (Finalization.KEEP, None)
        assert finalize_previous(120_000, 200_000, rules) == (
            Finalization.CLAMP,
            200_000,
        )


class TestDecideReconciliation:
    """Test the ledger action chosen for a poll."""

    def test_no_previous_entry_inserts(self):
        """Test a user's first poll inserts."""
        plan = decide_reconciliation(None, _now_playing("t1"), None)
        assert plan.action is LedgerAction.INSERT
        assert plan.finalization is None

    def test_same_track_updates_progress(self):
        """Test consecutive polls of one track update the same row."""
        plan = decide_reconciliation(_entry("t1", 30_000), _now_playing("t1"), None)
        assert plan.action is LedgerAction.UPDATE_PROGRESS

    @pytest.mark.parametrize(
        ("progress_ms", "duration_ms", "finalization", "clamp_to_ms"),
        [
            (15_000, 200_000, Finalization.DELETE, None),
            (9_000, 10_000, Finalization.CLAMP, 10_000),
            (100_000, 200_000, Finalization.KEEP, None),
        ],
    )
    def test_track_change_finalizes_then_inserts(
        self, progress_ms, duration_ms, finalization, clamp_to_ms
    ):
        """Test a track change finalizes the previous entry."""
        plan = decide_reconciliation(
            _entry("t1", progress_ms), _now_playing("t2"), duration_ms
        )
        assert plan.action is LedgerAction.FINALIZE_AND_INSERT
        assert plan.finalization is finalization
        assert plan.clamp_to_ms == clamp_to_ms
