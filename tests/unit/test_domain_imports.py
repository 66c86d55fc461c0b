"""Tests for bulk import helpers and fuzzy matching."""

from datetime import timedelta

from soundstats.domain.ingestion import (
    best_candidate,
    covered_span,
    distinct_in_order,
    is_before_floor,
    legacy_played_at,
    match_score,
    track_id_from_uri,
)
from tests.fixtures.builders import utc


class TestTrackIdFromUri:
    """Test catalog ID extraction from URIs."""

    def test_track_uri(self):
        assert track_id_from_uri("spotify:track:4uLU6hMCjMI75M1A2tKUQC") == (
            "4uLU6hMCjMI75M1A2tKUQC"
        )

    def test_non_track_uris_are_rejected(self):
        """Test episode, local and malformed URIs give None."""
        assert track_id_from_uri("spotify:episode:abc") is None
        assert track_id_from_uri("spotify:local:Artist:Album:Title:180") is None
        assert track_id_from_uri("spotify:track:") is None
        assert track_id_from_uri(None) is None


class TestSpansAndFloors:
    """Test override spans and the legacy floor."""

    def test_covered_span_is_min_and_max(self):
        instants = [utc(2024, 1, 3), utc(2024, 1, 1), utc(2024, 1, 2)]
        assert covered_span(instants) == (utc(2024, 1, 1), utc(2024, 1, 3))

    def test_covered_span_of_nothing(self):
        assert covered_span([]) is None

    def test_legacy_played_at_is_end_minus_duration(self):
        """Test legacy end times are converted to start instants."""
        end = utc(2020, 5, 1, 12, 30)
        assert legacy_played_at(end, 90_000) == end - timedelta(seconds=90)

    def test_floor(self):
        """Test only plays strictly before the floor pass."""
        floor = utc(2024, 1, 1)
        assert is_before_floor(utc(2023, 12, 31), floor)
        assert not is_before_floor(floor, floor)
        assert not is_before_floor(utc(2024, 1, 2), floor)
        assert is_before_floor(utc(2030, 1, 1), None)

    def test_distinct_in_order(self):
        assert distinct_in_order(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


class TestFuzzyMatching:
    """Test acceptance of catalog search candidates."""

    def test_exact_match_scores_full(self):
        assert match_score("Radiohead", "Creep", "Radiohead", "Creep") == 100

    def test_case_and_extra_words_are_tolerated(self):
        """Test remaster suffixes still match above the threshold."""
        score = match_score(
            "The Beatles", "Let It Be", "the beatles", "Let It Be - Remastered 2009"
        )
        assert score >= 80

    def test_weaker_of_artist_and_title_wins(self):
        """Test a right title by the wrong artist is not accepted."""
        score = match_score("Radiohead", "Creep", "Stone Temple Pilots", "Creep")
        assert score < 80

    def test_best_candidate_picks_highest_score(self):
        candidates = [
            ("Stone Temple Pilots", "Creep"),
            ("Radiohead", "Creeping Death"),
            ("Radiohead", "Creep"),
        ]
        assert best_candidate("Radiohead", "Creep", candidates, 80) == 2

    def test_ties_keep_search_order(self):
        """Test equally good candidates resolve to the first one."""
        candidates = [("Radiohead", "Creep - Acoustic"), ("Radiohead", "Creep")]
        assert best_candidate("Radiohead", "Creep", candidates, 80) == 0

    def test_best_candidate_none_below_threshold(self):
        candidates = [("Someone Else", "Another Song")]
        assert best_candidate("Radiohead", "Creep", candidates, 80) is None
        assert best_candidate("Radiohead", "Creep", [], 80) is None
