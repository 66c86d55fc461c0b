"""Tests for export file parsing and classification."""

import json

import pytest

from soundstats.domain.exceptions import InvalidUploadError
from soundstats.infrastructure.connectors.streaming_history import (
    parse_streaming_history,
)
from tests.fixtures.builders import utc


def _extended_track(ts: str, uri: str = "spotify:track:t1", ms: int = 60_000):
    return {
        "ts": ts,
        "platform": "ios",
        "ms_played": ms,
        "master_metadata_track_name": "Song",
        "master_metadata_album_artist_name": "Artist",
        "master_metadata_album_album_name": "Album",
        "spotify_track_uri": uri,
        "spotify_episode_uri": None,
        "reason_start": "trackdone",
        "shuffle": False,
    }


def _dump(entries) -> bytes:
    return json.dumps(entries).encode()


class TestExtendedHistory:
    """Test parsing of extended streaming history files."""

    def test_classifies_tracks_episodes_and_unknown(self):
        raw = _dump(
            [
                _extended_track("2024-01-01T10:00:00Z"),
                {
                    "ts": "2024-01-01T11:00:00Z",
                    "ms_played": 120_000,
                    "spotify_track_uri": None,
                    "spotify_episode_uri": "spotify:episode:e1",
                    "episode_name": "Episode",
                },
                {
                    "ts": "2024-01-01T12:00:00Z",
                    "ms_played": 30_000,
                    "spotify_track_uri": None,
                    "spotify_episode_uri": None,
                },
            ]
        )
        history = parse_streaming_history(raw)

        assert len(history.tracks) == 1
        assert len(history.episodes) == 1
        assert len(history.unknown) == 1
        assert not history.is_legacy
        assert history.tracks[0].ts == utc(2024, 1, 1, 10)
        assert history.tracks[0].platform == "ios"

    def test_span_covers_every_entry_kind(self):
        raw = _dump(
            [
                _extended_track("2024-01-02T10:00:00Z"),
                {"ts": "2024-01-01T09:00:00Z", "spotify_track_uri": None},
            ]
        )
        history = parse_streaming_history(raw)
        assert min(history.timestamps) == utc(2024, 1, 1, 9)
        assert max(history.timestamps) == utc(2024, 1, 2, 10)

    def test_offset_timestamps_are_normalized_to_utc(self):
        history = parse_streaming_history(
            _dump([_extended_track("2024-01-01T12:00:00+02:00")])
        )
        assert history.tracks[0].ts == utc(2024, 1, 1, 10)


class TestLegacyHistory:
    """Test parsing of legacy account data files."""

    def test_legacy_entries(self):
        raw = _dump(
            [
                {
                    "endTime": "2019-06-01 12:05",
                    "artistName": "Artist",
                    "trackName": "Song",
                    "msPlayed": 300_000,
                }
            ]
        )
        history = parse_streaming_history(raw)

        assert history.is_legacy
        assert history.legacy[0].artist_name == "Artist"
        assert history.legacy[0].played_at == utc(2019, 6, 1, 12, 0)


class TestInvalidFiles:
    """Test rejection of unsupported files."""

    @pytest.mark.parametrize(
        "raw",
        [
            b"not json",
            b"[]",
            b'{"ts": "2024-01-01T10:00:00Z"}',
            b'[{"foo": "bar"}]',
            b'["just a string"]',
        ],
    )
    def test_unsupported_documents(self, raw):
        with pytest.raises(InvalidUploadError):
            parse_streaming_history(raw)

    def test_mixed_formats_are_rejected(self):
        raw = _dump(
            [
                _extended_track("2024-01-01T10:00:00Z"),
                {
                    "endTime": "2019-06-01 12:05",
                    "artistName": "Artist",
                    "trackName": "Song",
                    "msPlayed": 300_000,
                },
            ]
        )
        with pytest.raises(InvalidUploadError, match="mixes"):
            parse_streaming_history(raw)
