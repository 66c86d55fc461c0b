"""External service connectors: catalog, identity provider and upload storage."""

from .clerk import ClerkTokenProvider
from .spotify import SpotifyConnector, convert_spotify_track, to_now_playing
from .streaming_history import ParsedHistory, parse_streaming_history
from .upload_storage import UploadStorage

__all__ = [
    "ClerkTokenProvider",
    "ParsedHistory",
    "SpotifyConnector",
    "UploadStorage",
    "convert_spotify_track",
    "parse_streaming_history",
    "to_now_playing",
]
