"""Access to uploaded export files."""

import asyncio
from pathlib import Path
from urllib.parse import unquote, urlparse

from attrs import define, field
import backoff
import requests

from soundstats.config import get_logger, resilient_operation, settings
from soundstats.infrastructure.connectors.retry import NETWORK_ERRORS

logger = get_logger(__name__).bind(service="storage")


def local_path(file_url: str) -> Path | None:
    """Filesystem path for `file://` URLs and bare paths, None for remote URLs."""
    parsed = urlparse(file_url)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if parsed.scheme in ("http", "https"):
        return None
    return Path(file_url)


@define(slots=True)
class UploadStorage:
    """Reads upload contents from local disk or over HTTP."""

    timeout: float = field(factory=lambda: settings.api.request_timeout)
    session: requests.Session = field(factory=requests.Session, repr=False)

    def _download(self, file_url: str) -> bytes:
        response = self.session.get(file_url, timeout=self.timeout)
        response.raise_for_status()
        return response.content

    @resilient_operation("fetch_upload")
    @backoff.on_exception(
        backoff.expo,
        NETWORK_ERRORS,
        max_tries=3,
        jitter=backoff.full_jitter,
    )
    async def fetch(self, file_url: str) -> bytes:
        """Fetch the raw bytes of an uploaded file.

        Raises:
            OSError: Local file missing or unreadable
            requests.RequestException: Remote fetch failed
        """
        path = local_path(file_url)
        if path is not None:
            logger.debug(f"Reading upload from {path}")
            return await asyncio.to_thread(path.read_bytes)
        return await asyncio.to_thread(self._download, file_url)
