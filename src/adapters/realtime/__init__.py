from __future__ import annotations

from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

from src.app.ports.output import IFeedSource
from src.domain.exceptions import ConfigurationError

from .file_feed_source import FileFeedSource
from .gtfs_realtime_decoder import GtfsRealtimeDecoder
from .http_feed_source import HttpFeedSource


def build_feed_source(
    address: str, *, headers_raw: str | None = None, timeout_s: float = 10.0
) -> IFeedSource:
    """HTTP(S) URLs go through httpx; `file://` URLs and bare paths are read from disk."""

    parsed = urlparse(address)
    if parsed.scheme in {"http", "https"}:
        return HttpFeedSource(url=address, headers_raw=headers_raw, timeout_s=timeout_s)
    if parsed.scheme == "file":
        return FileFeedSource(path=Path(url2pathname(parsed.path)))
    if parsed.scheme and "://" in address:
        raise ConfigurationError(f"Unsupported feed URL scheme: {parsed.scheme!r}")
    return FileFeedSource(path=Path(address))


__all__ = [
    "FileFeedSource",
    "GtfsRealtimeDecoder",
    "HttpFeedSource",
    "build_feed_source",
]
