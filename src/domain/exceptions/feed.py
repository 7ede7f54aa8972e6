class FeedError(Exception):
    """Base exception for a failed feed refresh. Recorded, never fatal."""


class NetworkError(FeedError):
    """Connection, DNS, read or timeout failure while fetching the feed."""


class UpstreamStatusError(FeedError):
    """Upstream answered with a non-success HTTP status."""

    def __init__(self, status_code: int, reason: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"HTTP {status_code} {reason}".strip())


class DecodeError(FeedError):
    """Payload could not be parsed as a GTFS-Realtime FeedMessage."""


class ConfigurationError(Exception):
    """Invalid startup configuration. Aborts startup."""
