from .feed import (
    ConfigurationError,
    DecodeError,
    FeedError,
    NetworkError,
    UpstreamStatusError,
)

__all__ = [
    "ConfigurationError",
    "DecodeError",
    "FeedError",
    "NetworkError",
    "UpstreamStatusError",
]
