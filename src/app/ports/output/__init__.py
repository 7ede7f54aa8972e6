from .feed_decoder import IFeedDecoder
from .feed_source import IFeedSource

__all__ = [
    "IFeedDecoder",
    "IFeedSource",
]
