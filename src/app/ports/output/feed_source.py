from __future__ import annotations

from abc import ABC, abstractmethod


class IFeedSource(ABC):
    """Port for retrieving the raw GTFS-Realtime payload."""

    @property
    @abstractmethod
    def address(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def fetch(self) -> bytes:
        """Return the payload bytes.

        Raises `NetworkError` or `UpstreamStatusError`. Must tolerate being
        cancelled mid-flight (fetch timeout).
        """

        raise NotImplementedError
