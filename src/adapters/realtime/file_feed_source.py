from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

from src.app.ports.output import IFeedSource
from src.domain.exceptions import NetworkError


@dataclass(slots=True)
class FileFeedSource(IFeedSource):
    """Reads a GTFS-Realtime payload from the local filesystem (handy for replays)."""

    path: Path

    @property
    def address(self) -> str:
        return self.path.as_uri() if self.path.is_absolute() else str(self.path)

    async def fetch(self) -> bytes:
        try:
            return await asyncio.to_thread(self.path.read_bytes)
        except OSError as exc:
            raise NetworkError(f"Failed to read {self.path}: {exc.strerror or exc}") from exc
