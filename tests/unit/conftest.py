from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable

import pytest
from google.transit import gtfs_realtime_pb2

from src.app.ports.output import IFeedSource


@pytest.fixture
def anyio_backend() -> str:
    # The refresher is built on asyncio tasks.
    return "asyncio"


def _build_feed(vehicles: list[dict[str, Any]]) -> bytes:
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.header.gtfs_realtime_version = "2.0"
    for i, v in enumerate(vehicles):
        ent = feed.entity.add()
        ent.id = v.get("entity_id", f"ent-{i}")
        vp = ent.vehicle
        if "route_id" in v:
            vp.trip.route_id = v["route_id"]
        if "trip_id" in v:
            vp.trip.trip_id = v["trip_id"]
        if "direction_id" in v:
            vp.trip.direction_id = v["direction_id"]
        if "vehicle_id" in v:
            vp.vehicle.id = v["vehicle_id"]
        if "label" in v:
            vp.vehicle.label = v["label"]
        if "lat" in v and "lon" in v:
            vp.position.latitude = v["lat"]
            vp.position.longitude = v["lon"]
            if "bearing" in v:
                vp.position.bearing = v["bearing"]
            if "speed" in v:
                vp.position.speed = v["speed"]
        if "timestamp" in v:
            vp.timestamp = v["timestamp"]
    return feed.SerializeToString()


@pytest.fixture
def build_feed() -> Callable[[list[dict[str, Any]]], bytes]:
    return _build_feed


@pytest.fixture
def one_vehicle_feed() -> bytes:
    return _build_feed(
        [
            {
                "entity_id": "veh-1",
                "vehicle_id": "veh-1",
                "label": "10",
                "route_id": "10",
                "trip_id": "trip-10",
                "lat": 51.75,
                "lon": 19.45,
                "bearing": 90.0,
                "timestamp": 1_700_000_000,
            }
        ]
    )


@dataclass(slots=True)
class FakeFeedSource(IFeedSource):
    payload: bytes = b""
    delay_s: float = 0.0
    error: Exception | None = None
    name: str = "test://feed"
    calls: int = 0

    @property
    def address(self) -> str:
        return self.name

    async def fetch(self) -> bytes:
        self.calls += 1
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return self.payload


@dataclass(slots=True)
class HangingFeedSource(IFeedSource):
    name: str = "test://slow"
    calls: int = 0
    cancelled: int = 0
    _never: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def address(self) -> str:
        return self.name

    async def fetch(self) -> bytes:
        self.calls += 1
        try:
            await self._never.wait()
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        return b""


@pytest.fixture
def fake_source_cls() -> type[FakeFeedSource]:
    return FakeFeedSource


@pytest.fixture
def hanging_source_cls() -> type[HangingFeedSource]:
    return HangingFeedSource
