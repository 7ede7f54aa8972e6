from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VehicleSchema(_CamelModel):
    id: str | None = None
    label: str | None = None
    lat: float
    lon: float
    bearing: float | None = None
    speed: float | None = None
    route_id: str | None = None
    trip_id: str | None = None
    timestamp: int | None = None
    headsign: str | None = None
    direction_id: int | None = None
    vehicle_type: int | None = None


class HealthSchema(_CamelModel):
    ok: bool
    feed_url: str
    refresh_interval_ms: int
    stale_after_ms: int
    fetch_timeout_ms: int
    max_backoff_ms: int
    last_updated_at: datetime | None = None
    staleness_ms: int | None = None
    consecutive_failures: int = 0
    last_error: str | None = None
