from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class VehicleRecord:
    lat: float
    lon: float
    id: str | None = None
    label: str | None = None
    bearing: float | None = None
    speed: float | None = None
    route_id: str | None = None
    trip_id: str | None = None
    # Milliseconds since epoch.
    timestamp: int | None = None
    headsign: str | None = None
    direction_id: int | None = None
    vehicle_type: int | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "lat": self.lat,
            "lon": self.lon,
            "bearing": self.bearing,
            "speed": self.speed,
            "routeId": self.route_id,
            "tripId": self.trip_id,
            "timestamp": self.timestamp,
            "headsign": self.headsign,
            "directionId": self.direction_id,
            "vehicleType": self.vehicle_type,
        }
