from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from google.protobuf.json_format import MessageToDict
from google.protobuf.message import DecodeError as ProtobufDecodeError
from google.transit import gtfs_realtime_pb2

from src.app.ports.output import IFeedDecoder
from src.domain.algorithms.headsign import derive_headsign_from_label
from src.domain.exceptions import DecodeError
from src.domain.models.realtime import VehicleRecord

# Checked in order; the first non-empty value wins.
_HEADSIGN_TRIP_KEYS = (
    "tripHeadsign",
    "trip_headsign",
    "headsign",
    "tripDestination",
    "destination",
)


@dataclass(slots=True)
class GtfsRealtimeDecoder(IFeedDecoder):
    """Decodes a GTFS-Realtime VehiclePositions FeedMessage.

    Each entity is converted with `MessageToDict` (so only fields actually set
    upstream are present) and then normalized by `vehicle_record_from_mapping`.
    """

    def decode(self, content: bytes) -> tuple[VehicleRecord, ...]:
        feed = gtfs_realtime_pb2.FeedMessage()
        try:
            feed.ParseFromString(content)
        except ProtobufDecodeError as exc:
            raise DecodeError(f"Malformed GTFS-Realtime payload: {exc}") from exc

        out: list[VehicleRecord] = []
        for ent in feed.entity:
            if not ent.HasField("vehicle"):
                continue
            record = vehicle_record_from_mapping(
                MessageToDict(ent.vehicle), entity_id=ent.id or None
            )
            if record is not None:
                out.append(record)
        return tuple(out)


def _first(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value is not None and value != "":
            return value
    return None


def _optional_float(value: Any) -> float | None:
    # NaN and Inf count as missing; they have no JSON representation.
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def vehicle_record_from_mapping(
    vehicle: Mapping[str, Any], *, entity_id: str | None = None
) -> VehicleRecord | None:
    """Normalize one VehiclePosition mapping.

    Accepts both camelCase (JSON mapping) and snake_case (proto field name)
    spellings. Returns None when the position or either coordinate is missing.
    """

    position = vehicle.get("position") or {}
    lat = _optional_float(position.get("latitude"))
    lon = _optional_float(position.get("longitude"))
    if lat is None or lon is None:
        return None

    trip: Mapping[str, Any] = vehicle.get("trip") or {}
    descriptor: Mapping[str, Any] = vehicle.get("vehicle") or {}

    label = _optional_str(_first(descriptor, "label", "id"))

    headsign = _first(vehicle, "headsign") or _first(trip, *_HEADSIGN_TRIP_KEYS)
    if not headsign:
        headsign = derive_headsign_from_label(label)

    # Presence matters: an explicit 0 is a real direction.
    direction_id = None
    for key in ("directionId", "direction_id"):
        if key in trip:
            direction_id = _optional_int(trip[key])
            break

    # Descriptor type first, then the trip's route type.
    vehicle_type = _optional_int(_first(descriptor, "type", "vehicleType", "vehicle_type"))
    if vehicle_type is None:
        vehicle_type = _optional_int(_first(trip, "routeType", "route_type"))

    timestamp_s = _optional_int(vehicle.get("timestamp"))

    return VehicleRecord(
        id=_optional_str(_first(descriptor, "id", "label")) or entity_id,
        label=label,
        lat=lat,
        lon=lon,
        bearing=_optional_float(position.get("bearing")),
        speed=_optional_float(position.get("speed")),
        route_id=_optional_str(_first(trip, "routeId", "route_id")),
        trip_id=_optional_str(_first(trip, "tripId", "trip_id")),
        timestamp=timestamp_s * 1000 if timestamp_s else None,
        headsign=_optional_str(headsign),
        direction_id=direction_id,
        vehicle_type=vehicle_type,
    )
