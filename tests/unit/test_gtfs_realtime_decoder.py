from __future__ import annotations

import json

import pytest

from src.adapters.realtime.gtfs_realtime_decoder import (
    GtfsRealtimeDecoder,
    vehicle_record_from_mapping,
)
from src.app.services.snapshot_cache import SnapshotCache
from src.domain.exceptions import DecodeError


@pytest.mark.unit
def test_decode_single_vehicle(one_vehicle_feed: bytes) -> None:
    records = GtfsRealtimeDecoder().decode(one_vehicle_feed)

    assert len(records) == 1
    r = records[0]
    assert r.id == "veh-1"
    assert r.label == "10"
    assert r.lat == pytest.approx(51.75)
    assert r.lon == pytest.approx(19.45)
    assert r.bearing == pytest.approx(90.0)
    assert r.route_id == "10"
    assert r.trip_id == "trip-10"
    assert r.timestamp == 1_700_000_000_000
    assert r.direction_id is None


@pytest.mark.unit
def test_decode_skips_entities_without_position(build_feed) -> None:
    payload = build_feed(
        [
            {"vehicle_id": "a", "lat": 51.7, "lon": 19.4},
            {"vehicle_id": "b", "route_id": "3"},
            {"vehicle_id": "c", "lat": 51.8, "lon": 19.5},
        ]
    )

    records = GtfsRealtimeDecoder().decode(payload)

    assert [r.id for r in records] == ["a", "c"]


@pytest.mark.unit
def test_decode_keeps_explicit_zero_direction(build_feed) -> None:
    payload = build_feed(
        [
            {"vehicle_id": "a", "lat": 51.7, "lon": 19.4, "direction_id": 0},
            {"vehicle_id": "b", "lat": 51.7, "lon": 19.4, "direction_id": 1},
            {"vehicle_id": "c", "lat": 51.7, "lon": 19.4},
        ]
    )

    records = GtfsRealtimeDecoder().decode(payload)

    assert [r.direction_id for r in records] == [0, 1, None]


@pytest.mark.unit
def test_decode_derives_headsign_from_label(build_feed) -> None:
    payload = build_feed(
        [{"vehicle_id": "1201", "label": "12-Lagiewnicka", "lat": 51.7, "lon": 19.4}]
    )

    (record,) = GtfsRealtimeDecoder().decode(payload)

    assert record.headsign == "Lagiewnicka"
    assert record.label == "12-Lagiewnicka"


@pytest.mark.unit
def test_decode_falls_back_to_entity_id(build_feed) -> None:
    payload = build_feed([{"entity_id": "ent-42", "lat": 51.7, "lon": 19.4}])

    (record,) = GtfsRealtimeDecoder().decode(payload)

    assert record.id == "ent-42"
    assert record.label is None


@pytest.mark.unit
def test_decode_rejects_truncated_payload() -> None:
    # Field 1 claims 5 bytes but only 2 follow.
    with pytest.raises(DecodeError):
        GtfsRealtimeDecoder().decode(b"\x0a\x05ab")


@pytest.mark.unit
def test_mapping_accepts_snake_case_spellings() -> None:
    record = vehicle_record_from_mapping(
        {
            "trip": {"route_id": "7", "trip_id": "t-7", "direction_id": 0},
            "vehicle": {"id": "v7"},
            "position": {"latitude": 51.0, "longitude": 19.0},
        }
    )

    assert record is not None
    assert record.route_id == "7"
    assert record.trip_id == "t-7"
    assert record.direction_id == 0


@pytest.mark.unit
def test_mapping_prefers_explicit_headsign_over_label() -> None:
    record = vehicle_record_from_mapping(
        {
            "trip": {"tripHeadsign": "Kurczaki"},
            "vehicle": {"label": "12-Lagiewnicka"},
            "position": {"latitude": 51.0, "longitude": 19.0},
        }
    )

    assert record is not None
    assert record.headsign == "Kurczaki"


@pytest.mark.parametrize(
    ("position", "expected_none"),
    [
        ({"latitude": 51.0}, True),
        ({"longitude": 19.0}, True),
        ({}, True),
        ({"latitude": 0.0, "longitude": 0.0}, False),
    ],
)
@pytest.mark.unit
def test_mapping_requires_both_coordinates(position: dict, expected_none: bool) -> None:
    record = vehicle_record_from_mapping({"position": position})
    assert (record is None) is expected_none


@pytest.mark.unit
def test_mapping_vehicle_type_prefers_descriptor_type() -> None:
    both = vehicle_record_from_mapping(
        {
            "trip": {"routeType": 3},
            "vehicle": {"type": 0},
            "position": {"latitude": 51.0, "longitude": 19.0},
        }
    )
    trip_only = vehicle_record_from_mapping(
        {
            "trip": {"route_type": 3},
            "vehicle": {},
            "position": {"latitude": 51.0, "longitude": 19.0},
        }
    )

    assert both is not None and both.vehicle_type == 0
    assert trip_only is not None and trip_only.vehicle_type == 3


@pytest.mark.unit
def test_decode_drops_non_finite_coordinates_and_nulls_non_finite_numbers(
    build_feed,
) -> None:
    payload = build_feed(
        [
            {"vehicle_id": "nan-lat", "lat": float("nan"), "lon": 19.4},
            {"vehicle_id": "inf-lon", "lat": 51.7, "lon": float("inf")},
            {
                "vehicle_id": "ok",
                "lat": 51.7,
                "lon": 19.4,
                "bearing": float("nan"),
                "speed": float("-inf"),
            },
        ]
    )

    records = GtfsRealtimeDecoder().decode(payload)

    assert [r.id for r in records] == ["ok"]
    assert records[0].bearing is None
    assert records[0].speed is None
    # Whatever survives decoding must serialize to strict JSON.
    snap = SnapshotCache(clock_ms=lambda: 1000).commit(records)
    parsed = json.loads(snap.serialized, parse_constant=_reject_constant)
    assert parsed[0]["bearing"] is None


def _reject_constant(name: str) -> float:
    raise ValueError(f"non-JSON constant {name}")
