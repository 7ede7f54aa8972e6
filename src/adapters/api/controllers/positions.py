from __future__ import annotations

import math
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse, Response

from src.adapters.api.dependencies import get_feed_refresher
from src.adapters.api.schemas.positions import HealthSchema, VehicleSchema
from src.app.services.feed_refresher import FeedRefresher, FeedStatus

router = APIRouter(tags=["positions"])

CACHE_CONTROL = "public, max-age=1, must-revalidate"
_MAX_HEADER_LEN = 200


def _ms_to_datetime(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def _iso(ms: int) -> str:
    return (
        _ms_to_datetime(ms).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    )


def _header_safe(text: str) -> str:
    # Header values must be single-line latin-1.
    flat = " ".join(text.split())[:_MAX_HEADER_LEN]
    return flat.encode("latin-1", "replace").decode("latin-1")


def _etag_matches(if_none_match: str | None, etag: str) -> bool:
    if not if_none_match:
        return False

    def _opaque(tag: str) -> str:
        tag = tag.strip()
        return tag[2:] if tag.startswith("W/") else tag

    candidates = {_opaque(t) for t in if_none_match.split(",")}
    return "*" in candidates or _opaque(etag) in candidates


def feed_headers(status: FeedStatus, refresh_interval_ms: int) -> dict[str, str]:
    snapshot = status.snapshot
    headers = {
        "ETag": snapshot.fingerprint,
        "Cache-Control": CACHE_CONTROL,
    }
    if snapshot.updated_at_ms is not None:
        headers["X-Feed-Updated-At"] = _iso(snapshot.updated_at_ms)
        headers["X-Feed-Staleness-Ms"] = str(status.staleness_ms)

    if status.is_stale:
        headers["X-Feed-Stale"] = "true"
        if status.staleness_ms is None:
            headers["X-Feed-Warning"] = "No successful feed update yet"
        else:
            headers["X-Feed-Warning"] = (
                f"Feed data is stale ({status.staleness_ms}ms since last update)"
            )

    error = snapshot.last_error_message
    if error is not None:
        headers["X-Feed-Error"] = _header_safe(error)

    if status.is_stale or error is not None:
        headers["Retry-After"] = str(max(1, math.ceil(refresh_interval_ms / 1000)))
    return headers


@router.get(
    "/positions",
    responses={
        200: {"model": list[VehicleSchema]},
        304: {"description": "Snapshot unchanged since the given ETag"},
        503: {
            "model": list[VehicleSchema],
            "description": "Feed is stale; body holds the last good snapshot",
        },
    },
)
async def get_positions(
    if_none_match: str | None = Header(default=None),
    refresher: FeedRefresher = Depends(get_feed_refresher),
) -> Response:
    await refresher.ensure_fresh()
    status = refresher.status()
    headers = feed_headers(status, refresher.refresh_interval_ms)

    if not status.is_stale and _etag_matches(
        if_none_match, status.snapshot.fingerprint
    ):
        return Response(status_code=304, headers=headers)

    return Response(
        content=status.snapshot.serialized,
        media_type="application/json",
        status_code=503 if status.is_stale else 200,
        headers=headers,
    )


@router.get(
    "/healthz",
    response_model=HealthSchema,
    responses={503: {"model": HealthSchema}},
)
async def healthz(
    refresher: FeedRefresher = Depends(get_feed_refresher),
) -> JSONResponse:
    status = refresher.status()
    snapshot = status.snapshot
    body = HealthSchema(
        ok=status.healthy,
        feed_url=refresher.source.address,
        refresh_interval_ms=refresher.refresh_interval_ms,
        stale_after_ms=refresher.stale_after_ms,
        fetch_timeout_ms=refresher.fetch_timeout_ms,
        max_backoff_ms=refresher.max_backoff_ms,
        last_updated_at=(
            _ms_to_datetime(snapshot.updated_at_ms)
            if snapshot.updated_at_ms is not None
            else None
        ),
        staleness_ms=status.staleness_ms,
        consecutive_failures=snapshot.consecutive_failures,
        last_error=snapshot.last_error_message,
    )
    return JSONResponse(
        status_code=200 if body.ok else 503,
        content=body.model_dump(mode="json", by_alias=True),
        headers={"Cache-Control": "no-store"},
    )
