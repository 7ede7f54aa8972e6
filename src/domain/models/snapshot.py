from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Sequence

from src.domain.models.realtime import VehicleRecord

EMPTY_FINGERPRINT = 'W/"empty"'


def serialize_records(records: Sequence[VehicleRecord]) -> bytes:
    return json.dumps(
        [r.to_payload() for r in records],
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def compute_fingerprint(serialized: bytes, updated_at_ms: int | None) -> str:
    """Quoted validator: `"<updated_at_ms>-<sha1 of body>"`."""

    if not updated_at_ms:
        return EMPTY_FINGERPRINT
    digest = hashlib.sha1(serialized).hexdigest()  # nosec B324 - not for security
    return f'"{updated_at_ms}-{digest}"'


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Latest decoded view of the feed.

    Replaced wholesale on every commit or failure; never mutated.
    """

    records: tuple[VehicleRecord, ...] = ()
    serialized: bytes = b"[]"
    fingerprint: str = EMPTY_FINGERPRINT
    updated_at_ms: int | None = None
    last_error: BaseException | None = None
    consecutive_failures: int = 0

    @property
    def has_data(self) -> bool:
        return self.updated_at_ms is not None

    def staleness_ms(self, now_ms: int) -> int | None:
        if self.updated_at_ms is None:
            return None
        return max(0, now_ms - self.updated_at_ms)

    @property
    def last_error_message(self) -> str | None:
        if self.last_error is None:
            return None
        return str(self.last_error) or self.last_error.__class__.__name__
