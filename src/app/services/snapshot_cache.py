from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Callable, Sequence

from src.domain.models.realtime import VehicleRecord
from src.domain.models.snapshot import Snapshot, compute_fingerprint, serialize_records


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(slots=True)
class SnapshotCache:
    """Holds the single process-wide `Snapshot`.

    Every write swaps in a new frozen instance, so a reader holding the result
    of `current()` always sees a consistent view. The refresher is the only
    writer.
    """

    clock_ms: Callable[[], int] = _now_ms
    _snapshot: Snapshot = field(default_factory=Snapshot, init=False)

    def current(self) -> Snapshot:
        return self._snapshot

    def commit(self, records: Sequence[VehicleRecord]) -> Snapshot:
        items = tuple(records)
        serialized = serialize_records(items)
        updated_at_ms = self.clock_ms()
        snapshot = Snapshot(
            records=items,
            serialized=serialized,
            fingerprint=compute_fingerprint(serialized, updated_at_ms),
            updated_at_ms=updated_at_ms,
            last_error=None,
            consecutive_failures=0,
        )
        self._snapshot = snapshot
        return snapshot

    def record_failure(self, error: BaseException) -> Snapshot:
        # Records and updated_at stay as-is so stale data keeps serving.
        prev = self._snapshot
        snapshot = replace(
            prev,
            last_error=error,
            consecutive_failures=prev.consecutive_failures + 1,
        )
        self._snapshot = snapshot
        return snapshot
