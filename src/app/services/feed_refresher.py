from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from src.app.ports.output import IFeedDecoder, IFeedSource
from src.app.services.snapshot_cache import SnapshotCache
from src.domain.algorithms.backoff import backoff_delay_ms
from src.domain.exceptions import NetworkError
from src.domain.models.snapshot import Snapshot

logger = logging.getLogger(__name__)


class RefresherState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"
    SCHEDULED = "scheduled"


@dataclass(frozen=True, slots=True)
class FeedStatus:
    """Read-time view of the cache: staleness is derived here, never stored."""

    snapshot: Snapshot
    now_ms: int
    staleness_ms: int | None
    is_stale: bool

    @property
    def healthy(self) -> bool:
        return self.snapshot.last_error is None and not self.is_stale


@dataclass(slots=True)
class FeedRefresher:
    """Fetch -> decode -> commit, with single-flight refreshes and backoff.

    - `refresh()` collapses concurrent callers onto one in-flight task.
    - `schedule_next()` arms a one-shot timer that refreshes and re-arms itself.
    - `ensure_fresh()` is what request handlers call; it only blocks when a
      refresh is already running or nothing was ever fetched.
    """

    source: IFeedSource
    decoder: IFeedDecoder
    cache: SnapshotCache = field(default_factory=SnapshotCache)
    refresh_interval_ms: int = 30_000
    stale_after_ms: int = 120_000
    fetch_timeout_ms: int = 10_000
    max_backoff_ms: int = 300_000

    _in_flight: asyncio.Task[Snapshot] | None = field(
        default=None, init=False, repr=False
    )
    _timer: asyncio.Task[None] | None = field(default=None, init=False, repr=False)
    _scheduled_delay_ms: int | None = field(default=None, init=False, repr=False)
    _stopped: bool = field(default=False, init=False, repr=False)

    @property
    def state(self) -> RefresherState:
        if self._in_flight is not None and not self._in_flight.done():
            return RefresherState.REFRESHING
        if self._timer is not None and not self._timer.done():
            return RefresherState.SCHEDULED
        return RefresherState.IDLE

    @property
    def scheduled_delay_ms(self) -> int | None:
        if self.state is RefresherState.SCHEDULED:
            return self._scheduled_delay_ms
        return None

    def current(self) -> Snapshot:
        return self.cache.current()

    def status(self) -> FeedStatus:
        snapshot = self.cache.current()
        now_ms = self.cache.clock_ms()
        staleness_ms = snapshot.staleness_ms(now_ms)
        is_stale = staleness_ms is None or staleness_ms > self.stale_after_ms
        return FeedStatus(
            snapshot=snapshot,
            now_ms=now_ms,
            staleness_ms=staleness_ms,
            is_stale=is_stale,
        )

    def next_delay_ms(self) -> int:
        return backoff_delay_ms(
            self.refresh_interval_ms,
            self.cache.current().consecutive_failures,
            self.max_backoff_ms,
        )

    async def refresh(self) -> Snapshot:
        task = self._in_flight
        if task is None:
            task = asyncio.create_task(self._refresh_once())
            self._in_flight = task
            # Runs on success, failure and cancellation alike.
            task.add_done_callback(self._release_in_flight)
        # Shield so one impatient caller cannot cancel the shared fetch.
        return await asyncio.shield(task)

    async def ensure_fresh(self) -> Snapshot:
        task = self._in_flight
        if task is not None:
            return await asyncio.shield(task)
        if not self.cache.current().has_data:
            return await self.refresh()
        return self.cache.current()

    def schedule_next(self) -> int:
        timer = self._timer
        if (
            timer is not None
            and not timer.done()
            and timer is not asyncio.current_task()
        ):
            timer.cancel()

        delay_ms = self.next_delay_ms()
        self._scheduled_delay_ms = delay_ms
        self._timer = asyncio.create_task(self._fire_after(delay_ms))
        return delay_ms

    async def start(self) -> Snapshot:
        self._stopped = False
        snapshot = await self.refresh()
        if not self._stopped:
            delay_ms = self.schedule_next()
            logger.info(
                "Fetching vehicle positions from %s every %ss (next in %dms)",
                self.source.address,
                self.refresh_interval_ms / 1000,
                delay_ms,
            )
        return snapshot

    async def stop(self) -> None:
        self._stopped = True
        pending = [
            t for t in (self._timer, self._in_flight) if t is not None and not t.done()
        ]
        self._timer = None
        self._scheduled_delay_ms = None
        for task in pending:
            task.cancel()
        for task in pending:
            try:
                await task
            except asyncio.CancelledError:
                logger.debug("Feed refresher task cancelled")
        if pending:
            logger.info("Stopped feed refresher")

    async def _fire_after(self, delay_ms: int) -> None:
        await asyncio.sleep(delay_ms / 1000)
        await self.refresh()
        if not self._stopped:
            self.schedule_next()

    async def _refresh_once(self) -> Snapshot:
        try:
            content = await asyncio.wait_for(
                self.source.fetch(), timeout=self.fetch_timeout_ms / 1000
            )
            records = self.decoder.decode(content)
            snapshot = self.cache.commit(records)
        except asyncio.TimeoutError:
            return self._record_failure(
                NetworkError(f"Fetch timed out after {self.fetch_timeout_ms}ms")
            )
        except Exception as exc:
            return self._record_failure(exc)

        logger.info("Updated positions: %d", len(snapshot.records))
        return snapshot

    def _record_failure(self, error: Exception) -> Snapshot:
        snapshot = self.cache.record_failure(error)
        logger.warning(
            "Failed to update feed from %s (%d consecutive): %s; retrying in %dms",
            self.source.address,
            snapshot.consecutive_failures,
            snapshot.last_error_message,
            self.next_delay_ms(),
        )
        return snapshot

    def _release_in_flight(self, task: asyncio.Task[Snapshot]) -> None:
        if self._in_flight is task:
            self._in_flight = None
