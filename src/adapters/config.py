from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from src.domain.exceptions import ConfigurationError

DEFAULT_FEED_URL = (
    "https://otwarte.miasto.lodz.pl/transport_komunikacja/vehicle_positions"
)
DEFAULT_REFRESH_INTERVAL_MS = 30_000
MIN_REFRESH_INTERVAL_MS = 5_000
DEFAULT_STALE_MULTIPLIER = 4
MIN_STALE_MULTIPLIER = 2
DEFAULT_FETCH_TIMEOUT_MS = 10_000
MIN_MAX_BACKOFF_MS = 5 * 60 * 1000


def _env_str(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    return raw.strip() or None


def _env_int(name: str) -> int | None:
    raw = _env_str(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def default_max_backoff_ms(refresh_interval_ms: int) -> int:
    return max(refresh_interval_ms * 8, MIN_MAX_BACKOFF_MS)


@dataclass(frozen=True, slots=True)
class FeedSettings:
    """Runtime configuration.

    Constructed directly, values are kept as given (after a sanity check).
    `from_env()` applies defaults and clamps:
      - REFRESH_INTERVAL_MS: default 30000, at least 5000
      - STALE_AFTER_MS: default 4x interval, at least 2x interval
      - FETCH_TIMEOUT_MS: default 10000
      - MAX_BACKOFF_MS: default max(8x interval, 5 min); values <= interval
        fall back to the default
    """

    feed_url: str = DEFAULT_FEED_URL
    refresh_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS
    stale_after_ms: int = DEFAULT_REFRESH_INTERVAL_MS * DEFAULT_STALE_MULTIPLIER
    fetch_timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS
    max_backoff_ms: int = default_max_backoff_ms(DEFAULT_REFRESH_INTERVAL_MS)
    feed_headers: str | None = None
    static_dir: Path | None = Path("public")
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.feed_url or not self.feed_url.strip():
            raise ConfigurationError("FEED_URL is required")
        for name in (
            "refresh_interval_ms",
            "stale_after_ms",
            "fetch_timeout_ms",
            "max_backoff_ms",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        if not (0 <= self.port <= 65535):
            raise ConfigurationError(f"Invalid port: {self.port}")

    @staticmethod
    def from_env() -> "FeedSettings":
        raw_feed_url = os.getenv("FEED_URL")
        if raw_feed_url is not None and not raw_feed_url.strip():
            raise ConfigurationError("FEED_URL is set but empty")
        feed_url = (raw_feed_url or DEFAULT_FEED_URL).strip()

        interval = _env_int("REFRESH_INTERVAL_MS")
        if interval is None:
            interval = DEFAULT_REFRESH_INTERVAL_MS
        interval = max(interval, MIN_REFRESH_INTERVAL_MS)

        stale_after = _env_int("STALE_AFTER_MS")
        if stale_after is None:
            stale_after = interval * DEFAULT_STALE_MULTIPLIER
        stale_after = max(stale_after, interval * MIN_STALE_MULTIPLIER)

        fetch_timeout = _env_int("FETCH_TIMEOUT_MS")
        if fetch_timeout is None:
            fetch_timeout = DEFAULT_FETCH_TIMEOUT_MS
        if fetch_timeout <= 0:
            raise ConfigurationError("FETCH_TIMEOUT_MS must be positive")

        max_backoff = _env_int("MAX_BACKOFF_MS")
        if max_backoff is None or max_backoff <= interval:
            max_backoff = default_max_backoff_ms(interval)

        static_dir = _env_str("STATIC_DIR")
        port = _env_int("PORT")
        log_level = (_env_str("LOG_LEVEL") or "INFO").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigurationError(f"Unknown LOG_LEVEL: {log_level!r}")

        return FeedSettings(
            feed_url=feed_url,
            refresh_interval_ms=interval,
            stale_after_ms=stale_after,
            fetch_timeout_ms=fetch_timeout,
            max_backoff_ms=max_backoff,
            feed_headers=_env_str("FEED_HEADERS"),
            static_dir=Path(static_dir) if static_dir else Path("public"),
            host=_env_str("HOST") or "0.0.0.0",
            port=3000 if port is None else port,
            log_level=log_level,
        )
