from __future__ import annotations

MAX_BACKOFF_MULTIPLIER = 16


def backoff_delay_ms(
    base_interval_ms: int,
    consecutive_failures: int,
    max_backoff_ms: int,
    max_multiplier: int = MAX_BACKOFF_MULTIPLIER,
) -> int:
    """Delay before the next refresh attempt.

    No failures (or one) keeps the base interval; each further failure doubles
    it. The multiplier itself is capped so a long outage cannot grow the
    exponent without bound, and the result never exceeds `max_backoff_ms`.
    """

    exponent = max(0, consecutive_failures - 1)
    # Bound the exponent before raising 2 to it.
    multiplier = min(2 ** min(exponent, 62), max_multiplier)
    return int(min(base_interval_ms * multiplier, max_backoff_ms))
