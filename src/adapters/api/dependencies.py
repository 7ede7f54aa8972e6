from __future__ import annotations

from fastapi import Request

from src.app.services.feed_refresher import FeedRefresher


def get_feed_refresher(request: Request) -> FeedRefresher:
    # Set by the app factory; one instance per process.
    refresher = getattr(request.app.state, "refresher", None)
    if refresher is None:
        raise RuntimeError("Feed refresher not configured")
    return refresher
