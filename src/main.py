from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from src.adapters.api.controllers.positions import router as positions_router
from src.adapters.config import FeedSettings
from src.adapters.realtime import GtfsRealtimeDecoder, build_feed_source
from src.app.ports.output import IFeedDecoder, IFeedSource
from src.app.services.feed_refresher import FeedRefresher
from src.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def build_refresher(
    settings: FeedSettings,
    *,
    source: IFeedSource | None = None,
    decoder: IFeedDecoder | None = None,
) -> FeedRefresher:
    if source is None:
        source = build_feed_source(
            settings.feed_url,
            headers_raw=settings.feed_headers,
            timeout_s=settings.fetch_timeout_ms / 1000,
        )
    return FeedRefresher(
        source=source,
        decoder=decoder or GtfsRealtimeDecoder(),
        refresh_interval_ms=settings.refresh_interval_ms,
        stale_after_ms=settings.stale_after_ms,
        fetch_timeout_ms=settings.fetch_timeout_ms,
        max_backoff_ms=settings.max_backoff_ms,
    )


def create_app(
    settings: FeedSettings | None = None,
    *,
    refresher: FeedRefresher | None = None,
) -> FastAPI:
    """Wire the refresher into a FastAPI app.

    The lifespan performs the first refresh before serving and stops the
    schedule on shutdown. Static assets are mounted last so API routes win.
    """

    if settings is None:
        settings = FeedSettings.from_env()
    if refresher is None:
        refresher = build_refresher(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await refresher.start()
        try:
            yield
        finally:
            await refresher.stop()

    app = FastAPI(title="MPK Live Positions", lifespan=lifespan)
    app.state.refresher = refresher
    app.state.settings = settings
    app.add_middleware(GZipMiddleware, minimum_size=512)
    app.include_router(positions_router)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Keep error bodies JSON so map clients can always parse them."""

        logging.getLogger("uvicorn.error").exception(
            "Unhandled exception", extra={"path": str(request.url.path)}
        )
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    static_dir = settings.static_dir
    if static_dir is not None and static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    elif static_dir is not None:
        logger.info("Static directory %s not found; serving API only", static_dir)

    return app


def run() -> None:
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        settings = FeedSettings.from_env()
        app = create_app(settings)
    except ConfigurationError as exc:
        logger.error("Invalid configuration: %s", exc)
        raise SystemExit(2) from exc
    logging.getLogger().setLevel(settings.log_level)

    logger.info("MPK realtime positions running on http://%s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
