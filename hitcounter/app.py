"""
FastAPI application entry point for the hit counter service.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from hitcounter import __version__
from hitcounter.config import Settings, get_settings
from hitcounter.counter import CounterService
from hitcounter.routes import router

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Check the durable store at startup and close counters on shutdown."""
    settings: Settings = app.state.settings
    counters: CounterService = app.state.counter_service
    # The first connect and ping block, so they run off the event loop.
    durable = await run_in_threadpool(lambda: counters.durable_available)
    if durable:
        logger.info("counting in redis")
    elif settings.require_redis:
        raise RuntimeError("REQUIRE_REDIS is set but redis is not reachable")
    else:
        logger.info("counting in memory (redis unset or unreachable)")
    try:
        yield
    finally:
        logger.info("shutting down, persisting counters")
        await run_in_threadpool(counters.close)


def create_app(
    settings: Optional[Settings] = None,
    counter_service: Optional[CounterService] = None,
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Hit Counter", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.counter_service = counter_service or CounterService.from_settings(
        settings
    )
    app.include_router(router)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        allow_credentials=False,
        max_age=300,
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value
        # Routes that set their own caching policy keep it.
        if "cache-control" not in response.headers:
            response.headers["Cache-Control"] = "no-store"
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    return app
