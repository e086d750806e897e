from contextlib import asynccontextmanager
from typing import Any, Optional, cast

import anyio
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from weblog.api import content
from weblog.core.caches import WebLogCaches
from weblog.core.config import settings
from weblog.core.context import get_context_dict
from weblog.core.errors import capture_exception, init_sentry
from weblog.core.logging_config import get_logger
from weblog.data import SqlWebLogData, WebLogData
from weblog.db import create_db_and_tables, engine
from weblog.middleware.context import RequestContextMiddleware

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Limit AnyIO worker threads; every storage call runs on one
    thread_limiter = anyio.to_thread.current_default_thread_limiter()  # type: ignore[attr-defined]
    max_workers = max(1, settings.THREADPOOL_MAX_WORKERS)
    if thread_limiter.total_tokens != max_workers:
        logger.info("Configuring AnyIO thread limiter", workers=max_workers)
        thread_limiter.total_tokens = max_workers

    init_sentry(settings.SENTRY_DSN, environment=settings.ENVIRONMENT)

    if getattr(app.state, "data", None) is None:
        create_db_and_tables(engine)
        app.state.data = SqlWebLogData(engine)

    caches: WebLogCaches = app.state.caches
    await caches.fill(app.state.data)
    logger.info("myWebLog started", **caches.stats())
    yield


async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    capture_exception(exc, context={**get_context_dict(), "path": request.scope["path"]})
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(data: Optional[WebLogData] = None, caches: Optional[WebLogCaches] = None) -> FastAPI:
    """
    Build the application.

    Args:
        data: Storage (defaults to SQL storage on the configured database)
        caches: Caches (a fresh set is created when omitted)
    """
    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)
    app.state.data = data
    app.state.caches = caches or WebLogCaches()

    app.add_middleware(cast(Any, RequestContextMiddleware))
    # Trust X-Forwarded-* so web logs are matched on the public scheme and host
    app.add_middleware(cast(Any, ProxyHeadersMiddleware), trusted_hosts=["*"])
    app.add_exception_handler(Exception, unhandled_exception)

    @app.get("/health")
    def health():
        """Basic health check endpoint."""
        return {"status": "healthy"}

    @app.get("/health/caches")
    def health_caches(request: Request):
        return request.app.state.caches.stats()

    # Catch-all; must be registered last
    app.include_router(content.router, tags=["content"])
    return app


app = create_app()
