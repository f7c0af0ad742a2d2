from __future__ import annotations

from fastapi import FastAPI

from meetai.db.session import init_db
from meetai.logging import configure_logging
from meetai.settings import get_settings

from meetai.api.routes_debug import router as debug_router
from meetai.api.routes_health import router as health_router
from meetai.api.routes_webhooks_stream import router as stream_router


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, log_sql=settings.LOG_SQL)

    # Validate configuration and fail fast if critical errors found
    settings.validate_and_fail_fast()

    if settings.DB_AUTO_CREATE:
        init_db()

    app = FastAPI(
        title="Meet.AI Webhook Service",
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
    )

    app.include_router(health_router)
    app.include_router(stream_router)
    app.include_router(debug_router)
    return app


app = create_app()
