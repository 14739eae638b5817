"""FastAPI application entry point for the URL shortener service.

This module builds the FastAPI application: shared resources, middleware,
exception handlers, metrics, lifecycle management and routes.

Application Lifecycle Diagram
===========================
::
    ┌──────────────┐
    │ create_app() │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Database +   │
    │ TitleFetcher │
    │ → app.state  │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ CORS, error  │
    │ handlers,    │
    │ /metrics     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ startup:     │
    │ create_all() │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Serve HTTP   │
    │ requests     │
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ lifespan()   │
    │ shutdown:    │
    │ close client,│
    │ dispose DB   │
    └──────────────┘

How to Use
===========
**Step 1 — Run with uvicorn**::
    uvicorn app.main:app --host 0.0.0.0 --port 8000 --reload

**Step 2 — Make API calls**::
    # Health check
    curl http://localhost:8000/health

    # Shorten URL
    curl -X POST http://localhost:8000/api/urls \\
         -H "Content-Type: application/json" \\
         -d '{"originalUrl": "example.com"}'

    # Follow it
    curl -i http://localhost:8000/<shortCode>

Key Behaviours
===============
- Resources are constructed explicitly here and injected via ``app.state``.
- Tables are created on startup (no migrations).
- Every error leaves the API as ``{"error": {"code": ..., "message": ...}}``.
- Prometheus metrics are exposed on /metrics.

Configuration:
    The app uses environment variables for configuration.
    See app/config.py for all available settings.
"""

__all__ = ["app", "create_app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from app.config import Settings, get_settings
from app.database import Database
from app.dependencies import setup_logging
from app.errors import register_exception_handlers
from app.routes import router
from app.title_fetcher import TitleFetcher


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await app.state.database.create_all()
    yield
    # Shutdown
    await app.state.title_fetcher.aclose()
    await app.state.database.dispose()


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    title_fetcher: TitleFetcher | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    logger = setup_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="URL shortener API: create short links, resolve them and track clicks",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database or Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    app.state.title_fetcher = title_fetcher or TitleFetcher.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
        excluded_handlers=["/metrics"],
    ).instrument(app).expose(app)

    app.include_router(router)
    logger.info(f"{settings.APP_NAME} configured ({settings.APP_ENV}), base URL {settings.BASE_URL}")
    return app


app = create_app()
