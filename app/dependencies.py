"""Dependency injection for request context, identity and services.

This module provides the FastAPI dependencies every endpoint uses: a
per-request ``RequestContext`` carrying the database session, settings, the
shared title fetcher and a context-aware logger; the caller's ``AuthContext``;
and service factories built from both.

Shared resources (database engine, HTTP client) are constructed by
``create_app`` and live on ``app.state``; nothing here is a module-level
singleton, so tests swap them through ``app.dependency_overrides``.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import AuthContext, AuthService
from app.config import Settings, get_settings
from app.database import get_db
from app.errors import UnauthorizedError
from app.title_fetcher import TitleFetcher
from app.url_service import URLShorteningService

__all__ = [
    "RequestContext",
    "get_auth_context",
    "get_auth_service",
    "get_request_context",
    "get_title_fetcher",
    "get_url_service",
    "require_auth",
    "setup_logging",
]

LOGGER_NAME = "urlshortener"

bearer_scheme = HTTPBearer(auto_error=False, description="Session token from /api/auth/login")


# ============================================================================
# LOGGING
# ============================================================================


def setup_logging(settings: Settings) -> logging.Logger:
    """Configure the application logger once."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(settings.LOG_LEVEL.upper())
    return logger


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Request context with tracking and shared resource access.

    Attributes:
        database: Async database session (the only per-request resource)
        settings: Application settings
        title_fetcher: Shared page-title fetcher
        request_id: Unique identifier for this request
        trace_id: Correlation ID taken from ``X-Trace-ID`` when present
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
        tags: Request tags for categorization
    """

    database: AsyncSession
    settings: Settings
    title_fetcher: TitleFetcher
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    trace_id: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=time.time)
    tags: list[str] = field(default_factory=list)

    @property
    def logger(self) -> logging.LoggerAdapter:
        return logging.LoggerAdapter(
            logging.getLogger(LOGGER_NAME),
            {
                "request_id": self.request_id,
                "trace_id": self.trace_id or self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
                "tags": ",".join(self.tags),
            },
        )

    def add_tag(self, tag: str) -> None:
        if tag not in self.tags:
            self.tags.append(tag)

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_title_fetcher(request: Request) -> TitleFetcher:
    return request.app.state.title_fetcher


async def get_request_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    title_fetcher: TitleFetcher = Depends(get_title_fetcher),
) -> RequestContext:
    return RequestContext(
        database=db,
        settings=settings,
        title_fetcher=title_fetcher,
        trace_id=request.headers.get("x-trace-id"),
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )


def get_auth_service(ctx: RequestContext = Depends(get_request_context)) -> AuthService:
    return AuthService(ctx.database, ctx.settings)


async def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    service: AuthService = Depends(get_auth_service),
) -> AuthContext:
    """Resolve the bearer token to a verified identity, or an anonymous context."""
    if credentials is None:
        return AuthContext.anonymous()
    return await service.resolve_token(credentials.credentials)


async def require_auth(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not auth.is_authenticated:
        raise UnauthorizedError()
    return auth


def get_url_service(ctx: RequestContext = Depends(get_request_context)) -> URLShorteningService:
    return URLShorteningService.from_context(ctx)
