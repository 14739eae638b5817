"""FastAPI route definitions for the URL shortener API.

This module provides all HTTP endpoints with dependency injection, error
translation and response serialization for the URL shortening service.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /api/urls
        ├─ LinkCreate (request body)
        └─ LinkCreated (201) or 400/401/409/500

    GET  /api/urls?page=&limit=          (bearer token)
        └─ UserLinksPage (200) or 400/401

    GET  /api/urls/resolve/:short_code
        └─ ResolveResult (200) or 400

    GET  /api/urls/:short_code/stats
        └─ LinkStats (200) or 404

    POST /api/auth/register  → UserPublic (201) or 400/409
    POST /api/auth/login     → TokenResponse (200) or 400/401
    POST /api/auth/logout    → 204 or 401
    GET  /api/auth/me        → UserPublic (200) or 401

    GET  /:short_code
        └─ 301 Redirect or 404

Request Flow Diagram
====================
::
    ┌─────────────┐
    │  HTTP       │
    │  Request    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Validate &  │
    │ Parse       │
    │ (Pydantic)  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Inject      │
    │ Context and │
    │ AuthContext │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Call Service│
    │ Layer       │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serialize   │
    │ Response    │
    └─────────────┘

Key Behaviours
===============
- Service errors propagate to the handlers in ``app.errors``; routes only
  shape successful responses.
- The redirect route is registered last so it never shadows API paths.
- Redirects are permanent (301).
"""

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import RedirectResponse
from sqlalchemy import text

from app.auth import AuthContext, AuthService
from app.dependencies import (
    RequestContext,
    get_auth_context,
    get_auth_service,
    get_request_context,
    get_url_service,
    require_auth,
)
from app.enums import ErrorCode, HealthStatus
from app.errors import error_response
from app.models import utcnow
from app.schemas import (
    HealthResponse,
    LinkCreate,
    LinkCreated,
    LinkStats,
    LinkSummary,
    ResolveResult,
    TokenResponse,
    UserLinksPage,
    UserLogin,
    UserPublic,
    UserRegister,
)
from app.url_service import MAX_PAGE_SIZE, URLShorteningService

__all__ = ["router"]

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    try:
        await ctx.database.execute(text("SELECT 1"))
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    return HealthResponse(status=db_status, database=db_status, timestamp=utcnow())


# ============================================================================
# LINKS
# ============================================================================


@router.post("/api/urls", response_model=LinkCreated, status_code=201, tags=["urls"])
async def create_url(
    payload: LinkCreate,
    ctx: RequestContext = Depends(get_request_context),
    auth: AuthContext = Depends(get_auth_context),
    service: URLShorteningService = Depends(get_url_service),
) -> LinkCreated:
    ctx.add_tag("url_creation")
    ctx.logger.info(
        f"Link creation requested: {payload.original_url}",
        extra={"operation": "create_short_url", "custom_slug": payload.custom_slug},
    )
    link = await service.create_short_url(payload, auth)
    return LinkCreated.from_link(link, ctx.settings.BASE_URL)


@router.get("/api/urls", response_model=UserLinksPage, tags=["urls"])
async def list_user_urls(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    ctx: RequestContext = Depends(get_request_context),
    auth: AuthContext = Depends(require_auth),
    service: URLShorteningService = Depends(get_url_service),
) -> UserLinksPage:
    links, total = await service.list_user_urls(auth, page=page, limit=limit)
    return UserLinksPage(
        urls=[LinkSummary.from_link(link, ctx.settings.BASE_URL) for link in links],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/api/urls/resolve/{short_code}", response_model=ResolveResult, tags=["urls"])
async def resolve_url(
    short_code: str,
    service: URLShorteningService = Depends(get_url_service),
) -> ResolveResult:
    return await service.resolve(short_code)


@router.get("/api/urls/{short_code}/stats", response_model=LinkStats, tags=["urls"])
async def get_stats(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
) -> LinkStats:
    link = await service.get_url_statistics(short_code)
    return LinkStats.from_link(link, ctx.settings.BASE_URL)


# ============================================================================
# ACCOUNTS
# ============================================================================


@router.post("/api/auth/register", response_model=UserPublic, status_code=201, tags=["auth"])
async def register(payload: UserRegister, service: AuthService = Depends(get_auth_service)) -> UserPublic:
    user = await service.register(payload)
    return UserPublic.model_validate(user)


@router.post("/api/auth/login", response_model=TokenResponse, tags=["auth"])
async def login(payload: UserLogin, service: AuthService = Depends(get_auth_service)) -> TokenResponse:
    token, session, user = await service.login(payload)
    return TokenResponse(
        access_token=token,
        expires_at=session.expires_at,
        user=UserPublic.model_validate(user),
    )


@router.post("/api/auth/logout", status_code=204, tags=["auth"])
async def logout(
    auth: AuthContext = Depends(require_auth),
    service: AuthService = Depends(get_auth_service),
) -> Response:
    await service.logout(auth)
    return Response(status_code=204)


@router.get("/api/auth/me", response_model=UserPublic, tags=["auth"])
async def me(auth: AuthContext = Depends(require_auth)) -> UserPublic:
    return UserPublic.model_validate(auth.user)


# ============================================================================
# REDIRECT
# ============================================================================


@router.get("/{short_code}", tags=["redirect"], response_model=None)
async def redirect_to_url(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: URLShorteningService = Depends(get_url_service),
):
    ctx.add_tag("redirect")
    result = await service.resolve(short_code)
    if not result.found:
        ctx.logger.info(
            f"Redirect failed - short code not found: {short_code}",
            extra={"operation": "redirect", "short_code": short_code, "duration_ms": ctx.get_duration()},
        )
        return error_response(ErrorCode.NOT_FOUND, "URL not found")

    ctx.logger.info(
        f"Redirect: {short_code} -> {result.original_url}",
        extra={"operation": "redirect", "short_code": short_code, "duration_ms": ctx.get_duration()},
    )
    return RedirectResponse(url=result.original_url, status_code=301)
