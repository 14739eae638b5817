"""URL Shortener Service Layer - Core Business Logic

This module provides the service layer for the four link operations: create,
resolve, statistics and a user's link listing.

Architecture Overview
==================
::
    ┌─────────────────────────────────────────────────────────────┐
    │                    Service Layer                            │
    │  ┌─────────────────┐  ┌─────────────────┐  ┌──────────────┐ │
    │  │   URL Service   │  │  URL utilities  │  │ TitleFetcher │ │
    │  │                 │  │                 │  │              │ │
    │  │ • Create links  │  │ • Normalize     │  │ • HEAD + GET │ │
    │  │ • Resolve codes │  │ • Generate code │  │ • <title>    │ │
    │  │ • Stats / pages │  │ • Slug rules    │  │ • Fallback   │ │
    │  └─────────────────┘  └─────────────────┘  └──────────────┘ │
    └─────────────────────────────────────────────────────────────┘
                │                                        │
                ▼                                        ▼
    ┌─────────────────┐                       ┌─────────────────┐
    │ LinkRepository  │                       │  Target site    │
    │ (SQLAlchemy)    │                       │  (httpx)        │
    └─────────────────┘                       └─────────────────┘

Request Flow Diagrams
=====================

Link Creation Flow
-----------------
::
    ┌─────────────┐
    │ POST /api/  │
    │ urls        │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Normalize & │──── invalid ──▶ BAD_REQUEST
    │ validate URL│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Custom slug │──── taken ────▶ CONFLICT
    │ pre-check   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Fetch title │  (best-effort, falls back to the URL)
    └──────┬──────┘
           ▼
    ┌─────────────┐   unique violation:
    │ INSERT row  │── custom slug ──▶ CONFLICT
    │             │── generated ────▶ retry (max 5) ──▶ INTERNAL
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Return link │
    └─────────────┘

Resolve Flow
------------
::
    ┌─────────────┐
    │ GET /:code  │
    └──────┬──────┘
           ▼
    ┌─────────────┐   missing / inactive / expired
    │ Lookup      │──────────────────────────────▶ found=False
    │ active code │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ UPDATE      │  (best-effort click_count + 1)
    │ clicks      │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ found=True  │
    └─────────────┘

Usage Examples
=============

```python
@router.post("/api/urls")
async def create_url(
    payload: LinkCreate,
    auth: AuthContext = Depends(get_auth_context),
    service: URLShorteningService = Depends(get_url_service),
) -> LinkCreated:
    link = await service.create_short_url(payload, auth)
    return LinkCreated.from_link(link, service.settings.BASE_URL)
```

"""

import datetime
import time
from typing import TYPE_CHECKING

from prometheus_client import Counter, Histogram
from sqlalchemy.exc import SQLAlchemyError

from app.auth import AuthContext
from app.config import Settings
from app.enums import ErrorCode, RequestStatus
from app.errors import BadRequestError, ConflictError, InternalError, NotFoundError, ServiceError, UnauthorizedError
from app.models import ShortLink, utcnow
from app.repository import DuplicateShortCodeError, LinkRepository
from app.schemas import LinkCreate, ResolveResult
from app.title_fetcher import TitleFetcher
from app.url_utils import RESERVED_SLUGS, SLUG_MAX_LENGTH, generate_short_code, normalize_url, validate_custom_slug

if TYPE_CHECKING:
    from app.dependencies import RequestContext

__all__ = ["MAX_PAGE_SIZE", "URLShorteningService"]

MAX_PAGE_SIZE = 100


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

LINK_CREATION_REQUESTS_TOTAL = Counter(
    "url_shortener_creation_requests_total",
    "Total link creation requests",
    ["status"],
)
LINK_RESOLVE_REQUESTS_TOTAL = Counter(
    "url_shortener_resolve_requests_total",
    "Total resolve requests",
    ["status"],
)
SHORT_CODE_COLLISIONS_TOTAL = Counter(
    "url_shortener_short_code_collisions_total",
    "Generated short codes rejected by the unique constraint",
)
CLICK_TRACKING_FAILURES_TOTAL = Counter(
    "url_shortener_click_tracking_failures_total",
    "Click counter updates that failed and were skipped",
)
LINK_CREATION_DURATION = Histogram(
    "url_shortener_creation_duration_seconds",
    "Time taken to create short links",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)
LINK_RESOLVE_DURATION = Histogram(
    "url_shortener_resolve_duration_seconds",
    "Time taken to resolve short codes",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)

_STATUS_BY_CODE = {
    ErrorCode.BAD_REQUEST: RequestStatus.VALIDATION_ERROR,
    ErrorCode.UNAUTHORIZED: RequestStatus.VALIDATION_ERROR,
    ErrorCode.CONFLICT: RequestStatus.CONFLICT,
    ErrorCode.NOT_FOUND: RequestStatus.NOT_FOUND,
}


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================

class URLShorteningService:
    """Core service class for link operations.

    Example:
        >>> service = URLShorteningService.from_context(ctx)
        >>> link = await service.create_short_url(LinkCreate(original_url="example.com"), auth)
        >>> result = await service.resolve(link.short_code)
        >>> result.found, result.original_url
        (True, 'https://example.com')
    """

    def __init__(self, ctx: "RequestContext"):
        self._links = LinkRepository(ctx.database)
        self._title_fetcher: TitleFetcher = ctx.title_fetcher
        self._logger = ctx.logger
        self._settings: Settings = ctx.settings

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "URLShorteningService":
        return cls(ctx)

    @property
    def settings(self) -> Settings:
        return self._settings

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def create_short_url(self, request: LinkCreate, auth: AuthContext) -> ShortLink:
        """Create a short link for ``request.original_url``.

        Args:
            request: Parsed creation payload
            auth: Caller identity; anonymous callers are allowed only when
                ``ANONYMOUS_LINKS_ENABLED`` is set

        Returns:
            ShortLink: The persisted row

        Raises:
            BadRequestError: Invalid URL or custom slug
            UnauthorizedError: Anonymous caller while anonymous links are disabled
            ConflictError: Custom slug already in use
            InternalError: Code generation exhausted or the insert failed
        """
        start_time = time.perf_counter()
        try:
            link = await self._create(request, auth)
        except ServiceError as exc:
            LINK_CREATION_REQUESTS_TOTAL.labels(status=_STATUS_BY_CODE.get(exc.code, RequestStatus.ERROR)).inc()
            self._logger.warning(f"Link creation rejected: {exc.code.value} {exc.message}")
            raise
        except SQLAlchemyError as exc:
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Link creation failed: {exc}")
            raise InternalError("Failed to create short URL") from exc
        finally:
            LINK_CREATION_DURATION.observe(time.perf_counter() - start_time)

        LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(
            f"Link created: {link.short_code} -> {link.original_url}",
            extra={"operation": "create_short_url", "short_code": link.short_code, "link_id": link.id},
        )
        return link

    async def resolve(self, short_code: str) -> ResolveResult:
        """Map a short code to its original URL.

        A missing, inactive or expired link is a negative result, not an
        error. Click tracking is best-effort and never fails the call.
        """
        start_time = time.perf_counter()
        code = self._check_code(short_code)
        try:
            link = await self._links.get_active_by_code(code)
            if link is None or link.is_expired():
                LINK_RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
                self._logger.debug(f"Resolve miss for {code}")
                return ResolveResult(found=False, original_url="")

            original_url = link.original_url
            if self._settings.TRACK_CLICKS:
                await self._track_click(link.id, code)
        finally:
            LINK_RESOLVE_DURATION.observe(time.perf_counter() - start_time)

        LINK_RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        return ResolveResult(found=True, original_url=original_url)

    async def get_url_statistics(self, short_code: str) -> ShortLink:
        code = self._check_code(short_code)
        link = await self._links.get_by_code(code)
        if link is None:
            self._logger.info(f"Statistics not found for code: {code}")
            raise NotFoundError("URL not found")
        return link

    async def list_user_urls(self, auth: AuthContext, page: int = 1, limit: int = 10) -> tuple[list[ShortLink], int]:
        """Return one page of the caller's links, newest first, plus the total count."""
        user_id = auth.require_user_id()
        if page < 1:
            raise BadRequestError("page must be at least 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise BadRequestError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        links = await self._links.list_for_user(user_id, offset=(page - 1) * limit, limit=limit)
        total = await self._links.count_for_user(user_id)
        return links, total

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _create(self, request: LinkCreate, auth: AuthContext) -> ShortLink:
        if not auth.is_authenticated and not self._settings.ANONYMOUS_LINKS_ENABLED:
            raise UnauthorizedError("Sign in to create short links")

        original_url = normalize_url(request.original_url)
        custom_slug = validate_custom_slug(request.custom_slug) if request.custom_slug else None

        # Advisory only: skips the title lookup for slugs that are plainly taken.
        if custom_slug is not None and await self._links.exists(custom_slug):
            raise ConflictError("Custom slug already exists")

        title = await self._title_fetcher.fetch_title(original_url)
        fields = {
            "original_url": original_url,
            "title": title,
            "user_id": auth.user_id,
            "expires_at": self._expiry_for(request),
        }

        if custom_slug is not None:
            try:
                return await self._links.insert(ShortLink(short_code=custom_slug, **fields))
            except DuplicateShortCodeError as exc:
                raise ConflictError("Custom slug already exists") from exc
        return await self._insert_with_generated_code(fields)

    async def _insert_with_generated_code(self, fields: dict) -> ShortLink:
        max_attempts = self._settings.SHORT_CODE_MAX_ATTEMPTS
        for attempt in range(1, max_attempts + 1):
            short_code = generate_short_code(self._settings.SHORT_CODE_LENGTH)
            if short_code.lower() in RESERVED_SLUGS:
                continue
            try:
                return await self._links.insert(ShortLink(short_code=short_code, **fields))
            except DuplicateShortCodeError:
                SHORT_CODE_COLLISIONS_TOTAL.inc()
                self._logger.warning(f"Short code collision on attempt {attempt}/{max_attempts}: {short_code}")

        self._logger.error(f"Short code generation exhausted after {max_attempts} attempts")
        raise InternalError("Failed to generate unique short code")

    def _expiry_for(self, request: LinkCreate) -> datetime.datetime | None:
        days = request.expires_in_days or self._settings.DEFAULT_LINK_TTL_DAYS
        if not days:
            return None
        return utcnow() + datetime.timedelta(days=days)

    async def _track_click(self, link_id: int, short_code: str) -> None:
        try:
            await self._links.record_click(link_id)
        except SQLAlchemyError as exc:
            CLICK_TRACKING_FAILURES_TOTAL.inc()
            self._logger.warning(f"Click tracking skipped for {short_code}: {exc}")
            await self._links.rollback()

    @staticmethod
    def _check_code(short_code: str) -> str:
        code = (short_code or "").strip()
        if not code:
            raise BadRequestError("Short code is required")
        if len(code) > SLUG_MAX_LENGTH:
            raise BadRequestError("Short code is too long")
        return code
