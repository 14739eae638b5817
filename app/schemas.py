"""Pydantic schemas for request/response validation in the URL shortener.

This module defines Pydantic models for API input validation and output serialization,
ensuring type safety and automatic OpenAPI documentation generation. Attributes are
snake_case in Python and camelCase on the wire.

Schema Hierarchy
=================
::
    LinkCreate (Input)
    ├─ originalUrl: str (normalized by the service)
    ├─ customSlug: str | None
    └─ expiresInDays: int | None (1-3650)

    LinkCreated (Output)
    ├─ id, shortCode, originalUrl, shortUrl, title
    └─ createdAt, expiresAt

    ResolveResult (Output)
    ├─ found: bool
    └─ originalUrl: str ("" when not found)

    LinkStats (Output)
    └─ LinkCreated fields + clickCount, lastAccessedAt, isActive

    UserLinksPage (Output)
    ├─ urls: list[LinkSummary]
    └─ total, page, limit

    UserRegister / UserLogin (Input), UserPublic / TokenResponse (Output)

    HealthResponse (Output)
    ├─ status, database
    └─ timestamp

How to Use
===========
**Step 1 — Input validation**::
    @router.post("/api/urls")
    async def create(payload: LinkCreate):
        # payload.original_url, payload.custom_slug are already parsed
        ...

**Step 2 — Response serialization**::
    link = await service.create_link(payload, auth)
    return LinkCreated.from_link(link, settings.BASE_URL)

Key Behaviours
===============
- Blank custom slugs are treated as absent.
- Every datetime is returned timezone-aware (UTC).
- Models read ORM attributes directly (from_attributes).
- FastAPI serializes responses by alias, so JSON keys are camelCase.

Classes:
    LinkCreate:  Input schema for link creation.
    LinkCreated:  Output schema for created links.
    ResolveResult:  Output schema for resolve.
    LinkStats:  Output schema for link statistics.
    LinkSummary / UserLinksPage:  Output schemas for a user's links.
    UserRegister / UserLogin / UserPublic / TokenResponse:  Account schemas.
    HealthResponse:  Output schema for health checks.
"""

import datetime
from typing import Annotated

import validators
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.enums import HealthStatus
from app.models import ShortLink, ensure_utc
from app.url_utils import build_short_url

__all__ = [
    "HealthResponse",
    "LinkCreate",
    "LinkCreated",
    "LinkStats",
    "LinkSummary",
    "ResolveResult",
    "TokenResponse",
    "UserLinksPage",
    "UserLogin",
    "UserPublic",
    "UserRegister",
]

UTCDateTime = Annotated[datetime.datetime, AfterValidator(ensure_utc)]

PASSWORD_MIN_LENGTH = 6
# bcrypt only considers the first 72 bytes of a password.
PASSWORD_MAX_BYTES = 72


class APIModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class LinkCreate(APIModel):
    original_url: str = Field(..., min_length=1, description="URL to shorten, e.g. 'example.com/page'")
    custom_slug: str | None = Field(None, description="Optional user-chosen short code")
    expires_in_days: int | None = Field(None, ge=1, le=3650)

    @field_validator("custom_slug")
    @classmethod
    def blank_slug_is_absent(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


class LinkCreated(APIModel):
    id: int
    short_code: str
    original_url: str
    short_url: str
    title: str | None
    created_at: UTCDateTime
    expires_at: UTCDateTime | None = None

    @classmethod
    def from_link(cls, link: ShortLink, base_url: str) -> "LinkCreated":
        return cls(
            id=link.id,
            short_code=link.short_code,
            original_url=link.original_url,
            short_url=build_short_url(base_url, link.short_code),
            title=link.title,
            created_at=link.created_at,
            expires_at=link.expires_at,
        )


class ResolveResult(APIModel):
    found: bool
    original_url: str = ""


class LinkSummary(APIModel):
    id: int
    short_code: str
    original_url: str
    short_url: str
    title: str | None
    click_count: int
    created_at: UTCDateTime
    expires_at: UTCDateTime | None = None
    is_active: bool

    @classmethod
    def from_link(cls, link: ShortLink, base_url: str) -> "LinkSummary":
        return cls(
            id=link.id,
            short_code=link.short_code,
            original_url=link.original_url,
            short_url=build_short_url(base_url, link.short_code),
            title=link.title,
            click_count=link.click_count,
            created_at=link.created_at,
            expires_at=link.expires_at,
            is_active=link.is_active,
        )


class LinkStats(LinkSummary):
    last_accessed_at: UTCDateTime | None = None

    @classmethod
    def from_link(cls, link: ShortLink, base_url: str) -> "LinkStats":
        summary = LinkSummary.from_link(link, base_url)
        return cls(**summary.model_dump(), last_accessed_at=link.last_accessed_at)


class UserLinksPage(APIModel):
    urls: list[LinkSummary]
    total: int
    page: int
    limit: int


def _check_email(v: str) -> str:
    v = v.strip().lower()
    if not validators.email(v):
        raise ValueError("Invalid email")
    return v


Email = Annotated[str, AfterValidator(_check_email)]


class UserRegister(APIModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Email
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
        return v


class UserLogin(APIModel):
    email: Email
    password: str = Field(..., min_length=1)


class UserPublic(APIModel):
    id: int
    email: str
    name: str
    image: str | None = None


class TokenResponse(APIModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: UTCDateTime
    user: UserPublic


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    timestamp: datetime.datetime
