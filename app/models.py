"""SQLAlchemy ORM models for the URL shortener application.

This module defines the database schema using SQLAlchemy declarative models
with indexing on every lookup key and UTC timestamp management.

Data Model Layout
=================
::
    users table
    ├─ id (INTEGER PRIMARY KEY)
    ├─ email (VARCHAR(320) UNIQUE, INDEXED)
    ├─ name (VARCHAR(200))
    ├─ image (TEXT NULL)
    ├─ password_hash (VARCHAR(200) NULL)
    └─ created_at (TIMESTAMPTZ)

    short_links table
    ├─ id (INTEGER PRIMARY KEY)
    ├─ short_code (VARCHAR(64) UNIQUE, INDEXED)
    ├─ original_url (TEXT NOT NULL)
    ├─ title (TEXT NULL)
    ├─ user_id (FK users.id NULL, INDEXED)
    ├─ created_at (TIMESTAMPTZ, INDEXED)
    ├─ expires_at (TIMESTAMPTZ NULL)
    ├─ is_active (BOOLEAN DEFAULT TRUE)
    ├─ click_count (INTEGER DEFAULT 0)
    └─ last_accessed_at (TIMESTAMPTZ NULL)

    auth_sessions table
    ├─ id (INTEGER PRIMARY KEY)
    ├─ token_hash (VARCHAR(64) UNIQUE, INDEXED)
    ├─ user_id (FK users.id, INDEXED)
    ├─ created_at (TIMESTAMPTZ)
    └─ expires_at (TIMESTAMPTZ)

Class Relationship Diagram
=========================
::
    User 1 ──── * ShortLink      (owner, optional on the link side)
    User 1 ──── * AuthSession

How to Use
===========
**Step 1 — Import**::
    from app.models import ShortLink

**Step 2 — Create a new link**::
    link = ShortLink(short_code="abc1234", original_url="https://example.com")
    db.add(link)
    await db.commit()

**Step 3 — Query links**::
    result = await db.execute(select(ShortLink).where(ShortLink.short_code == "abc1234"))
    link = result.scalar_one_or_none()

Key Behaviours
===============
- short_code is unique across active and inactive links; the constraint is the
  authority for collisions, not a pre-insert lookup.
- Timestamps default to the current UTC time on the Python side so ordering by
  created_at keeps sub-second precision on every backend.
- Links are never deleted; ``is_active`` and ``expires_at`` end their life.

Classes:
    User:  Account that can own links.
    ShortLink:  A short code mapped to an original URL with click tracking.
    AuthSession:  Hashed bearer token issued at login.
"""

import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

__all__ = ["AuthSession", "ShortLink", "User", "ensure_utc", "utcnow"]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def ensure_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=datetime.timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


class ShortLink(Base):
    __tablename__ = "short_links"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    short_code: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True, nullable=False
    )
    expires_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    click_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_accessed_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def is_expired(self, now: datetime.datetime | None = None) -> bool:
        expires_at = ensure_utc(self.expires_at)
        if expires_at is None:
            return False
        return expires_at <= (now or utcnow())

    def __repr__(self) -> str:
        return f"<ShortLink(id={self.id}, short_code='{self.short_code}', clicks={self.click_count})>"


class AuthSession(Base):
    __tablename__ = "auth_sessions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    expires_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<AuthSession(id={self.id}, user_id={self.user_id})>"
