"""Repository tests: integrity errors and session cleanup."""

import datetime
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import AuthContext
from app.errors import InternalError
from app.models import AuthSession, ShortLink, User, utcnow
from app.repository import (
    DuplicateShortCodeError,
    LinkRepository,
    SessionRepository,
    UserRepository,
    is_unique_violation,
)
from app.schemas import LinkCreate
from app.url_service import URLShorteningService


def _integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO short_links", {}, Exception(message))


class _PgError(Exception):
    pgcode = "23503"


@pytest.mark.parametrize(
    ("orig", "expected"),
    [
        (Exception("UNIQUE constraint failed: short_links.short_code"), True),
        (Exception("NOT NULL constraint failed: short_links.original_url"), False),
        (Exception("FOREIGN KEY constraint failed"), False),
        (_PgError("insert or update violates foreign key constraint"), False),
    ],
)
def test_is_unique_violation(orig: Exception, expected: bool) -> None:
    assert is_unique_violation(IntegrityError("INSERT", {}, orig)) is expected


def test_is_unique_violation_postgres_code() -> None:
    class UniqueViolation(Exception):
        pgcode = "23505"

    assert is_unique_violation(IntegrityError("INSERT", {}, UniqueViolation("duplicate key value")))


@pytest.mark.asyncio
async def test_insert_duplicate_code(db_session: AsyncSession) -> None:
    links = LinkRepository(db_session)
    await links.insert(ShortLink(short_code="same", original_url="https://a.example.com"))

    with pytest.raises(DuplicateShortCodeError):
        await links.insert(ShortLink(short_code="same", original_url="https://b.example.com"))


@pytest.mark.asyncio
async def test_insert_other_integrity_error_is_not_a_duplicate(db_session: AsyncSession) -> None:
    links = LinkRepository(db_session)

    with pytest.raises(IntegrityError):
        await links.insert(ShortLink(short_code="nourl", original_url=None))

    # Session is usable after the rollback.
    assert await links.exists("nourl") is False


@pytest.mark.asyncio
async def test_user_insert_other_integrity_error(db_session: AsyncSession) -> None:
    with pytest.raises(IntegrityError):
        await UserRepository(db_session).insert(User(email="x@example.com", name=None))


@pytest.mark.asyncio
async def test_create_non_unique_integrity_error_is_internal(url_service: URLShorteningService) -> None:
    failure = AsyncMock(side_effect=_integrity_error("FOREIGN KEY constraint failed"))

    with patch.object(LinkRepository, "insert", failure):
        with pytest.raises(InternalError, match="Failed to create short URL"):
            await url_service.create_short_url(LinkCreate(original_url="https://example.com"), AuthContext())
    assert failure.await_count == 1


@pytest.mark.asyncio
async def test_delete_expired_sessions(db_session: AsyncSession) -> None:
    user = User(email="owner@example.com", name="Owner")
    db_session.add(user)
    await db_session.commit()

    sessions = SessionRepository(db_session)
    now = utcnow()
    await sessions.create(user.id, "a" * 64, now - datetime.timedelta(hours=1))
    await sessions.create(user.id, "b" * 64, now + datetime.timedelta(hours=1))

    assert await sessions.delete_expired(now) == 1
    remaining = (await db_session.execute(select(AuthSession.token_hash))).scalars().all()
    assert remaining == ["b" * 64]
    assert (await db_session.execute(select(func.count()).select_from(AuthSession))).scalar_one() == 1
