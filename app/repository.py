"""Keyed queries over users, short links and auth sessions.

Repositories wrap one ``AsyncSession`` that the caller constructs and owns, so
services can run against any database (or a test double) without a global
client.

Key Behaviours
===============
- ``LinkRepository.insert`` is the authority for short-code uniqueness: a
  unique-constraint violation is rolled back and surfaced as
  ``DuplicateShortCodeError``. Any other integrity error (foreign key,
  NOT NULL) is rolled back and re-raised unchanged.
- ``record_click`` is a single UPDATE statement; no read-modify-write.
- Pagination is offset/limit ordered by ``created_at`` then ``id``, newest first.
"""

import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import AuthSession, ShortLink, User, utcnow

__all__ = [
    "DuplicateEmailError",
    "DuplicateShortCodeError",
    "LinkRepository",
    "SessionRepository",
    "UserRepository",
    "is_unique_violation",
]

# SQLSTATE unique_violation
UNIQUE_VIOLATION = "23505"


class DuplicateShortCodeError(Exception):
    def __init__(self, short_code: str) -> None:
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' already exists")


class DuplicateEmailError(Exception):
    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"Email '{email}' is already registered")


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when ``exc`` came from a unique constraint, on PostgreSQL or SQLite."""
    orig = exc.orig
    if getattr(orig, "pgcode", None) == UNIQUE_VIOLATION or getattr(orig, "sqlstate", None) == UNIQUE_VIOLATION:
        return True
    if getattr(orig, "sqlite_errorname", None) in ("SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"):
        return True
    return "UNIQUE constraint failed" in str(orig)


class LinkRepository:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_by_code(self, short_code: str) -> ShortLink | None:
        result = await self._db.execute(select(ShortLink).where(ShortLink.short_code == short_code))
        return result.scalar_one_or_none()

    async def get_active_by_code(self, short_code: str) -> ShortLink | None:
        result = await self._db.execute(
            select(ShortLink).where(ShortLink.short_code == short_code, ShortLink.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    async def exists(self, short_code: str) -> bool:
        result = await self._db.execute(select(ShortLink.id).where(ShortLink.short_code == short_code))
        return result.first() is not None

    async def insert(self, link: ShortLink) -> ShortLink:
        self._db.add(link)
        try:
            await self._db.commit()
        except IntegrityError as exc:
            await self._db.rollback()
            if not is_unique_violation(exc):
                raise
            raise DuplicateShortCodeError(link.short_code) from exc
        await self._db.refresh(link)
        return link

    async def record_click(self, link_id: int, when: datetime.datetime | None = None) -> None:
        await self._db.execute(
            update(ShortLink)
            .where(ShortLink.id == link_id)
            .values(click_count=ShortLink.click_count + 1, last_accessed_at=when or utcnow())
        )
        await self._db.commit()

    async def list_for_user(self, user_id: int, offset: int, limit: int) -> list[ShortLink]:
        result = await self._db.execute(
            select(ShortLink)
            .where(ShortLink.user_id == user_id)
            .order_by(ShortLink.created_at.desc(), ShortLink.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_for_user(self, user_id: int) -> int:
        result = await self._db.execute(
            select(func.count()).select_from(ShortLink).where(ShortLink.user_id == user_id)
        )
        return int(result.scalar_one())

    async def rollback(self) -> None:
        await self._db.rollback()


class UserRepository:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get(self, user_id: int) -> User | None:
        return await self._db.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        result = await self._db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def insert(self, user: User) -> User:
        self._db.add(user)
        try:
            await self._db.commit()
        except IntegrityError as exc:
            await self._db.rollback()
            if not is_unique_violation(exc):
                raise
            raise DuplicateEmailError(user.email) from exc
        await self._db.refresh(user)
        return user


class SessionRepository:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def create(self, user_id: int, token_hash: str, expires_at: datetime.datetime) -> AuthSession:
        session = AuthSession(user_id=user_id, token_hash=token_hash, expires_at=expires_at)
        self._db.add(session)
        await self._db.commit()
        await self._db.refresh(session)
        return session

    async def get_by_token_hash(self, token_hash: str) -> AuthSession | None:
        result = await self._db.execute(select(AuthSession).where(AuthSession.token_hash == token_hash))
        return result.scalar_one_or_none()

    async def delete_by_token_hash(self, token_hash: str) -> None:
        await self._db.execute(delete(AuthSession).where(AuthSession.token_hash == token_hash))
        await self._db.commit()

    async def delete_expired(self, now: datetime.datetime | None = None) -> int:
        result = await self._db.execute(
            delete(AuthSession)
            .where(AuthSession.expires_at <= (now or utcnow()))
            .execution_options(synchronize_session=False)
        )
        await self._db.commit()
        return result.rowcount
