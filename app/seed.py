"""Seed a demo user and demo links.

Usage::

    python -m app.seed

Existing rows with the same email or short code are left untouched, so the
command can be re-run safely.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import hash_password
from app.config import Settings, get_settings
from app.database import Database
from app.dependencies import setup_logging
from app.models import ShortLink, User
from app.repository import LinkRepository, UserRepository

__all__ = ["DEMO_LINKS", "DEMO_USER_EMAIL", "seed"]

DEMO_USER_EMAIL = "test@example.com"
DEMO_USER_PASSWORD = "password123"

DEMO_LINKS = [
    {"short_code": "github", "original_url": "https://github.com", "title": "GitHub", "click_count": 42, "owned": True},
    {"short_code": "google", "original_url": "https://google.com", "title": "Google", "click_count": 123, "owned": False},
]

logger = logging.getLogger("urlshortener")


async def seed(session: AsyncSession) -> tuple[User, list[ShortLink]]:
    users = UserRepository(session)
    links = LinkRepository(session)

    user = await users.get_by_email(DEMO_USER_EMAIL)
    if user is None:
        user = await users.insert(
            User(email=DEMO_USER_EMAIL, name="Test User", password_hash=hash_password(DEMO_USER_PASSWORD))
        )
    user_id = user.id

    seeded: list[ShortLink] = []
    for demo in DEMO_LINKS:
        link = await links.get_by_code(demo["short_code"])
        if link is None:
            link = await links.insert(
                ShortLink(
                    short_code=demo["short_code"],
                    original_url=demo["original_url"],
                    title=demo["title"],
                    click_count=demo["click_count"],
                    user_id=user_id if demo["owned"] else None,
                )
            )
        seeded.append(link)
    return user, seeded


async def main(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    setup_logging(settings)
    database = Database(settings.DATABASE_URL)
    try:
        await database.create_all()
        async with database.session_factory() as session:
            user, links = await seed(session)
        logger.info(f"Seeded user {user.email} and {len(links)} links")
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main())
