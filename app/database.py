"""Database configuration and session management for the URL shortener.

This module provides the SQLAlchemy async engine wrapper, per-request session
management and table lifecycle operations. PostgreSQL (asyncpg) is the
deployment backend; SQLite (aiosqlite) is used for local runs and tests.

Flow Diagram — Database Operations
=================================
::
    ┌─────────────┐
    │ create_app()│
    │ Database(.. │
    └──────┬──────┘
           ▼
    ┌──────────────┐
    │ app.state.   │
    │ database     │
    └──────┬───────┘
           ▼
    ┌─────────────┐
    │ get_db()    │
    │ dependency  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Yield async │
    │ session to  │
    │ handler     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Auto-close  │
    │ (finally)   │
    └─────────────┘

How to Use
===========
**Step 1 — Construct and create tables**::
    database = Database(settings.DATABASE_URL)
    await database.create_all()

**Step 2 — Use in FastAPI endpoints**::
    @router.get("/links")
    async def links(db: AsyncSession = Depends(get_db)):
        result = await db.execute(select(ShortLink))
        return result.scalars().all()

**Step 3 — Cleanup on shutdown**::
    await database.dispose()

Key Behaviours
===============
- The engine is owned by an explicitly constructed ``Database`` object that is
  stored on ``app.state``; there is no module-level engine.
- Async sessions are automatically closed after each request.
- Pool sizing is only applied to server databases; SQLite uses its own pool.

Classes:
    Base:  SQLAlchemy declarative base for all models.
    Database:  Owns the engine and the session factory.

Functions:
    get_db():  FastAPI dependency for database sessions.
"""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

__all__ = ["Base", "Database", "get_db"]


class Base(DeclarativeBase):
    pass


class Database:
    """Async engine plus session factory for one database URL."""

    def __init__(self, url: str, echo: bool = False) -> None:
        engine_options: dict = {"echo": echo, "pool_pre_ping": True}
        if not url.startswith("sqlite"):
            engine_options.update(pool_size=20, max_overflow=10)

        self.url = url
        self.engine = create_async_engine(url, **engine_options)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
