"""Shared pytest fixtures for API, database and service tests."""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.database import Database, get_db
from app.dependencies import RequestContext, get_title_fetcher
from app.main import app as fastapi_app
from app.title_fetcher import TitleFetcher
from app.url_service import URLShorteningService

TEST_BASE_URL = "http://short.test"


def _offline_handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("network disabled in tests", request=request)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        BASE_URL=TEST_BASE_URL,
        TITLE_FETCH_ENABLED=False,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def title_fetcher(settings: Settings) -> TitleFetcher:
    return TitleFetcher(httpx.AsyncClient(transport=httpx.MockTransport(_offline_handler)), settings)


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    db = Database(settings.DATABASE_URL)
    await db.create_all()
    yield db
    await db.drop_all()
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def url_service(db_session: AsyncSession, settings: Settings, title_fetcher: TitleFetcher) -> URLShorteningService:
    ctx = RequestContext(database=db_session, settings=settings, title_fetcher=title_fetcher)
    return URLShorteningService(ctx)


@pytest.fixture
def override_settings(settings: Settings) -> Callable[..., Settings]:
    """Swap the app settings for a copy with the given fields changed."""

    def apply(**changes) -> Settings:
        updated = settings.model_copy(update=changes)
        fastapi_app.dependency_overrides[get_settings] = lambda: updated
        return updated

    return apply


@pytest_asyncio.fixture
async def client(
    database: Database, settings: Settings, title_fetcher: TitleFetcher
) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with database.session_factory() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_settings] = lambda: settings
    fastapi_app.dependency_overrides[get_title_fetcher] = lambda: title_fetcher

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()
    await title_fetcher.aclose()


async def register_and_login(client: AsyncClient, email: str = "ada@example.com", password: str = "secret123") -> dict:
    await client.post("/api/auth/register", json={"name": "Ada", "email": email, "password": password})
    response = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['accessToken']}"}


@pytest_asyncio.fixture
async def auth_headers(client: AsyncClient) -> dict:
    return await register_and_login(client)
