"""Application settings, read from the environment and an optional ``.env`` file.

Settings Groups
===============
::
    Settings
    ├─ App:        APP_NAME, APP_ENV, BASE_URL, LOG_LEVEL, CORS_ORIGINS
    ├─ Database:   DATABASE_URL, DATABASE_ECHO
    ├─ Codes:      SHORT_CODE_LENGTH, SHORT_CODE_MAX_ATTEMPTS
    ├─ Links:      ANONYMOUS_LINKS_ENABLED, DEFAULT_LINK_TTL_DAYS, TRACK_CLICKS
    ├─ Titles:     TITLE_FETCH_ENABLED, TITLE_FETCH_TIMEOUT_SECONDS,
    │              TITLE_FETCH_USER_AGENT, TITLE_FETCH_MAX_BYTES
    └─ Sessions:   AUTH_TOKEN_TTL_HOURS

Usage::

    settings = get_settings()

    @router.get("/info")
    async def info(settings: Settings = Depends(get_settings)):
        return {"app": settings.APP_NAME}

``get_settings`` is cached, and tests replace it through
``app.dependency_overrides``. Variable names are case-sensitive.
"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "url-shortener"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8000"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["*"]

    # Database (asyncpg in deployment, aiosqlite for local runs and tests)
    DATABASE_URL: str = "sqlite+aiosqlite:///./urlshortener.db"
    DATABASE_ECHO: bool = False

    # Short code generation
    SHORT_CODE_LENGTH: int = 7
    SHORT_CODE_MAX_ATTEMPTS: int = 5

    # Link behaviour
    ANONYMOUS_LINKS_ENABLED: bool = True
    DEFAULT_LINK_TTL_DAYS: int | None = None
    TRACK_CLICKS: bool = True

    # Page title lookup on create
    TITLE_FETCH_ENABLED: bool = True
    TITLE_FETCH_TIMEOUT_SECONDS: float = 5.0
    TITLE_FETCH_USER_AGENT: str = "URL-Shortener-Bot/1.0"
    TITLE_FETCH_MAX_BYTES: int = 512 * 1024

    # Bearer token sessions
    AUTH_TOKEN_TTL_HOURS: int = 24 * 7

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
