"""Best-effort page title lookup for newly shortened URLs.

Flow Diagram — fetch_title()
============================
::
    ┌─────────────┐
    │ HEAD target │──── error / non-2xx ───┐
    └──────┬──────┘                        │
           ▼                               │
    ┌─────────────┐                        │
    │ GET target  │──── error / not HTML ──┤
    └──────┬──────┘                        │
           ▼                               ▼
    ┌─────────────┐  no <title>    ┌──────────────┐
    │ Parse HTML  │───────────────▶│ Fall back to │
    │ (bs4)       │                │ the URL      │
    └──────┬──────┘                └──────────────┘
           ▼
    ┌─────────────┐
    │ Return the  │
    │ title text  │
    └─────────────┘

Key Behaviours
===============
- Never raises: every network or parse failure degrades to the URL.
- Reads at most ``TITLE_FETCH_MAX_BYTES`` of the body.
- Shares one ``httpx.AsyncClient`` for the lifetime of the app.
"""

import logging

import httpx
from bs4 import BeautifulSoup

from app.config import Settings

__all__ = ["TitleFetcher", "extract_title"]

logger = logging.getLogger("urlshortener")

MAX_TITLE_LENGTH = 500


class TitleFetcher:
    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    @classmethod
    def from_settings(cls, settings: Settings) -> "TitleFetcher":
        client = httpx.AsyncClient(
            timeout=settings.TITLE_FETCH_TIMEOUT_SECONDS,
            follow_redirects=True,
            headers={"User-Agent": settings.TITLE_FETCH_USER_AGENT},
        )
        return cls(client, settings)

    async def fetch_title(self, url: str) -> str:
        if not self._settings.TITLE_FETCH_ENABLED:
            return url
        try:
            title = await self._fetch(url)
        except Exception as exc:
            logger.debug(f"Title lookup failed for {url}: {exc}")
            return url
        return title or url

    async def _fetch(self, url: str) -> str | None:
        head = await self._client.head(url)
        if not head.is_success:
            return None

        async with self._client.stream("GET", url) as response:
            if not response.is_success:
                return None
            content_type = response.headers.get("content-type", "")
            if content_type and "html" not in content_type.lower():
                return None

            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if len(body) >= self._settings.TITLE_FETCH_MAX_BYTES:
                    break
            encoding = response.encoding or "utf-8"

        return extract_title(bytes(body).decode(encoding, errors="replace"))

    async def aclose(self) -> None:
        await self._client.aclose()


def extract_title(html: str) -> str | None:
    soup = BeautifulSoup(html, "html.parser")
    if soup.title is None or soup.title.string is None:
        return None
    title = " ".join(soup.title.string.split())
    return title[:MAX_TITLE_LENGTH] or None
