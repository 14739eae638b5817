"""Title lookup tests using httpx.MockTransport in place of the network."""

import httpx
import pytest
from httpx import AsyncClient

from app.config import Settings
from app.dependencies import get_title_fetcher
from app.main import app as fastapi_app
from app.title_fetcher import TitleFetcher, extract_title

PAGE = b"<html><head><title>\n  Example   Domain \n</title></head><body>hi</body></html>"


def _fetcher(settings: Settings, handler, **changes) -> TitleFetcher:
    enabled = settings.model_copy(update={"TITLE_FETCH_ENABLED": True, **changes})
    return TitleFetcher(httpx.AsyncClient(transport=httpx.MockTransport(handler)), enabled)


def _html_site(request: httpx.Request) -> httpx.Response:
    if request.method == "HEAD":
        return httpx.Response(200, headers={"content-type": "text/html"})
    return httpx.Response(200, headers={"content-type": "text/html; charset=utf-8"}, content=PAGE)


@pytest.mark.asyncio
async def test_fetch_title_extracts_title(settings: Settings) -> None:
    fetcher = _fetcher(settings, _html_site)
    assert await fetcher.fetch_title("https://example.com") == "Example Domain"
    await fetcher.aclose()


@pytest.mark.asyncio
async def test_fetch_title_head_failure_falls_back(settings: Settings) -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.method)
        return httpx.Response(404)

    fetcher = _fetcher(settings, handler)
    assert await fetcher.fetch_title("https://example.com/missing") == "https://example.com/missing"
    assert seen == ["HEAD"]
    await fetcher.aclose()


@pytest.mark.asyncio
async def test_fetch_title_network_error_falls_back(settings: Settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    fetcher = _fetcher(settings, handler)
    assert await fetcher.fetch_title("https://down.example.com") == "https://down.example.com"
    await fetcher.aclose()


@pytest.mark.asyncio
async def test_fetch_title_non_html_falls_back(settings: Settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-type": "application/pdf"}, content=b"%PDF-1.7")

    fetcher = _fetcher(settings, handler)
    assert await fetcher.fetch_title("https://example.com/doc.pdf") == "https://example.com/doc.pdf"
    await fetcher.aclose()


@pytest.mark.asyncio
async def test_fetch_title_without_title_tag(settings: Settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-type": "text/html"}, content=b"<html><body>x</body></html>")

    fetcher = _fetcher(settings, handler)
    assert await fetcher.fetch_title("https://example.com") == "https://example.com"
    await fetcher.aclose()


@pytest.mark.asyncio
async def test_fetch_title_disabled_makes_no_request(settings: Settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    fetcher = _fetcher(settings, handler, TITLE_FETCH_ENABLED=False)
    assert await fetcher.fetch_title("https://example.com") == "https://example.com"
    await fetcher.aclose()


def test_extract_title_truncates() -> None:
    html = f"<title>{'a' * 600}</title>"
    assert len(extract_title(html)) == 500


def test_extract_title_blank() -> None:
    assert extract_title("<title>   </title>") is None


@pytest.mark.asyncio
async def test_create_stores_fetched_title(client: AsyncClient, settings: Settings) -> None:
    fetcher = _fetcher(settings, _html_site)
    fastapi_app.dependency_overrides[get_title_fetcher] = lambda: fetcher

    response = await client.post("/api/urls", json={"originalUrl": "https://example.com"})
    assert response.status_code == 201
    code = response.json()["shortCode"]

    stats = await client.get(f"/api/urls/{code}/stats")
    assert stats.json()["title"] == "Example Domain"
    await fetcher.aclose()
