"""Listing of the caller's own links."""

import pytest
from httpx import AsyncClient

from conftest import register_and_login


async def _create_many(client: AsyncClient, headers: dict, count: int) -> list[str]:
    codes = []
    for i in range(count):
        response = await client.post("/api/urls", json={"originalUrl": f"https://example.com/{i}"}, headers=headers)
        assert response.status_code == 201
        codes.append(response.json()["shortCode"])
    return codes


@pytest.mark.asyncio
async def test_list_requires_auth(client: AsyncClient) -> None:
    response = await client.get("/api/urls")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_list_rejects_unknown_token(client: AsyncClient) -> None:
    response = await client.get("/api/urls", headers={"Authorization": "Bearer not-a-real-token"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_paginates(client: AsyncClient, auth_headers: dict) -> None:
    codes = await _create_many(client, auth_headers, 15)

    first = await client.get("/api/urls", params={"page": 1, "limit": 10}, headers=auth_headers)
    assert first.status_code == 200
    data = first.json()
    assert data["total"] == 15
    assert data["page"] == 1
    assert data["limit"] == 10
    assert len(data["urls"]) == 10
    # Newest first.
    assert data["urls"][0]["shortCode"] == codes[-1]

    second = await client.get("/api/urls", params={"page": 2, "limit": 10}, headers=auth_headers)
    page_two = second.json()
    assert page_two["total"] == 15
    assert len(page_two["urls"]) == 5

    listed = {u["shortCode"] for u in data["urls"]} | {u["shortCode"] for u in page_two["urls"]}
    assert listed == set(codes)


@pytest.mark.asyncio
async def test_list_defaults(client: AsyncClient, auth_headers: dict) -> None:
    await _create_many(client, auth_headers, 3)
    response = await client.get("/api/urls", headers=auth_headers)
    data = response.json()
    assert data["page"] == 1
    assert data["limit"] == 10
    assert data["total"] == 3
    assert {"shortUrl", "clickCount", "isActive", "title"} <= set(data["urls"][0])


@pytest.mark.asyncio
async def test_list_only_returns_own_links(client: AsyncClient, auth_headers: dict) -> None:
    await _create_many(client, auth_headers, 2)
    other_headers = await register_and_login(client, email="grace@example.com")
    await _create_many(client, other_headers, 4)
    await client.post("/api/urls", json={"originalUrl": "https://anonymous.example.com"})

    response = await client.get("/api/urls", headers=auth_headers)
    assert response.json()["total"] == 2

    response = await client.get("/api/urls", headers=other_headers)
    assert response.json()["total"] == 4


@pytest.mark.asyncio
async def test_list_page_past_end(client: AsyncClient, auth_headers: dict) -> None:
    await _create_many(client, auth_headers, 2)
    response = await client.get("/api/urls", params={"page": 5}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["urls"] == []
    assert response.json()["total"] == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [{"page": 0}, {"limit": 0}, {"limit": 101}])
async def test_list_rejects_bad_paging(client: AsyncClient, auth_headers: dict, params: dict) -> None:
    response = await client.get("/api/urls", params=params, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "BAD_REQUEST"
