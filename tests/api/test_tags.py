"""Tests for tag endpoints."""
from collections.abc import Generator
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from services.url_scraper import FetchError, FetchResult


@pytest.fixture(autouse=True)
def mock_url_fetch() -> Generator[AsyncMock]:
    """Keep bookmark creation in these tests off the network."""
    with patch(
        'services.url_scraper.fetch_url',
        new_callable=AsyncMock,
        return_value=FetchResult(
            html=None, final_url='', status_code=None, error=FetchError('', 'Mocked'),
        ),
    ) as mock:
        yield mock


async def test_create_tag(client: AsyncClient) -> None:
    response = await client.post("/tags/", json={"name": "  Machine-Learning "})
    assert response.status_code == 201

    data = response.json()
    assert data["name"] == "machine-learning"
    assert "id" in data
    assert "created_at" in data


async def test_create_tag_duplicate(client: AsyncClient) -> None:
    await client.post("/tags/", json={"name": "python"})

    response = await client.post("/tags/", json={"name": "PYTHON"})
    assert response.status_code == 409
    assert "already exists" in response.json()["detail"]


@pytest.mark.parametrize("name", ["", "   ", "x" * 101])
async def test_create_tag_invalid_name(client: AsyncClient, name: str) -> None:
    response = await client.post("/tags/", json={"name": name})
    assert response.status_code == 422


async def test_list_tags_sorted(client: AsyncClient) -> None:
    for name in ["zeta", "alpha", "mu"]:
        await client.post("/tags/", json={"name": name})

    response = await client.get("/tags/")
    assert response.status_code == 200
    assert [t["name"] for t in response.json()["tags"]] == ["alpha", "mu", "zeta"]


async def test_list_tags_empty(client: AsyncClient) -> None:
    response = await client.get("/tags/")
    assert response.status_code == 200
    assert response.json() == {"tags": []}


async def test_get_tag(client: AsyncClient) -> None:
    created = await client.post("/tags/", json={"name": "python"})

    response = await client.get(f"/tags/{created.json()['id']}")
    assert response.status_code == 200
    assert response.json()["name"] == "python"


async def test_get_tag_not_found(client: AsyncClient) -> None:
    response = await client.get("/tags/99999")
    assert response.status_code == 404


async def test_rename_tag_updates_bookmarks(client: AsyncClient) -> None:
    """Renaming a tag is reflected on every bookmark that uses it."""
    bookmark = await client.post(
        "/bookmarks/", json={"url": "https://example.com", "tags": ["pyhton"]},
    )
    tags = (await client.get("/tags/")).json()["tags"]
    tag_id = tags[0]["id"]

    response = await client.patch(f"/tags/{tag_id}", json={"new_name": "Python"})
    assert response.status_code == 200
    assert response.json()["name"] == "python"

    refreshed = await client.get(f"/bookmarks/{bookmark.json()['id']}")
    assert refreshed.json()["tags"] == ["python"]


async def test_rename_tag_conflict(client: AsyncClient) -> None:
    await client.post("/tags/", json={"name": "python"})
    other = await client.post("/tags/", json={"name": "rust"})

    response = await client.patch(f"/tags/{other.json()['id']}", json={"new_name": "python"})
    assert response.status_code == 409


async def test_rename_tag_not_found(client: AsyncClient) -> None:
    response = await client.patch("/tags/99999", json={"new_name": "anything"})
    assert response.status_code == 404
    assert response.json()["detail"] == "Tag #99999 not found"


async def test_delete_tag_keeps_bookmarks(client: AsyncClient) -> None:
    bookmark = await client.post(
        "/bookmarks/", json={"url": "https://example.com", "tags": ["python", "web"]},
    )
    tags = {t["name"]: t["id"] for t in (await client.get("/tags/")).json()["tags"]}

    response = await client.delete(f"/tags/{tags['python']}")
    assert response.status_code == 204

    refreshed = await client.get(f"/bookmarks/{bookmark.json()['id']}")
    assert refreshed.status_code == 200
    assert refreshed.json()["tags"] == ["web"]

    remaining = (await client.get("/tags/")).json()["tags"]
    assert [t["name"] for t in remaining] == ["web"]


async def test_delete_tag_not_found(client: AsyncClient) -> None:
    response = await client.delete("/tags/99999")
    assert response.status_code == 404
