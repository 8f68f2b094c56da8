"""Tests for health endpoint and the structured error format."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test health endpoint returns ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_unknown_post_uses_error_format(client: AsyncClient):
    response = await client.get("/posts/does-not-exist")
    assert response.status_code == 404
    data = response.json()
    assert data["error"]["code"] == "NOT_FOUND"
    assert data["error"]["message"] == "Post not found."
    assert data["error"]["detail"] == {"post_id": "does-not-exist"}


@pytest.mark.asyncio
async def test_anonymous_write_is_unauthenticated(client: AsyncClient):
    response = await client.post("/posts", json={"title": "Hello"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHENTICATED"
