"""Shared fixtures: a throwaway SQLite database per test and an API client.

Redis is never initialized here, so feed caching is skipped.
"""

from collections.abc import Awaitable, Callable

import pytest
from httpx import ASGITransport, AsyncClient

from newsforum.main import app
from newsforum.services import actions
from newsforum.services.karma import karma_store
from newsforum.settings import get_settings
from newsforum.stores.postgres import close_db, create_tables, get_session, init_db


@pytest.fixture
async def db(tmp_path):
    """Fresh schema in a temp SQLite file."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'newsforum.db'}")
    await create_tables()
    yield
    await close_db()


@pytest.fixture
async def client(db):
    """Create test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def make_user(db) -> Callable[..., Awaitable[str]]:
    """Register a user and top their karma up to ``karma`` points."""

    async def _make(username: str, karma: int | None = None) -> str:
        user = await actions.register_user(username)
        extra = (karma or 0) - get_settings().starting_karma
        if extra > 0:
            async with get_session() as session:
                await karma_store.increase(session, user.user_id, extra)
        return user.user_id

    return _make


@pytest.fixture
def auth() -> Callable[[str], dict[str, str]]:
    """Principal header as set by the upstream auth gateway."""

    def _headers(user_id: str) -> dict[str, str]:
        return {get_settings().principal_header: user_id}

    return _headers
