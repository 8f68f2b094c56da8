"""Request dependencies resolving the authenticated principal.

Authentication happens upstream: the gateway sets the principal header
(``X-User-Id`` by default) on authenticated requests and strips it otherwise.
"""

from fastapi import Request

from newsforum.errors import NotAllowedError, UnauthenticatedError
from newsforum.settings import get_settings


async def get_viewer_optional(request: Request) -> str | None:
    """Principal id of the caller, or None for anonymous requests."""
    value = request.headers.get(get_settings().principal_header, "").strip()
    return value or None


async def get_principal(request: Request) -> str:
    """Principal id of the caller; anonymous requests are rejected."""
    viewer = await get_viewer_optional(request)
    if viewer is None:
        raise UnauthenticatedError("You must be logged in.")
    return viewer


async def assert_logged_out(request: Request) -> None:
    if await get_viewer_optional(request) is not None:
        raise NotAllowedError("You are already logged in.")
