"""Typed errors raised by services.

Each error carries a stable ``code`` plus an HTTP ``status_code``; the app-level
exception handler renders them as ``{"error": {"code", "message", "detail"}}``.
"""

from typing import Any


class ForumError(RuntimeError):
    """Base class for business errors surfaced to callers."""

    code = "FORUM_ERROR"
    status_code = 500

    def __init__(self, message: str, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class NotFoundError(ForumError):
    """Referenced entity is absent."""

    code = "NOT_FOUND"
    status_code = 404


class NotAllowedError(ForumError):
    """Business rule violation (karma gates, edit window, ownership, ...)."""

    code = "NOT_ALLOWED"
    status_code = 403


class AlreadyVotedError(NotAllowedError):
    code = "ALREADY_VOTED"


class BadValuesError(ForumError):
    """Malformed or missing required input."""

    code = "BAD_VALUES"
    status_code = 400


class UnauthenticatedError(ForumError):
    code = "UNAUTHENTICATED"
    status_code = 401
