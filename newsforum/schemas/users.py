"""Schemas for user endpoints (/users, /session, /topbar)."""

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=50)


class UpdateUserRequest(BaseModel):
    email: str | None = Field(default=None, max_length=320)
    bio: str | None = None


class TopBarRequest(BaseModel):
    top_bar_color: str = Field(
        alias="topBarColor",
        min_length=1,
        max_length=20,
        examples=["#ff6600"],
    )

    model_config = {"populate_by_name": True}


class AuthorSummary(BaseModel):
    """Public author profile embedded in post and comment rows."""

    user_id: str = Field(alias="userId")
    username: str
    bio: str | None = None

    model_config = {"populate_by_name": True}


class UserResponse(BaseModel):
    """User profile with karma.

    ``email`` and ``topBarColor`` are only present when the viewer is the user.
    """

    user_id: str = Field(alias="userId")
    username: str
    bio: str | None = None
    karma: int = Field(ge=0)
    email: str | None = None
    top_bar_color: str | None = Field(alias="topBarColor", default=None)

    model_config = {"populate_by_name": True}


class RegisterResponse(BaseModel):
    msg: str
    user: UserResponse
