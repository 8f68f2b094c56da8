"""Schemas for post endpoints and feed rows."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from newsforum.schemas.users import AuthorSummary


class PostCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    url: str | None = None
    text: str | None = None


class PostUpdateRequest(PostCreateRequest):
    pass


class PostVoteRequest(BaseModel):
    vote_type: Literal["up", "unvote"] = Field(alias="voteType")

    model_config = {"populate_by_name": True}


class PostResponse(BaseModel):
    """Bare post record (create/edit responses)."""

    post_id: str = Field(alias="postId")
    author_id: str = Field(alias="authorId")
    title: str
    url: str | None = None
    text: str | None = None
    date_created: datetime = Field(alias="dateCreated")

    model_config = {"populate_by_name": True}


class PostView(BaseModel):
    """A post enriched for a viewer (feed rows, favorites, hidden list).

    The ranking score is never part of this payload.
    """

    post_id: str = Field(alias="postId")
    title: str
    url: str | None = None
    text: str | None = None
    date_created: datetime = Field(alias="dateCreated")
    author: AuthorSummary | None = None
    points: int = 0
    comments: int = Field(default=0, ge=0)
    voted: bool = False
    vote: Literal["up", "down"] | None = None
    hidden: bool = False
    index: int | None = Field(default=None, ge=1)

    model_config = {"populate_by_name": True}


class PostDetail(PostView):
    """Single post with every viewer-specific flag resolved."""

    favorited: bool = False
    flagged: bool = False


class MarkResponse(BaseModel):
    msg: str
    already_marked: bool = Field(alias="alreadyMarked", default=False)

    model_config = {"populate_by_name": True}
