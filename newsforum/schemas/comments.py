"""Schemas for comment endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from newsforum.schemas.users import AuthorSummary


class CommentCreateRequest(BaseModel):
    content: str = Field(min_length=1)
    parent: str = Field(min_length=1, description="Post id or comment id being replied to")


class CommentUpdateRequest(BaseModel):
    content: str = Field(min_length=1)


class CommentVoteRequest(BaseModel):
    vote_type: Literal["upvote", "downvote", "unvote"] = Field(alias="voteType")

    model_config = {"populate_by_name": True}


class CommentResponse(BaseModel):
    """Bare comment record."""

    comment_id: str = Field(alias="commentId")
    author_id: str = Field(alias="authorId")
    content: str
    parent_id: str = Field(alias="parentId")
    root_id: str = Field(alias="rootId")
    depth: int = Field(ge=0)
    created_at: datetime = Field(alias="createdAt")

    model_config = {"populate_by_name": True}


class CommentView(BaseModel):
    """Comment enriched with author, points and the viewer's vote."""

    comment_id: str = Field(alias="commentId")
    content: str
    parent_id: str = Field(alias="parentId")
    root_id: str = Field(alias="rootId")
    depth: int = Field(ge=0)
    created_at: datetime = Field(alias="createdAt")
    author: AuthorSummary | None = None
    points: int = 0
    vote: Literal["up", "down"] | None = None

    model_config = {"populate_by_name": True}


class ThreadResponse(BaseModel):
    """Pre-order flattened comment thread of a post."""

    post_id: str = Field(alias="postId")
    count: int = Field(ge=0)
    comments: list[CommentView]

    model_config = {"populate_by_name": True}
