"""Pydantic schemas for API request/response validation."""

from newsforum.schemas.common import ErrorDetail, ErrorResponse, MessageResponse
from newsforum.schemas.comments import (
    CommentCreateRequest,
    CommentResponse,
    CommentUpdateRequest,
    CommentView,
    CommentVoteRequest,
    ThreadResponse,
)
from newsforum.schemas.posts import (
    MarkResponse,
    PostCreateRequest,
    PostDetail,
    PostResponse,
    PostUpdateRequest,
    PostView,
    PostVoteRequest,
)
from newsforum.schemas.users import (
    AuthorSummary,
    RegisterRequest,
    RegisterResponse,
    TopBarRequest,
    UpdateUserRequest,
    UserResponse,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "MessageResponse",
    "CommentCreateRequest",
    "CommentResponse",
    "CommentUpdateRequest",
    "CommentView",
    "CommentVoteRequest",
    "ThreadResponse",
    "MarkResponse",
    "PostCreateRequest",
    "PostDetail",
    "PostResponse",
    "PostUpdateRequest",
    "PostView",
    "PostVoteRequest",
    "AuthorSummary",
    "RegisterRequest",
    "RegisterResponse",
    "TopBarRequest",
    "UpdateUserRequest",
    "UserResponse",
]
