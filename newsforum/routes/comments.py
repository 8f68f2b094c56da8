"""Comment endpoints.

The thread of a post is served from /posts/{post_id}/comments.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from newsforum.models import Comment
from newsforum.schemas import (
    CommentCreateRequest,
    CommentResponse,
    CommentUpdateRequest,
    CommentView,
    CommentVoteRequest,
    MessageResponse,
)
from newsforum.routes.deps import get_principal, get_viewer_optional
from newsforum.services import actions, feed

router = APIRouter()

CommentId = Annotated[str, Path(description="Public comment id", min_length=1, max_length=64)]


def _comment_response(comment: Comment) -> CommentResponse:
    return CommentResponse(
        comment_id=comment.comment_id,
        author_id=comment.author_id,
        content=comment.content,
        parent_id=comment.parent_id,
        root_id=comment.root_id,
        depth=comment.depth,
        created_at=comment.created_at,
    )


@router.post("/comments", response_model=CommentResponse, status_code=201)
async def create_comment(body: CommentCreateRequest, user: str = Depends(get_principal)) -> CommentResponse:
    comment = await actions.create_comment(user, body.content, body.parent)
    return _comment_response(comment)


@router.get("/comments/{comment_id}", response_model=CommentView)
async def get_comment(
    comment_id: CommentId,
    viewer: str | None = Depends(get_viewer_optional),
) -> CommentView:
    return await feed.get_comment_details(comment_id, viewer)


@router.put("/comments/{comment_id}", response_model=CommentResponse)
async def edit_comment(
    body: CommentUpdateRequest,
    comment_id: CommentId,
    user: str = Depends(get_principal),
) -> CommentResponse:
    comment = await actions.edit_comment(user, comment_id, body.content)
    return _comment_response(comment)


@router.delete("/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(comment_id: CommentId, user: str = Depends(get_principal)) -> MessageResponse:
    await actions.delete_comment(user, comment_id)
    return MessageResponse(msg="Comment deleted successfully.")


@router.post("/comments/{comment_id}/vote", response_model=MessageResponse)
async def vote_comment(
    body: CommentVoteRequest,
    comment_id: CommentId,
    user: str = Depends(get_principal),
) -> MessageResponse:
    return MessageResponse(msg=await actions.vote_comment(user, comment_id, body.vote_type))
