"""Post endpoints: feeds, detail views, authoring, votes and marks.

Routers are thin: call services for business logic.
"""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query

from newsforum.models import Post
from newsforum.schemas import (
    MarkResponse,
    MessageResponse,
    PostCreateRequest,
    PostDetail,
    PostResponse,
    PostUpdateRequest,
    PostView,
    PostVoteRequest,
    ThreadResponse,
)
from newsforum.routes.deps import get_principal, get_viewer_optional
from newsforum.services import actions, feed
from newsforum.services.marks import MarkResult
from newsforum.settings import get_settings

router = APIRouter()

PostId = Annotated[str, Path(description="Public post id", min_length=1, max_length=64)]


def _page_size(count: int | None) -> int:
    settings = get_settings()
    return min(count or settings.feed_default_count, settings.feed_max_count)


def _post_response(post: Post) -> PostResponse:
    return PostResponse(
        post_id=post.post_id,
        author_id=post.author_id,
        title=post.title,
        url=post.url,
        text=post.text,
        date_created=post.date_created,
    )


def _mark_response(result: MarkResult) -> MarkResponse:
    return MarkResponse(msg=result.message, already_marked=result.already_marked)


# ============================================================
# Feeds
# ============================================================


@router.get("/posts", response_model=list[PostView])
async def list_posts(
    page: int = Query(default=1, ge=1),
    count: int | None = Query(default=None, ge=1, description="Page size (capped at FEED_MAX_COUNT)"),
    prefix: str | None = Query(default=None, min_length=1, description="Case-insensitive title prefix"),
    day: date | None = Query(default=None, alias="date", description="Only posts created on this UTC day"),
    viewer: str | None = Depends(get_viewer_optional),
) -> list[PostView]:
    """Ranked feed of recent posts for the viewer."""
    return await feed.get_posts(viewer, page=page, count=_page_size(count), prefix=prefix, day=day)


@router.get("/posts/recent", response_model=list[PostView])
async def list_recent_posts(
    page: int = Query(default=1, ge=1),
    count: int | None = Query(default=None, ge=1),
    prefix: str | None = Query(default=None, min_length=1),
    viewer: str | None = Depends(get_viewer_optional),
) -> list[PostView]:
    return await feed.get_recent_posts(viewer, page=page, count=_page_size(count), prefix=prefix)


@router.get("/favorites", response_model=list[PostView])
async def list_favorites(
    user_id: str = Query(min_length=1),
    viewer: str | None = Depends(get_viewer_optional),
) -> list[PostView]:
    return await feed.get_favorited_posts(user_id, viewer)


@router.get("/hidden", response_model=list[PostView])
async def list_hidden(viewer: str = Depends(get_principal)) -> list[PostView]:
    return await feed.get_hidden_posts(viewer)


# ============================================================
# Single post
# ============================================================


@router.post("/posts", response_model=PostResponse, status_code=201)
async def create_post(body: PostCreateRequest, user: str = Depends(get_principal)) -> PostResponse:
    post = await actions.create_post(user, body.title, body.url, body.text)
    return _post_response(post)


@router.get("/posts/{post_id}", response_model=PostDetail)
async def get_post(
    post_id: PostId,
    viewer: str | None = Depends(get_viewer_optional),
) -> PostDetail:
    return await feed.get_post_details(post_id, viewer)


@router.put("/posts/{post_id}", response_model=PostResponse)
async def edit_post(
    body: PostUpdateRequest,
    post_id: PostId,
    user: str = Depends(get_principal),
) -> PostResponse:
    post = await actions.edit_post(user, post_id, body.title, body.url, body.text)
    return _post_response(post)


@router.delete("/posts/{post_id}", response_model=MessageResponse)
async def delete_post(post_id: PostId, user: str = Depends(get_principal)) -> MessageResponse:
    await actions.delete_post(user, post_id)
    return MessageResponse(msg="Post deleted successfully.")


@router.post("/posts/{post_id}/vote", response_model=MessageResponse)
async def vote_post(
    body: PostVoteRequest,
    post_id: PostId,
    user: str = Depends(get_principal),
) -> MessageResponse:
    return MessageResponse(msg=await actions.vote_post(user, post_id, body.vote_type))


@router.get("/posts/{post_id}/comments", response_model=ThreadResponse)
async def get_post_comments(
    post_id: PostId,
    viewer: str | None = Depends(get_viewer_optional),
) -> ThreadResponse:
    return await feed.get_comment_thread(post_id, viewer)


# ============================================================
# Marks
# ============================================================


@router.post("/posts/{post_id}/favorite", response_model=MarkResponse)
async def favorite_post(post_id: PostId, user: str = Depends(get_principal)) -> MarkResponse:
    return _mark_response(await actions.favorite_post(user, post_id))


@router.delete("/posts/{post_id}/favorite", response_model=MessageResponse)
async def unfavorite_post(post_id: PostId, user: str = Depends(get_principal)) -> MessageResponse:
    await actions.unfavorite_post(user, post_id)
    return MessageResponse(msg="Successfully removed from favorites.")


@router.post("/posts/{post_id}/hide", response_model=MarkResponse)
async def hide_post(post_id: PostId, user: str = Depends(get_principal)) -> MarkResponse:
    return _mark_response(await actions.hide_post(user, post_id))


@router.delete("/posts/{post_id}/hide", response_model=MessageResponse)
async def unhide_post(post_id: PostId, user: str = Depends(get_principal)) -> MessageResponse:
    await actions.unhide_post(user, post_id)
    return MessageResponse(msg="Successfully unhid the post.")


@router.post("/posts/{post_id}/flag", response_model=MarkResponse)
async def flag_post(post_id: PostId, user: str = Depends(get_principal)) -> MarkResponse:
    return _mark_response(await actions.flag_post(user, post_id))


@router.delete("/posts/{post_id}/flag", response_model=MessageResponse)
async def unflag_post(post_id: PostId, user: str = Depends(get_principal)) -> MessageResponse:
    await actions.unflag_post(user, post_id)
    return MessageResponse(msg="Successfully unflagged the post.")
