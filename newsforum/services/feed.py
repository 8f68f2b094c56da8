"""Feed ranker: scored, filtered, paginated and viewer-personalized post lists.

Ranking (GET /posts):
1. Candidates: posts created on the requested day, else within the last
   FEED_WINDOW_DAYS days; optional case-insensitive title prefix.
2. Batch lookups run concurrently, one session each: author profiles, points,
   comment counts, flag counts, the viewer's hides and votes.
3. Posts hidden by the viewer are dropped.
4. score = (points - 1) / max(age_hours, 1) ** FEED_GRAVITY - FEED_FLAG_PENALTY * flags
5. Stable sort by score desc (ties keep newest-first candidate order).
6. Page slice [(page-1)*count, page*count) with a continuous 1-based index.
7. The score never leaves this module.

Karma is not a scoring input; it only gates the actions that produce flags.
Anonymous ranked/recent pages are cached in Redis for a few seconds when Redis
is available.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, TypeVar

from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from newsforum.models import Comment, Post, Vote
from newsforum.schemas import AuthorSummary, CommentView, PostDetail, PostView, ThreadResponse
from newsforum.services.comments import comment_tree
from newsforum.services.marks import favorites, flags, hides
from newsforum.services.posts import PostQuery, post_store
from newsforum.services.timeutil import hours_between, utcnow
from newsforum.services.users import UserProfile, user_directory
from newsforum.services.votes import comment_votes, post_votes
from newsforum.settings import get_settings
from newsforum.stores.postgres import get_session
from newsforum.stores.redis import feed_cache_key, get_feed_cache, set_feed_cache

logger = logging.getLogger("uvicorn.error")

T = TypeVar("T")


# ============================================================
# Pure ranking helpers
# ============================================================


def compute_score(
    points: int,
    age_hours: float,
    flag_count: int,
    *,
    gravity: float,
    flag_penalty: float,
) -> float:
    """Decaying popularity score of a post.

    ``(points - 1)`` is divided by the decay term as a whole; the age is
    floored at one hour so brand-new posts do not dominate.
    """
    hours = max(age_hours, 1.0)
    return (points - 1) / hours**gravity - flag_penalty * flag_count


def paginate(items: Sequence[T], page: int, count: int) -> list[tuple[int, T]]:
    """Slice one page and pair each item with its 1-based global index."""
    page = max(page, 1)
    count = max(count, 1)
    start = (page - 1) * count
    return [(start + offset + 1, item) for offset, item in enumerate(items[start : start + count])]


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """First and last instant (UTC) of ``day``."""
    return (
        datetime.combine(day, time.min, tzinfo=timezone.utc),
        datetime.combine(day, time.max, tzinfo=timezone.utc),
    )


# ============================================================
# Batched lookups
# ============================================================


async def _read(fn: Callable[..., Awaitable[T]], *args: Any) -> T:
    """Run one store read in its own session so it can join asyncio.gather."""
    async with get_session() as session:
        return await fn(session, *args)


async def _value(value: T) -> T:
    return value


@dataclass
class FeedContext:
    """Everything needed to turn posts into viewer-specific rows."""

    authors: dict[str, UserProfile] = field(default_factory=dict)
    points: dict[str, int] = field(default_factory=dict)
    comments: dict[str, int] = field(default_factory=dict)
    flags: dict[str, int] = field(default_factory=dict)
    hidden: set[str] = field(default_factory=set)
    votes: dict[str, Vote] = field(default_factory=dict)


async def resolve_context(
    posts: Sequence[Post],
    viewer: str | None,
    *,
    with_flags: bool = False,
    hidden: set[str] | None = None,
) -> FeedContext:
    """Fan out the per-page lookups concurrently and join them."""
    post_ids = [p.post_id for p in posts]
    author_ids = list(dict.fromkeys(p.author_id for p in posts))

    authors, points, comments, flag_counts, hide_marks, votes = await asyncio.gather(
        _read(user_directory.get_by_ids, author_ids),
        _read(post_votes.points_for_many, post_ids),
        _read(comment_tree.count_by_roots, post_ids),
        _read(flags.count_by_items, post_ids) if with_flags else _value({}),
        _read(hides.get_by_user, viewer) if viewer and hidden is None else _value([]),
        _read(post_votes.get_votes, viewer, post_ids) if viewer and post_ids else _value({}),
    )
    if hidden is None:
        hidden = {mark.item_id for mark in hide_marks}

    return FeedContext(
        authors=authors,
        points=points,
        comments=comments,
        flags=flag_counts,
        hidden=hidden,
        votes=votes,
    )


def _author_summary(profile: UserProfile | None) -> AuthorSummary | None:
    if profile is None:
        return None
    return AuthorSummary(user_id=profile.user_id, username=profile.username, bio=profile.bio)


def build_post_view(post: Post, ctx: FeedContext, index: int | None = None) -> PostView:
    vote = ctx.votes.get(post.post_id)
    return PostView(
        post_id=post.post_id,
        title=post.title,
        url=post.url,
        text=post.text,
        date_created=post.date_created,
        author=_author_summary(ctx.authors.get(post.author_id)),
        points=ctx.points.get(post.post_id, 0),
        comments=ctx.comments.get(post.post_id, 0),
        voted=vote is not None,
        vote=vote.type.value if vote is not None else None,
        hidden=post.post_id in ctx.hidden,
        index=index,
    )


# ============================================================
# Anonymous page cache
# ============================================================


async def _try_get_cached_page(key: str) -> list[PostView] | None:
    try:
        payload = await get_feed_cache(key)
    except (RuntimeError, RedisError):
        return None
    if not payload:
        return None
    return [PostView.model_validate(row) for row in payload]


async def _try_set_cached_page(key: str, views: list[PostView], ttl: int) -> None:
    try:
        await set_feed_cache(key, [v.model_dump(mode="json") for v in views], ttl)
    except (RuntimeError, RedisError):
        # Redis may be unavailable in tests/local minimal env.
        return


# ============================================================
# Listings
# ============================================================


async def get_posts(
    viewer: str | None = None,
    *,
    page: int = 1,
    count: int | None = None,
    prefix: str | None = None,
    day: date | None = None,
    now: datetime | None = None,
) -> list[PostView]:
    """Ranked feed.

    Args:
        viewer: Principal id of the requesting user, if any.
        page: 1-based page number.
        count: Page size (defaults to FEED_DEFAULT_COUNT).
        prefix: Case-insensitive title prefix filter.
        day: Restrict to posts created on this UTC day instead of the recency window.
        now: Reference time for age computation (defaults to current time).
    """
    settings = get_settings()
    count = count or settings.feed_default_count
    now = now or utcnow()

    cache_key = None
    if viewer is None and settings.feed_cache_ttl_seconds > 0:
        cache_key = feed_cache_key("top", page, count, prefix, day)
        cached = await _try_get_cached_page(cache_key)
        if cached is not None:
            return cached

    if day is not None:
        date_start, date_end = day_bounds(day)
    else:
        date_start, date_end = now - timedelta(days=settings.feed_window_days), None

    async with get_session() as session:
        candidates = await post_store.find(
            session,
            PostQuery(date_start=date_start, date_end=date_end, title_prefix=prefix),
        )

    ctx = await resolve_context(candidates, viewer, with_flags=True)
    visible = [p for p in candidates if p.post_id not in ctx.hidden]

    scores = {
        p.post_id: compute_score(
            ctx.points.get(p.post_id, 0),
            hours_between(p.date_created, now),
            ctx.flags.get(p.post_id, 0),
            gravity=settings.feed_gravity,
            flag_penalty=settings.feed_flag_penalty,
        )
        for p in visible
    }
    ranked = sorted(visible, key=lambda p: scores[p.post_id], reverse=True)

    views = [build_post_view(post, ctx, index) for index, post in paginate(ranked, page, count)]
    logger.debug(f"[feed] ranked candidates={len(candidates)} visible={len(visible)} page={page}")

    if cache_key is not None:
        await _try_set_cached_page(cache_key, views, settings.feed_cache_ttl_seconds)
    return views


async def get_recent_posts(
    viewer: str | None = None,
    *,
    page: int = 1,
    count: int | None = None,
    prefix: str | None = None,
) -> list[PostView]:
    """Newest-first feed with the same enrichment and pagination shape as get_posts."""
    settings = get_settings()
    count = count or settings.feed_default_count
    page = max(page, 1)

    cache_key = None
    if viewer is None and settings.feed_cache_ttl_seconds > 0:
        cache_key = feed_cache_key("recent", page, count, prefix)
        cached = await _try_get_cached_page(cache_key)
        if cached is not None:
            return cached

    hidden: set[str] = set()
    if viewer:
        hidden = {mark.item_id for mark in await _read(hides.get_by_user, viewer)}

    # Hidden posts are excluded in the query so pages stay full and indexes continuous.
    async with get_session() as session:
        posts = await post_store.find(
            session,
            PostQuery(
                title_prefix=prefix,
                exclude_ids=sorted(hidden),
                skip=(page - 1) * count,
                limit=count,
            ),
        )

    ctx = await resolve_context(posts, viewer, hidden=hidden)
    start = (page - 1) * count
    views = [build_post_view(post, ctx, start + offset + 1) for offset, post in enumerate(posts)]

    if cache_key is not None:
        await _try_set_cached_page(cache_key, views, settings.feed_cache_ttl_seconds)
    return views


async def _marked_posts(post_ids: list[str], viewer: str | None, *, hidden: set[str] | None = None) -> list[PostView]:
    posts = await _read(post_store.get_by_ids, post_ids)
    ordered = [posts[pid] for pid in post_ids if pid in posts]
    ctx = await resolve_context(ordered, viewer, hidden=hidden)
    return [build_post_view(post, ctx, index) for index, post in enumerate(ordered, start=1)]


async def get_favorited_posts(owner: str, viewer: str | None = None) -> list[PostView]:
    """Posts favorited by ``owner`` (most recent first), enriched for ``viewer``."""
    marks = await _read(favorites.get_by_user, owner)
    return await _marked_posts([m.item_id for m in marks], viewer)


async def get_hidden_posts(viewer: str) -> list[PostView]:
    """Posts the viewer hid; every row carries hidden=True."""
    marks = await _read(hides.get_by_user, viewer)
    post_ids = [m.item_id for m in marks]
    return await _marked_posts(post_ids, viewer, hidden=set(post_ids))


# ============================================================
# Detail views
# ============================================================


async def _viewer_flag(fn: Callable[[AsyncSession, str, str], Awaitable[bool]], viewer: str | None, item: str) -> bool:
    if not viewer:
        return False
    return await _read(fn, viewer, item)


async def get_post_details(post_id: str, viewer: str | None = None) -> PostDetail:
    """Single post with author, points, comment count and the viewer's vote/hide/favorite/flag state."""
    post = await _read(post_store.get_by_id, post_id)

    author, points, comments, vote, hidden, favorited, flagged = await asyncio.gather(
        _read(user_directory.get_by_ids, [post.author_id]),
        _read(post_votes.points_for, post_id),
        _read(comment_tree.count_by_roots, [post_id]),
        _read(post_votes.get_vote, viewer, post_id) if viewer else _value(None),
        _viewer_flag(hides.is_marked, viewer, post_id),
        _viewer_flag(favorites.is_marked, viewer, post_id),
        _viewer_flag(flags.is_marked, viewer, post_id),
    )

    return PostDetail(
        post_id=post.post_id,
        title=post.title,
        url=post.url,
        text=post.text,
        date_created=post.date_created,
        author=_author_summary(author.get(post.author_id)),
        points=points,
        comments=comments.get(post_id, 0),
        voted=vote is not None,
        vote=vote.type.value if vote is not None else None,
        hidden=hidden,
        favorited=favorited,
        flagged=flagged,
    )


def build_comment_view(
    comment: Comment,
    authors: dict[str, UserProfile],
    points: dict[str, int],
    votes: dict[str, Vote],
) -> CommentView:
    vote = votes.get(comment.comment_id)
    return CommentView(
        comment_id=comment.comment_id,
        content=comment.content,
        parent_id=comment.parent_id,
        root_id=comment.root_id,
        depth=comment.depth,
        created_at=comment.created_at,
        author=_author_summary(authors.get(comment.author_id)),
        points=points.get(comment.comment_id, 0),
        vote=vote.type.value if vote is not None else None,
    )


async def get_comment_details(comment_id: str, viewer: str | None = None) -> CommentView:
    comment = await _read(comment_tree.get_by_id, comment_id)
    authors, points, votes = await asyncio.gather(
        _read(user_directory.get_by_ids, [comment.author_id]),
        _read(comment_votes.points_for_many, [comment_id]),
        _read(comment_votes.get_votes, viewer, [comment_id]) if viewer else _value({}),
    )
    return build_comment_view(comment, authors, points, votes)


async def get_comment_thread(post_id: str, viewer: str | None = None) -> ThreadResponse:
    """Pre-order flattened thread of a post, enriched per comment."""
    await _read(post_store.get_by_id, post_id)
    flat = await _read(comment_tree.flatten, post_id)

    comment_ids = [row.comment.comment_id for row in flat]
    author_ids = list(dict.fromkeys(row.comment.author_id for row in flat))
    authors, points, votes = await asyncio.gather(
        _read(user_directory.get_by_ids, author_ids),
        _read(comment_votes.points_for_many, comment_ids),
        _read(comment_votes.get_votes, viewer, comment_ids) if viewer and comment_ids else _value({}),
    )

    views = [build_comment_view(row.comment, authors, points, votes) for row in flat]
    return ThreadResponse(post_id=post_id, count=len(views), comments=views)
