"""Cross-component action flows.

Each action is one database transaction: preconditions (ownership, karma
gates, vote state) are checked before any write, and a failure anywhere rolls
the whole action back.

Karma effects:
- post upvote: +1 to the post author; unvoting an upvote: -1
- comment upvote: +1 / comment downvote: -1 to the comment author
- comment unvote: no karma change (kept as-is; post unvote does reverse karma)
- creating a post or comment casts the author's own upvote without karma
"""

import logging

from redis.exceptions import RedisError

from newsforum.errors import AlreadyVotedError, BadValuesError, NotAllowedError, NotFoundError
from newsforum.models import Comment, Post, VoteType
from newsforum.schemas import UserResponse
from newsforum.services.comments import comment_tree
from newsforum.services.karma import karma_store
from newsforum.services.marks import MarkResult, MarkStore, favorites, flags, hides
from newsforum.services.posts import post_store
from newsforum.services.users import user_directory
from newsforum.services.votes import comment_votes, post_votes
from newsforum.settings import get_settings
from newsforum.stores.postgres import get_session
from newsforum.stores.redis import invalidate_feed_cache

logger = logging.getLogger("uvicorn.error")

POST_VOTE_UP = "up"
POST_VOTE_UNVOTE = "unvote"
COMMENT_VOTE_UP = "upvote"
COMMENT_VOTE_DOWN = "downvote"
COMMENT_VOTE_UNVOTE = "unvote"


async def _try_invalidate_feed_cache() -> None:
    try:
        await invalidate_feed_cache()
    except (RuntimeError, RedisError):
        return


# ============================================================
# Users
# ============================================================


async def register_user(username: str) -> UserResponse:
    """Create a user and grant the starting karma."""
    settings = get_settings()
    async with get_session() as session:
        user = await user_directory.create(session, username)
        if settings.starting_karma:
            await karma_store.increase(session, user.user_id, settings.starting_karma)

    return UserResponse(
        user_id=user.user_id,
        username=user.username,
        bio=user.bio,
        karma=settings.starting_karma,
        email=user.email,
        top_bar_color=user.top_bar_color,
    )


async def get_user_with_karma(*, viewer: str | None, user_id: str | None = None, username: str | None = None) -> UserResponse:
    """Profile plus karma; email and top-bar color only when the viewer is the user."""
    async with get_session() as session:
        if user_id is not None:
            profile = await user_directory.get_by_id(session, user_id)
        elif username:
            profile = await user_directory.get_by_username(session, username)
        else:
            raise BadValuesError("A user id or username is required.")
        karma = await karma_store.get(session, profile.user_id)

    is_self = viewer is not None and viewer == profile.user_id
    return UserResponse(
        user_id=profile.user_id,
        username=profile.username,
        bio=profile.bio,
        karma=karma,
        email=profile.email if is_self else None,
        top_bar_color=profile.top_bar_color if is_self else None,
    )


async def update_user(user: str, email: str | None, bio: str | None) -> None:
    async with get_session() as session:
        await user_directory.update(session, user, email=email, bio=bio)


async def change_top_bar_color(user: str, color: str) -> None:
    """Change the viewer's top-bar color (karma-gated)."""
    async with get_session() as session:
        await karma_store.require_at_least(session, user, get_settings().karma_top_bar_threshold)
        await user_directory.change_top_bar(session, user, color)


# ============================================================
# Posts
# ============================================================


async def create_post(author: str, title: str, url: str | None = None, text: str | None = None) -> Post:
    """Create a post and cast the author's own upvote (no karma change)."""
    async with get_session() as session:
        post = await post_store.create(session, author, title, url, text)
        await post_votes.upvote(session, author, post.post_id)

    await _try_invalidate_feed_cache()
    return post


async def edit_post(author: str, post_id: str, title: str, url: str | None = None, text: str | None = None) -> Post:
    async with get_session() as session:
        post = await post_store.update(session, post_id, author, title, url, text)

    await _try_invalidate_feed_cache()
    return post


async def delete_post(author: str, post_id: str) -> None:
    """Delete a post that has no comments (author only, within the edit window)."""
    async with get_session() as session:
        if await comment_tree.get_by_parent(session, post_id):
            raise NotAllowedError("Cannot delete a post that has comments", detail={"post_id": post_id})
        await post_store.delete(session, post_id, author)

    await _try_invalidate_feed_cache()


async def vote_post(voter: str, post_id: str, vote_type: str) -> str:
    """Upvote or unvote a post.

    Returns:
        Human-readable confirmation.
    """
    async with get_session() as session:
        post = await post_store.get_by_id(session, post_id)
        if post.author_id == voter:
            raise NotAllowedError("Cannot vote on your own post.", detail={"post_id": post_id})

        existing = await post_votes.get_vote(session, voter, post_id)

        if vote_type == POST_VOTE_UP:
            if existing is not None:
                raise AlreadyVotedError("Already voted.", detail={"post_id": post_id})
            await post_votes.upvote(session, voter, post_id)
            await karma_store.increase(session, post.author_id, 1)
            logger.info(f"[votes] post upvote voter={voter} post={post_id}")
            message = "Successfully upvoted the post."
        elif vote_type == POST_VOTE_UNVOTE:
            if existing is None:
                raise NotAllowedError("No vote to remove.", detail={"post_id": post_id})
            removed = await post_votes.unvote(session, voter, post_id)
            if removed is not None and removed.type == VoteType.UP:
                await karma_store.decrease(session, post.author_id, 1)
            logger.info(f"[votes] post unvote voter={voter} post={post_id}")
            message = "Successfully unvoted the post."
        else:
            raise BadValuesError(f"Invalid vote type: {vote_type}")

    await _try_invalidate_feed_cache()
    return message


async def _mark_post(store: MarkStore, user: str, post_id: str) -> MarkResult:
    async with get_session() as session:
        await post_store.get_by_id(session, post_id)
        return await store.mark(session, user, post_id)


async def _unmark_post(store: MarkStore, user: str, post_id: str) -> None:
    async with get_session() as session:
        await store.unmark(session, user, post_id)


async def favorite_post(user: str, post_id: str) -> MarkResult:
    return await _mark_post(favorites, user, post_id)


async def unfavorite_post(user: str, post_id: str) -> None:
    await _unmark_post(favorites, user, post_id)


async def hide_post(user: str, post_id: str) -> MarkResult:
    return await _mark_post(hides, user, post_id)


async def unhide_post(user: str, post_id: str) -> None:
    await _unmark_post(hides, user, post_id)


async def flag_post(user: str, post_id: str) -> MarkResult:
    """Flag a post; requires KARMA_FLAG_THRESHOLD karma, checked before the mark."""
    async with get_session() as session:
        await karma_store.require_at_least(session, user, get_settings().karma_flag_threshold)
        await post_store.get_by_id(session, post_id)
        result = await flags.mark(session, user, post_id)

    if not result.already_marked:
        await _try_invalidate_feed_cache()
    return result


async def unflag_post(user: str, post_id: str) -> None:
    await _unmark_post(flags, user, post_id)
    await _try_invalidate_feed_cache()


# ============================================================
# Comments
# ============================================================


async def create_comment(author: str, content: str, parent: str) -> Comment:
    """Reply to a post or comment and cast the author's own upvote."""
    if not content or not content.strip():
        raise BadValuesError("Comment content must be non-empty.")

    async with get_session() as session:
        is_comment = bool(await comment_tree.get_by_ids(session, [parent]))
        if not is_comment:
            try:
                await post_store.get_by_id(session, parent)
            except NotFoundError:
                raise NotFoundError("Parent post or comment not found.", detail={"parent": parent}) from None

        comment = await comment_tree.create(session, author, content, parent)
        await comment_votes.upvote(session, author, comment.comment_id)

    await _try_invalidate_feed_cache()
    return comment


async def edit_comment(author: str, comment_id: str, content: str) -> Comment:
    if not content or not content.strip():
        raise BadValuesError("Comment content must be non-empty.")

    async with get_session() as session:
        comment = await comment_tree.get_by_id(session, comment_id)
        if comment.author_id != author:
            raise NotAllowedError("User is not the author of this comment.", detail={"comment_id": comment_id})
        return await comment_tree.update(session, comment_id, content)


async def delete_comment(author: str, comment_id: str) -> None:
    """Delete one of the author's comments; replies must be deleted first."""
    async with get_session() as session:
        comment = await comment_tree.get_by_id(session, comment_id)
        if comment.author_id != author:
            raise NotAllowedError("Not the author of the comment", detail={"comment_id": comment_id})
        await comment_tree.delete(session, comment_id)

    await _try_invalidate_feed_cache()


async def vote_comment(voter: str, comment_id: str, vote_type: str) -> str:
    """Upvote, downvote or unvote a comment.

    Downvoting requires KARMA_COMMENT_DOWNVOTE_THRESHOLD karma, checked before
    the vote is cast.
    """
    async with get_session() as session:
        comment = await comment_tree.get_by_id(session, comment_id)
        if comment.author_id == voter:
            raise NotAllowedError("Cannot vote on own comment.", detail={"comment_id": comment_id})

        if vote_type == COMMENT_VOTE_UP:
            await comment_votes.upvote(session, voter, comment_id)
            await karma_store.increase(session, comment.author_id, 1)
        elif vote_type == COMMENT_VOTE_DOWN:
            await karma_store.require_at_least(
                session, voter, get_settings().karma_comment_downvote_threshold
            )
            await comment_votes.downvote(session, voter, comment_id)
            await karma_store.decrease(session, comment.author_id, 1)
        elif vote_type == COMMENT_VOTE_UNVOTE:
            # Karma granted/taken by the original vote is not reversed here.
            await comment_votes.unvote(session, voter, comment_id)
        else:
            raise BadValuesError(f"Invalid vote type: {vote_type}")

    logger.info(f"[votes] comment {vote_type} voter={voter} comment={comment_id}")
    return f"Comment {vote_type}d successfully."
