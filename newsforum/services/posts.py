"""Post store: post records with an author-only, time-boxed edit/delete window."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from newsforum.errors import BadValuesError, NotAllowedError, NotFoundError
from newsforum.models import Post
from newsforum.services.timeutil import hours_between, utcnow
from newsforum.settings import get_settings

logger = logging.getLogger("uvicorn.error")


@dataclass
class PostQuery:
    """Filters for listing posts (newest first)."""

    date_start: datetime | None = None
    date_end: datetime | None = None
    title_prefix: str | None = None
    exclude_ids: Sequence[str] = ()
    skip: int = 0
    limit: int | None = None


class PostStore:
    async def create(
        self,
        session: AsyncSession,
        author: str,
        title: str,
        url: str | None = None,
        text: str | None = None,
    ) -> Post:
        if not title or not title.strip():
            raise BadValuesError("Title is required.")

        post = Post(author_id=author, title=title.strip(), url=url or None, text=text or None)
        session.add(post)
        await session.flush()
        logger.info(f"[posts] created {post.post_id} author={author}")
        return post

    async def update(
        self,
        session: AsyncSession,
        post_id: str,
        author: str,
        title: str,
        url: str | None = None,
        text: str | None = None,
        *,
        now: datetime | None = None,
    ) -> Post:
        """Replace title/url/text of a post, keeping author and date_created."""
        post = await self.get_by_id(session, post_id)
        self._check_mutable(post, author, "updated", now)
        if not title or not title.strip():
            raise BadValuesError("Title is required.")

        post.title = title.strip()
        post.url = url or None
        post.text = text or None
        await session.flush()
        logger.info(f"[posts] updated {post_id}")
        return post

    async def delete(
        self,
        session: AsyncSession,
        post_id: str,
        author: str,
        *,
        now: datetime | None = None,
    ) -> None:
        post = await self.get_by_id(session, post_id)
        self._check_mutable(post, author, "deleted", now)
        await session.execute(
            delete(Post).where(Post.post_id == post_id).execution_options(synchronize_session=False)
        )
        logger.info(f"[posts] deleted {post_id}")

    def _check_mutable(self, post: Post, author: str, verb: str, now: datetime | None) -> None:
        window = get_settings().post_edit_window_hours
        if hours_between(post.date_created, now or utcnow()) > window:
            raise NotAllowedError(
                f"Posts can only be {verb} within {window:g} hours of creation.",
                detail={"post_id": post.post_id},
            )
        if post.author_id != author:
            raise NotAllowedError(f"Only the author can {verb[:-1]} the post.", detail={"post_id": post.post_id})

    async def get_by_id(self, session: AsyncSession, post_id: str) -> Post:
        result = await session.execute(select(Post).where(Post.post_id == post_id))
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError("Post not found.", detail={"post_id": post_id})
        return post

    async def get_by_ids(self, session: AsyncSession, ids: Sequence[str]) -> dict[str, Post]:
        """Map post_id -> post for the ids that exist (newest first)."""
        if not ids:
            return {}
        result = await session.execute(
            select(Post).where(Post.post_id.in_(list(ids))).order_by(Post.date_created.desc(), Post.id.desc())
        )
        return {post.post_id: post for post in result.scalars().all()}

    async def get_by_author(self, session: AsyncSession, author: str) -> list[Post]:
        result = await session.execute(
            select(Post).where(Post.author_id == author).order_by(Post.date_created.desc(), Post.id.desc())
        )
        return list(result.scalars().all())

    async def find(self, session: AsyncSession, query: PostQuery | None = None) -> list[Post]:
        """List posts newest first, filtered by date range and title prefix."""
        query = query or PostQuery()
        stmt = select(Post)
        if query.date_start is not None:
            stmt = stmt.where(Post.date_created >= query.date_start)
        if query.date_end is not None:
            stmt = stmt.where(Post.date_created <= query.date_end)
        if query.title_prefix:
            # Literal, case-insensitive prefix (LIKE wildcards are escaped).
            stmt = stmt.where(func.lower(Post.title).startswith(query.title_prefix.lower(), autoescape=True))
        if query.exclude_ids:
            stmt = stmt.where(Post.post_id.not_in(list(query.exclude_ids)))

        stmt = stmt.order_by(Post.date_created.desc(), Post.id.desc())
        if query.skip:
            stmt = stmt.offset(query.skip)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)

        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def is_author(self, session: AsyncSession, post_id: str, author: str) -> bool:
        result = await session.execute(select(Post.author_id).where(Post.post_id == post_id))
        return result.scalar_one_or_none() == author


post_store = PostStore()
