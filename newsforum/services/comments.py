"""Comment tree: threaded comments with derived root/depth.

Placement rule (computed once at insert, never recomputed):
- parent is a comment -> root = parent.root, depth = parent.depth + 1
- parent is anything else (a post) -> root = parent, depth = 0

Deletion is leaf-first: a comment with any direct reply cannot be deleted.

Tree reads never re-query per level. Every comment of a thread shares the same
root, so one query by root_id fetches the whole thread; an in-memory
parent -> children index (siblings in insertion order) is then traversed.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from newsforum.errors import NotAllowedError, NotFoundError
from newsforum.models import Comment

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class Placement:
    """Derived position of a new comment."""

    root_id: str
    depth: int


@dataclass
class CommentNode:
    """Nested view of a comment and its replies."""

    comment: Comment
    children: list["CommentNode"] = field(default_factory=list)


@dataclass(frozen=True)
class FlatComment:
    """Comment in a pre-order flattened thread, with its nesting level."""

    comment: Comment
    depth: int


def derive_placement(parent_id: str, parent_comment: Comment | None) -> Placement:
    """Compute root/depth for a comment created under ``parent_id``.

    Args:
        parent_id: Id the new comment replies to (comment or post).
        parent_comment: The parent if it is a comment, else None.
    """
    if parent_comment is not None:
        return Placement(root_id=parent_comment.root_id, depth=parent_comment.depth + 1)
    return Placement(root_id=parent_id, depth=0)


def index_children(comments: Iterable[Comment]) -> dict[str, list[Comment]]:
    """Build parent_id -> children with siblings in insertion order."""
    children: dict[str, list[Comment]] = defaultdict(list)
    for comment in sorted(comments, key=lambda c: c.id):
        children[comment.parent_id].append(comment)
    return children


def walk_subtree(children: dict[str, list[Comment]], parent_id: str) -> list[Comment]:
    """Depth-first, pre-order list of every descendant of ``parent_id``."""
    result: list[Comment] = []
    stack = list(reversed(children.get(parent_id, [])))
    while stack:
        comment = stack.pop()
        result.append(comment)
        stack.extend(reversed(children.get(comment.comment_id, [])))
    return result


def build_tree(children: dict[str, list[Comment]], parent_id: str) -> list[CommentNode]:
    return [
        CommentNode(comment=c, children=build_tree(children, c.comment_id))
        for c in children.get(parent_id, [])
    ]


def flatten_tree(nodes: Sequence[CommentNode], depth: int = 0) -> list[FlatComment]:
    """Emit each node immediately followed by its flattened subtree."""
    flat: list[FlatComment] = []
    for node in nodes:
        flat.append(FlatComment(comment=node.comment, depth=depth))
        flat.extend(flatten_tree(node.children, depth + 1))
    return flat


class CommentTree:
    """Comment storage with derived placement and leaf-only deletion."""

    async def create(self, session: AsyncSession, author: str, content: str, parent: str) -> Comment:
        parent_comment = await self._find(session, parent)
        placement = derive_placement(parent, parent_comment)

        comment = Comment(
            author_id=author,
            content=content,
            parent_id=parent,
            root_id=placement.root_id,
            depth=placement.depth,
        )
        session.add(comment)
        await session.flush()
        logger.info(
            f"[comments] created {comment.comment_id} root={placement.root_id} depth={placement.depth}"
        )
        return comment

    async def update(self, session: AsyncSession, comment_id: str, content: str) -> Comment:
        comment = await self.get_by_id(session, comment_id)
        comment.content = content
        await session.flush()
        return comment

    async def delete(self, session: AsyncSession, comment_id: str) -> None:
        """Delete a comment that has no replies.

        The reply check is part of the DELETE statement itself.

        Raises:
            NotFoundError: Unknown comment.
            NotAllowedError: The comment has replies.
        """
        reply = aliased(Comment)
        has_replies = select(reply.id).where(reply.parent_id == comment_id).exists()
        result = await session.execute(
            delete(Comment)
            .where(Comment.comment_id == comment_id)
            .where(~has_replies)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info(f"[comments] deleted {comment_id}")
            return

        await self.get_by_id(session, comment_id)
        raise NotAllowedError("Cannot delete comment with child comments", detail={"comment_id": comment_id})

    async def get_by_id(self, session: AsyncSession, comment_id: str) -> Comment:
        comment = await self._find(session, comment_id)
        if comment is None:
            raise NotFoundError(f"Comment not found with id: {comment_id}", detail={"comment_id": comment_id})
        return comment

    async def get_by_ids(self, session: AsyncSession, ids: Sequence[str]) -> dict[str, Comment]:
        if not ids:
            return {}
        result = await session.execute(select(Comment).where(Comment.comment_id.in_(list(ids))))
        return {c.comment_id: c for c in result.scalars().all()}

    async def get_by_author(self, session: AsyncSession, author: str) -> list[Comment]:
        result = await session.execute(
            select(Comment).where(Comment.author_id == author).order_by(Comment.id.desc())
        )
        return list(result.scalars().all())

    async def get_by_parent(self, session: AsyncSession, parent: str) -> list[Comment]:
        """All descendants of ``parent`` (post or comment), flattened depth-first."""
        parent_comment = await self._find(session, parent)
        root = parent_comment.root_id if parent_comment else parent
        children = index_children(await self._fetch_thread(session, root))
        return walk_subtree(children, parent)

    async def get_tree(self, session: AsyncSession, root: str) -> list[CommentNode]:
        """Nested thread of every comment under post ``root``."""
        children = index_children(await self._fetch_thread(session, root))
        return build_tree(children, root)

    async def flatten(self, session: AsyncSession, root: str) -> list[FlatComment]:
        """Pre-order, depth-annotated thread of post ``root``."""
        return flatten_tree(await self.get_tree(session, root))

    async def count_by_roots(self, session: AsyncSession, roots: Sequence[str]) -> dict[str, int]:
        """Number of comments per root (0 for roots without comments)."""
        roots = list(roots)
        counts: dict[str, int] = {root: 0 for root in roots}
        if not roots:
            return counts

        result = await session.execute(
            select(Comment.root_id, func.count(Comment.id))
            .where(Comment.root_id.in_(roots))
            .group_by(Comment.root_id)
        )
        for root_id, count in result.all():
            counts[root_id] = int(count)
        return counts

    async def is_author(self, session: AsyncSession, comment_id: str, user: str) -> bool:
        comment = await self._find(session, comment_id)
        return comment is not None and comment.author_id == user

    async def _find(self, session: AsyncSession, comment_id: str) -> Comment | None:
        result = await session.execute(select(Comment).where(Comment.comment_id == comment_id))
        return result.scalar_one_or_none()

    async def _fetch_thread(self, session: AsyncSession, root: str) -> list[Comment]:
        result = await session.execute(select(Comment).where(Comment.root_id == root).order_by(Comment.id))
        return list(result.scalars().all())


comment_tree = CommentTree()
