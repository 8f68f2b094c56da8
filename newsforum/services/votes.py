"""Vote ledger: at most one vote per (voter, item) and derived point totals.

Two ledgers share the ``votes`` table under separate namespaces:
- post_votes: votes on posts (only "up" is reachable from the API)
- comment_votes: votes on comments (up and down)

The ledger has no karma side effects; adjusting the item author's karma is the
caller's job (see services.actions).

Uniqueness is enforced by the database: the insert is a single
``INSERT ... ON CONFLICT DO NOTHING RETURNING id`` so a double submit can never
produce two rows.
"""

import logging
from collections.abc import Sequence

from sqlalchemy import case, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from newsforum.errors import AlreadyVotedError
from newsforum.models import Vote, VoteType
from newsforum.stores.postgres import upsert_insert

logger = logging.getLogger("uvicorn.error")

NAMESPACE_POST_VOTES = "post_votes"
NAMESPACE_COMMENT_VOTES = "comment_votes"


class VoteLedger:
    """Namespaced vote ledger."""

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace

    def __repr__(self) -> str:
        return f"<VoteLedger {self.namespace}>"

    async def upvote(self, session: AsyncSession, author: str, item: str) -> Vote:
        return await self._cast(session, author, item, VoteType.UP)

    async def downvote(self, session: AsyncSession, author: str, item: str) -> Vote:
        return await self._cast(session, author, item, VoteType.DOWN)

    async def _cast(self, session: AsyncSession, author: str, item: str, vote_type: VoteType) -> Vote:
        stmt = (
            upsert_insert(session, Vote)
            .values(namespace=self.namespace, author_id=author, item_id=item, type=vote_type)
            .on_conflict_do_nothing(index_elements=["namespace", "author_id", "item_id"])
            .returning(Vote)
        )
        vote = (await session.scalars(stmt)).one_or_none()
        if vote is None:
            raise AlreadyVotedError(
                "User already voted on this item. Unvote to change the vote.",
                detail={"item_id": item},
            )

        logger.info(f"[votes] {self.namespace} {vote_type.value} author={author} item={item}")
        return vote

    async def unvote(self, session: AsyncSession, author: str, item: str) -> Vote | None:
        """Remove the vote of ``author`` on ``item``.

        Absent votes are not an error.

        Returns:
            The removed vote, or None if there was nothing to remove.
        """
        stmt = (
            delete(Vote)
            .where(Vote.namespace == self.namespace)
            .where(Vote.author_id == author)
            .where(Vote.item_id == item)
            .returning(Vote)
        )
        removed = (await session.execute(stmt)).scalar_one_or_none()
        if removed is not None:
            logger.info(f"[votes] {self.namespace} unvote author={author} item={item}")
        return removed

    async def get_vote(self, session: AsyncSession, author: str, item: str) -> Vote | None:
        result = await session.execute(
            select(Vote)
            .where(Vote.namespace == self.namespace)
            .where(Vote.author_id == author)
            .where(Vote.item_id == item)
        )
        return result.scalar_one_or_none()

    async def get_votes(
        self,
        session: AsyncSession,
        author: str,
        items: Sequence[str] | None = None,
    ) -> dict[str, Vote]:
        """Map item -> vote for everything ``author`` voted on.

        Args:
            author: Voter.
            items: Optional restriction to these items (batch "did I vote" lookups).
        """
        query = select(Vote).where(Vote.namespace == self.namespace).where(Vote.author_id == author)
        if items:
            query = query.where(Vote.item_id.in_(list(items)))
        result = await session.execute(query)
        return {vote.item_id: vote for vote in result.scalars().all()}

    async def get_upvoted(self, session: AsyncSession, author: str) -> list[Vote]:
        result = await session.execute(
            select(Vote)
            .where(Vote.namespace == self.namespace)
            .where(Vote.author_id == author)
            .where(Vote.type == VoteType.UP)
            .order_by(Vote.id.desc())
        )
        return list(result.scalars().all())

    async def points_for(self, session: AsyncSession, item: str) -> int:
        """Upvotes minus downvotes for a single item."""
        points = await self.points_for_many(session, [item])
        return points[item]

    async def points_for_many(self, session: AsyncSession, items: Sequence[str]) -> dict[str, int]:
        """Upvotes minus downvotes for each item (0 for items without votes)."""
        items = list(items)
        points: dict[str, int] = {item: 0 for item in items}
        if not items:
            return points

        score = func.sum(case((Vote.type == VoteType.UP, 1), else_=-1))
        result = await session.execute(
            select(Vote.item_id, score)
            .where(Vote.namespace == self.namespace)
            .where(Vote.item_id.in_(items))
            .group_by(Vote.item_id)
        )
        for item_id, total in result.all():
            points[item_id] = int(total or 0)
        return points


post_votes = VoteLedger(NAMESPACE_POST_VOTES)
comment_votes = VoteLedger(NAMESPACE_COMMENT_VOTES)
