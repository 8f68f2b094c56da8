"""Karma store: non-negative reputation counter per user.

Rules:
- A user without a row has 0 points; rows are created lazily by increase().
- decrease() never takes a counter below zero. It is a single conditional
  UPDATE (``WHERE points >= n``), so concurrent decrements cannot race past
  the floor.
- require_at_least() guards privileged actions (flagging, comment downvotes,
  top-bar color).
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from newsforum.errors import BadValuesError, NotAllowedError
from newsforum.models import Karma
from newsforum.services.timeutil import utcnow
from newsforum.stores.postgres import upsert_insert

logger = logging.getLogger("uvicorn.error")


class KarmaStore:
    """Per-user reputation counters."""

    async def increase(self, session: AsyncSession, user: str, n: int) -> None:
        if n < 0:
            raise BadValuesError("Karma increase must be non-negative.")

        insert_stmt = upsert_insert(session, Karma).values(user_id=user, points=n, updated_at=utcnow())
        stmt = insert_stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={"points": Karma.points + n, "updated_at": utcnow()},
        )
        await session.execute(stmt)
        logger.info(f"[karma] +{n} user={user}")

    async def decrease(self, session: AsyncSession, user: str, n: int) -> None:
        """Decrease karma by ``n``.

        Raises:
            NotAllowedError: If the user has no karma record or fewer than ``n`` points.
        """
        if n < 0:
            raise BadValuesError("Karma decrease must be non-negative.")

        result = await session.execute(
            update(Karma)
            .where(Karma.user_id == user)
            .where(Karma.points >= n)
            .values(points=Karma.points - n, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotAllowedError("User cannot have negative karma.", detail={"user_id": user})
        logger.info(f"[karma] -{n} user={user}")

    async def get(self, session: AsyncSession, user: str) -> int:
        result = await session.execute(select(Karma.points).where(Karma.user_id == user))
        points = result.scalar_one_or_none()
        return points if points is not None else 0

    async def require_at_least(self, session: AsyncSession, user: str, threshold: int) -> None:
        """Raise NotAllowedError unless ``user`` has at least ``threshold`` points."""
        points = await self.get(session, user)
        if points < threshold:
            logger.warning(f"[karma] gate rejected user={user} points={points} threshold={threshold}")
            raise NotAllowedError(
                "User does not meet the required karma threshold.",
                detail={"required": threshold, "karma": points},
            )


karma_store = KarmaStore()
