"""Generic per-(user, item) marks, instantiated once per namespace.

Namespaces:
- favorites: posts a user saved
- hides: posts a user removed from their feed
- flags: moderation signal; each flag lowers the post's feed score

Marking is idempotent (re-marking reports "already marked" without error);
unmarking an absent mark raises NotFoundError.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from newsforum.errors import NotFoundError
from newsforum.models import Mark
from newsforum.stores.postgres import upsert_insert

logger = logging.getLogger("uvicorn.error")

NAMESPACE_FAVORITES = "favorites"
NAMESPACE_HIDES = "hides"
NAMESPACE_FLAGS = "flags"


@dataclass(frozen=True)
class MarkResult:
    already_marked: bool

    @property
    def message(self) -> str:
        return "Item is already marked." if self.already_marked else "Item marked successfully!"


class MarkStore:
    """Boolean tag store scoped to one namespace."""

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace

    def __repr__(self) -> str:
        return f"<MarkStore {self.namespace}>"

    async def mark(self, session: AsyncSession, user: str, item: str) -> MarkResult:
        stmt = (
            upsert_insert(session, Mark)
            .values(namespace=self.namespace, user_id=user, item_id=item)
            .on_conflict_do_nothing(index_elements=["namespace", "user_id", "item_id"])
            .returning(Mark.id)
        )
        inserted = (await session.execute(stmt)).scalar_one_or_none()
        if inserted is not None:
            logger.info(f"[marks] {self.namespace} mark user={user} item={item}")
        return MarkResult(already_marked=inserted is None)

    async def unmark(self, session: AsyncSession, user: str, item: str) -> None:
        result = await session.execute(
            delete(Mark)
            .where(Mark.namespace == self.namespace)
            .where(Mark.user_id == user)
            .where(Mark.item_id == item)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Mark not found!", detail={"namespace": self.namespace, "item_id": item})
        logger.info(f"[marks] {self.namespace} unmark user={user} item={item}")

    async def is_marked(self, session: AsyncSession, user: str, item: str) -> bool:
        result = await session.execute(
            select(Mark.id)
            .where(Mark.namespace == self.namespace)
            .where(Mark.user_id == user)
            .where(Mark.item_id == item)
        )
        return result.scalar_one_or_none() is not None

    async def get_by_user(self, session: AsyncSession, user: str) -> list[Mark]:
        """Marks of ``user``, most recent first."""
        result = await session.execute(
            select(Mark)
            .where(Mark.namespace == self.namespace)
            .where(Mark.user_id == user)
            .order_by(Mark.id.desc())
        )
        return list(result.scalars().all())

    async def get_by_item(self, session: AsyncSession, item: str) -> list[Mark]:
        result = await session.execute(
            select(Mark).where(Mark.namespace == self.namespace).where(Mark.item_id == item).order_by(Mark.id)
        )
        return list(result.scalars().all())

    async def get_by_items(self, session: AsyncSession, items: Sequence[str]) -> list[Mark]:
        if not items:
            return []
        result = await session.execute(
            select(Mark)
            .where(Mark.namespace == self.namespace)
            .where(Mark.item_id.in_(list(items)))
            .order_by(Mark.id)
        )
        return list(result.scalars().all())

    async def count_by_items(self, session: AsyncSession, items: Sequence[str]) -> dict[str, int]:
        """Number of marks per item (0 for unmarked items)."""
        items = list(items)
        counts: dict[str, int] = {item: 0 for item in items}
        if not items:
            return counts

        result = await session.execute(
            select(Mark.item_id, func.count(Mark.id))
            .where(Mark.namespace == self.namespace)
            .where(Mark.item_id.in_(items))
            .group_by(Mark.item_id)
        )
        for item_id, count in result.all():
            counts[item_id] = int(count)
        return counts


favorites = MarkStore(NAMESPACE_FAVORITES)
hides = MarkStore(NAMESPACE_HIDES)
flags = MarkStore(NAMESPACE_FLAGS)
