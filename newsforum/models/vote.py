"""Vote model.

One row per (namespace, author, item). Namespaces keep post votes and comment
votes apart while sharing the table and the ledger logic.
"""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from newsforum.services.timeutil import utcnow
from newsforum.stores.postgres import Base


class VoteType(enum.Enum):
    """Direction of a vote."""

    UP = "up"
    DOWN = "down"


class Vote(Base):
    """Single vote cast by an author on an item (post or comment)."""

    __tablename__ = "votes"
    __table_args__ = (
        # At most one vote per (author, item) inside a namespace.
        UniqueConstraint("namespace", "author_id", "item_id", name="uq_votes_namespace_author_item"),
        Index("ix_votes_namespace_item", "namespace", "item_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    namespace: Mapped[str] = mapped_column(String(32))  # post_votes, comment_votes
    author_id: Mapped[str] = mapped_column(String(36))
    item_id: Mapped[str] = mapped_column(String(36))
    type: Mapped[VoteType] = mapped_column(Enum(VoteType, native_enum=False, length=8))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Vote {self.namespace} {self.author_id}->{self.item_id} {self.type.value}>"
