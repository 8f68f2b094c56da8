"""Mark model.

Boolean per-(user, item) tag. ``namespace`` separates favorites, hides and
flags, which share identical semantics.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from newsforum.services.timeutil import utcnow
from newsforum.stores.postgres import Base


class Mark(Base):
    __tablename__ = "marks"
    __table_args__ = (
        UniqueConstraint("namespace", "user_id", "item_id", name="uq_marks_namespace_user_item"),
        Index("ix_marks_namespace_item", "namespace", "item_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # Kind examples:
    # - "favorites"
    # - "hides"
    # - "flags"
    namespace: Mapped[str] = mapped_column(String(32))
    user_id: Mapped[str] = mapped_column(String(36))
    item_id: Mapped[str] = mapped_column(String(36))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )
