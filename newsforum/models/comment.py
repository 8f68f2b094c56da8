"""Comment model.

``root_id`` and ``depth`` are derived once from the parent at insert time and
never change afterwards (no re-parenting).
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from newsforum.services.timeutil import utcnow
from newsforum.stores.postgres import Base


def generate_comment_id() -> str:
    """Generate unique comment ID."""
    return str(uuid4())


class Comment(Base):
    """Threaded comment under a post."""

    __tablename__ = "comments"

    # Surrogate key doubles as insertion order for sibling sorting
    id: Mapped[int] = mapped_column(primary_key=True)

    comment_id: Mapped[str] = mapped_column(
        String(36),
        unique=True,
        index=True,
        default=generate_comment_id,
    )

    author_id: Mapped[str] = mapped_column(String(36), index=True)
    content: Mapped[str] = mapped_column(Text)

    # Parent is either a comment_id or a post_id
    parent_id: Mapped[str] = mapped_column(String(36), index=True)
    root_id: Mapped[str] = mapped_column(String(36), index=True)  # post_id
    depth: Mapped[int] = mapped_column(default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Comment {self.comment_id} root={self.root_id} depth={self.depth}>"
