"""Post model.

A submitted link and/or text. Editable by its author only within a short
window after ``date_created``.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from newsforum.services.timeutil import utcnow
from newsforum.stores.postgres import Base


def generate_post_id() -> str:
    """Generate unique post ID."""
    return str(uuid4())


class Post(Base):
    """Submitted post."""

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Public post ID (used in URLs, votes, marks and as comment root)
    post_id: Mapped[str] = mapped_column(
        String(36),
        unique=True,
        index=True,
        default=generate_post_id,
    )

    author_id: Mapped[str] = mapped_column(String(36), index=True)

    title: Mapped[str] = mapped_column(String(300))
    url: Mapped[str | None] = mapped_column(Text)
    text: Mapped[str | None] = mapped_column(Text)

    date_created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        index=True,
        default=utcnow,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Post {self.post_id} {self.title[:30]!r}>"
