"""User model.

Public profile of a forum member. Authentication lives upstream; the row only
carries what other users see plus personal display preferences.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from newsforum.services.timeutil import utcnow
from newsforum.stores.postgres import Base


def generate_user_id() -> str:
    """Generate unique public user ID."""
    return str(uuid4())


class User(Base):
    """Forum member."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Public user ID (principal id handed over by the auth gateway)
    user_id: Mapped[str] = mapped_column(
        String(36),
        unique=True,
        index=True,
        default=generate_user_id,
    )

    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(320))
    bio: Mapped[str | None] = mapped_column(Text)

    # Personal appearance (changing it is karma-gated)
    top_bar_color: Mapped[str] = mapped_column(String(20))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<User {self.username}>"
