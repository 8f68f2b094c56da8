"""Karma model.

Non-negative reputation counter per user. A missing row means 0 points.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from newsforum.services.timeutil import utcnow
from newsforum.stores.postgres import Base


class Karma(Base):
    """Reputation points of a user."""

    __tablename__ = "karma"
    __table_args__ = (CheckConstraint("points >= 0", name="ck_karma_points_non_negative"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), unique=True, index=True)
    points: Mapped[int] = mapped_column(default=0)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Karma {self.user_id}={self.points}>"
