"""User directory: public profiles used to enrich feed rows and detail views.

Credentials are handled by the upstream auth gateway; registration here only
reserves a unique username and returns the principal id.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from newsforum.errors import BadValuesError, NotAllowedError, NotFoundError
from newsforum.models import User
from newsforum.settings import get_settings
from newsforum.stores.postgres import upsert_insert

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class UserProfile:
    """Public view of a user.

    ``email`` and ``top_bar_color`` are private; callers strip them unless the
    viewer is the user.
    """

    user_id: str
    username: str
    email: str | None
    bio: str | None
    top_bar_color: str

    @classmethod
    def from_model(cls, user: User) -> "UserProfile":
        return cls(
            user_id=user.user_id,
            username=user.username,
            email=user.email,
            bio=user.bio,
            top_bar_color=user.top_bar_color,
        )


class UserDirectory:
    async def create(self, session: AsyncSession, username: str) -> User:
        username = (username or "").strip()
        if not username:
            raise BadValuesError("Username must be non-empty!")

        stmt = (
            upsert_insert(session, User)
            .values(username=username, top_bar_color=get_settings().default_top_bar_color)
            .on_conflict_do_nothing(index_elements=["username"])
            .returning(User)
        )
        user = (await session.scalars(stmt)).one_or_none()
        if user is None:
            raise NotAllowedError(f'User with username "{username}" already exists!')

        logger.info(f"[users] created {user.user_id} username={username}")
        return user

    async def get_by_id(self, session: AsyncSession, user_id: str) -> UserProfile:
        result = await session.execute(select(User).where(User.user_id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found!", detail={"user_id": user_id})
        return UserProfile.from_model(user)

    async def get_by_username(self, session: AsyncSession, username: str) -> UserProfile:
        result = await session.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found!", detail={"username": username})
        return UserProfile.from_model(user)

    async def get_by_ids(self, session: AsyncSession, ids: Sequence[str]) -> dict[str, UserProfile]:
        """Map user_id -> profile; unknown ids are left out."""
        unique_ids = list(dict.fromkeys(ids))
        if not unique_ids:
            return {}
        result = await session.execute(select(User).where(User.user_id.in_(unique_ids)))
        return {user.user_id: UserProfile.from_model(user) for user in result.scalars().all()}

    async def update(
        self,
        session: AsyncSession,
        user_id: str,
        email: str | None = None,
        bio: str | None = None,
    ) -> UserProfile:
        user = await self._load(session, user_id)
        user.email = email
        user.bio = bio
        await session.flush()
        return UserProfile.from_model(user)

    async def change_top_bar(self, session: AsyncSession, user_id: str, color: str) -> UserProfile:
        user = await self._load(session, user_id)
        user.top_bar_color = color
        await session.flush()
        logger.info(f"[users] top bar color changed user={user_id}")
        return UserProfile.from_model(user)

    async def _load(self, session: AsyncSession, user_id: str) -> User:
        result = await session.execute(select(User).where(User.user_id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found!", detail={"user_id": user_id})
        return user


user_directory = UserDirectory()
