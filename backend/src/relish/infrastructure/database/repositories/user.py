"""User and profile repositories.

Users are the tenant boundary themselves, so these repositories are not
tenant-filtered; profile lookups are keyed by the owning user id.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from relish.infrastructure.database.models.user import Profile, User


class UserRepository:
    """Repository for User entities."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email_idx(self, email_idx: bytes) -> User | None:
        """Equality lookup by the globally unique email blind index."""
        result = await self.session.execute(select(User).where(User.email_idx == email_idx))
        return result.scalar_one_or_none()

    async def create(self, user: User) -> User:
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return user


class ProfileRepository:
    """Repository for Profile entities of one user."""

    def __init__(self, session: AsyncSession, user_id: UUID) -> None:
        self.session = session
        self.user_id = user_id

    async def get_default(self) -> Profile | None:
        result = await self.session.execute(
            select(Profile)
            .where(Profile.user_id == self.user_id, Profile.is_default.is_(True))
            .limit(1)
        )
        return result.scalars().first()

    async def get_best(self) -> Profile | None:
        """Default profile first, otherwise the most recently updated one."""
        result = await self.session.execute(
            select(Profile)
            .where(Profile.user_id == self.user_id)
            .order_by(Profile.is_default.desc(), Profile.updated_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def create(self, profile: Profile) -> Profile:
        profile.user_id = self.user_id
        self.session.add(profile)
        await self.session.flush()
        await self.session.refresh(profile)
        return profile
