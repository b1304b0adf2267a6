"""Public profiles and the display names derived from them."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from relish.domain.users.service import UserService
from relish.infrastructure.database.connection import session_scope
from relish.infrastructure.database.models.user import Profile
from relish.infrastructure.database.repositories.user import ProfileRepository
from relish.shared.exceptions import DecryptionError
from relish.shared.logging import get_logger

logger = get_logger(__name__)

FALLBACK_DISPLAY_NAME = "Relish user"
DEFAULT_PROFILE_LABEL = "My profile"


class ProfileService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        users: UserService,
        *,
        default_display_name: str = "New Relish user",
    ) -> None:
        self.session_factory = session_factory
        self.users = users
        self.default_display_name = default_display_name

    async def ensure_default_profile(
        self,
        user_id: UUID,
        *,
        display_name: str | None = None,
        avatar_url: str | None = None,
    ) -> Profile:
        """Return the user's default profile, creating a minimal one if missing.

        Public email and phone stay empty until the user fills them in.
        """
        async with session_scope(self.session_factory) as session:
            repo = ProfileRepository(session, user_id)
            existing = await repo.get_default()
            if existing is not None:
                return existing
            profile = await repo.create(
                Profile(
                    is_default=True,
                    label=DEFAULT_PROFILE_LABEL,
                    display_name=(display_name or "").strip() or self.default_display_name,
                    avatar_url=avatar_url or None,
                )
            )

        logger.info("default_profile_created", user_id=str(user_id), profile_id=str(profile.id))
        return profile

    async def get_best_profile(self, user_id: UUID) -> Profile | None:
        """The default profile, otherwise the most recently updated one."""
        async with session_scope(self.session_factory) as session:
            return await ProfileRepository(session, user_id).get_best()

    async def get_best_display_name(self, user_id: UUID) -> str:
        """Profile name, then the email local part, then a generic name."""
        profile = await self.get_best_profile(user_id)
        name = (profile.display_name or "").strip() if profile else ""
        if name:
            return name

        user = await self.users.find_user(user_id)
        if user is not None:
            try:
                email = self.users.reveal_email(user) or ""
            except DecryptionError:
                # Display only, the failure is already logged and counted
                email = ""
            local = email.split("@")[0].strip()
            if local:
                return local

        return FALLBACK_DISPLAY_NAME
