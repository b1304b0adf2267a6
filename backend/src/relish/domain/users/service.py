"""User accounts keyed by an encrypted, globally unique email."""

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from relish.domain.records.store import duplicate_index_field
from relish.domain.records.types import AlreadyExists, Created, CreateResult
from relish.infrastructure.database.connection import session_scope
from relish.infrastructure.database.models.user import User, UserRole
from relish.infrastructure.database.repositories.user import UserRepository
from relish.observability.metrics import DUPLICATE_INDEX_CONFLICTS
from relish.shared.blind_index import BlindIndex
from relish.shared.crypto import EnvelopeCipher
from relish.shared.exceptions import DuplicateIndexError, NotFoundError, ValidationError
from relish.shared.labels import USER_EMAIL
from relish.shared.logging import get_logger
from relish.shared.normalize import is_blank, normalize_email

logger = get_logger(__name__)


class UserService:
    """Register and look up users.

    The email is normalized before both encryption and indexing, and its
    index is unique across the whole platform (one account per email).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cipher: EnvelopeCipher,
        blind_index: BlindIndex,
    ) -> None:
        self.session_factory = session_factory
        self.cipher = cipher
        self.blind_index = blind_index

    def email_token(self, email: str | None) -> bytes | None:
        if is_blank(email):
            return None
        assert email is not None
        return self.blind_index.token(email, USER_EMAIL)

    async def register(
        self,
        email: str,
        *,
        role: UserRole = UserRole.MEMBER,
        public_slug: str | None = None,
    ) -> User:
        """Create a user.

        Raises:
            ValidationError: The email is blank.
            DuplicateIndexError: A user with this email already exists.
        """
        if is_blank(email):
            raise ValidationError("email is required", details={"field": "email"})
        normalized = normalize_email(email)
        user = User(
            email_enc=self.cipher.encrypt(normalized, USER_EMAIL),
            email_idx=self.blind_index.token(normalized, USER_EMAIL),
            public_slug=public_slug,
            role=role,
        )

        try:
            async with session_scope(self.session_factory) as session:
                await UserRepository(session).create(user)
        except IntegrityError as exc:
            if duplicate_index_field(exc, ["email"]) is None:
                raise ValidationError("user violates a storage constraint") from exc
            DUPLICATE_INDEX_CONFLICTS.labels(entity="user", field="email").inc()
            existing = await self.find_by_email(normalized)
            raise DuplicateIndexError("user", "email", existing.id if existing else None) from exc

        logger.info("user_registered", user_id=str(user.id), role=str(role.value))
        return user

    async def get_or_create_by_email(self, email: str) -> CreateResult[User]:
        """Upsert by email, as a magic-link sign-in does.

        A concurrent registration of the same email converges on the winner.
        """
        existing = await self.find_by_email(email)
        if existing is not None:
            return AlreadyExists(existing)
        try:
            return Created(await self.register(email))
        except DuplicateIndexError as exc:
            if exc.existing_id is None:
                raise
            return AlreadyExists(await self.get_user(exc.existing_id))

    async def find_by_email(self, email: str | None) -> User | None:
        token = self.email_token(email)
        if token is None:
            return None
        async with session_scope(self.session_factory) as session:
            return await UserRepository(session).get_by_email_idx(token)

    async def find_user(self, user_id: UUID) -> User | None:
        async with session_scope(self.session_factory) as session:
            return await UserRepository(session).get_by_id(user_id)

    async def get_user(self, user_id: UUID) -> User:
        user = await self.find_user(user_id)
        if user is None:
            raise NotFoundError("user", str(user_id))
        return user

    def reveal_email(self, user: User) -> str | None:
        """Decrypt the user's email. Raises DecryptionError on a bad payload."""
        return self.cipher.decrypt_optional(user.email_enc, USER_EMAIL)
