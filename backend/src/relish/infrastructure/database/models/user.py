"""User and public profile models."""

from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, LargeBinary, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from relish.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)


class UserRole(str, Enum):
    """Platform roles."""

    MEMBER = "member"
    GUEST = "guest"  # Created from a public capture form, not yet signed in


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Platform user - the tenant boundary for contacts, leads and tags.

    Email is stored only as ciphertext plus a blind index. The index is
    globally unique: one account per normalized email.
    """

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email_idx", name="uq_users_email_idx"),
        UniqueConstraint("public_slug", name="uq_users_public_slug"),
    )

    email_enc: Mapped[str | None] = mapped_column(Text, nullable=True)
    email_idx: Mapped[bytes | None] = mapped_column(LargeBinary(32), nullable=True)
    public_slug: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        String(20),
        default=UserRole.MEMBER,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User {self.id}>"


class Profile(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Self-declared public profile.

    Everything here is published by the owner on their public page, so it is
    stored as plain text. Reciprocal and mutual contacts are built only from
    these fields.
    """

    __tablename__ = "profiles"
    __table_args__ = (
        UniqueConstraint("slug", name="uq_profiles_slug"),
        Index("ix_profiles_user_default", "user_id", "is_default"),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    slug: Mapped[str | None] = mapped_column(String(100), nullable=True)
    label: Mapped[str | None] = mapped_column(String(100), nullable=True)

    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    headline: Mapped[str | None] = mapped_column(String(255), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email_public: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone_public: Mapped[str | None] = mapped_column(String(50), nullable=True)
    website_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<Profile {self.id} user={self.user_id}>"
