"""Tenant-scoped tags attached to contacts."""

from uuid import UUID

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from relish.infrastructure.database.models.base import (
    Base,
    TenantMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)


class Tag(Base, UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin):
    """Canonical tag, unique per tenant by slug."""

    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("user_id", "slug", name="uq_tags_user_id_slug"),)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False)
    created_by: Mapped[str] = mapped_column(String(10), default="user", nullable=False)

    def __repr__(self) -> str:
        return f"<Tag {self.slug}>"


class TagAlias(Base, UUIDPrimaryKeyMixin):
    """Alternate slug resolving to a canonical tag."""

    __tablename__ = "tag_aliases"

    tag_id: Mapped[UUID] = mapped_column(
        ForeignKey("tags.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    slug: Mapped[str] = mapped_column(String(100), nullable=False, index=True)


class ContactTag(Base):
    """Contact-to-tag link. Child of Contact."""

    __tablename__ = "contact_tags"

    contact_id: Mapped[UUID] = mapped_column(
        ForeignKey("contacts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag_id: Mapped[UUID] = mapped_column(
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    )
    assigned_by: Mapped[str] = mapped_column(String(10), default="user", nullable=False)
