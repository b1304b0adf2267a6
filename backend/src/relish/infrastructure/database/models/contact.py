"""Contact and interaction models.

Every PII column comes as an ``<field>_enc`` / ``<field>_idx`` pair: AES-GCM
ciphertext plus a 32-byte blind index for equality lookups.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, LargeBinary, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from relish.infrastructure.database.models.base import (
    Base,
    TenantMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    utcnow,
)


class Contact(Base, UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin):
    """A person in one tenant's relationship graph."""

    __tablename__ = "contacts"
    __table_args__ = (
        # Email is unique within a tenant, not globally
        UniqueConstraint("user_id", "email_idx", name="uq_contacts_user_id_email_idx"),
        Index("ix_contacts_user_id_phone_idx", "user_id", "phone_idx"),
        Index("ix_contacts_user_id_linked_user_id", "user_id", "linked_user_id"),
    )

    # Non-owning back-reference to the platform user this contact represents
    linked_user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    full_name_enc: Mapped[str] = mapped_column(Text, nullable=False)
    full_name_idx: Mapped[bytes] = mapped_column(LargeBinary(32), nullable=False)
    email_enc: Mapped[str | None] = mapped_column(Text, nullable=True)
    email_idx: Mapped[bytes | None] = mapped_column(LargeBinary(32), nullable=True)
    phone_enc: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone_idx: Mapped[bytes | None] = mapped_column(LargeBinary(32), nullable=True)
    company_enc: Mapped[str | None] = mapped_column(Text, nullable=True)
    company_idx: Mapped[bytes | None] = mapped_column(LargeBinary(32), nullable=True)
    position_enc: Mapped[str | None] = mapped_column(Text, nullable=True)
    position_idx: Mapped[bytes | None] = mapped_column(LargeBinary(32), nullable=True)
    linkedin_enc: Mapped[str | None] = mapped_column(Text, nullable=True)
    linkedin_idx: Mapped[bytes | None] = mapped_column(LargeBinary(32), nullable=True)

    def __repr__(self) -> str:
        return f"<Contact {self.id} user={self.user_id}>"


class Interaction(Base, UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin):
    """A logged touchpoint with a contact. Child of Contact."""

    __tablename__ = "interactions"

    contact_id: Mapped[UUID] = mapped_column(
        ForeignKey("contacts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    summary_enc: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Interaction {self.id} contact={self.contact_id}>"
