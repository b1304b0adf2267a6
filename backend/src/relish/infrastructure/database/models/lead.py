"""Lead model - a pre-authentication identity fragment awaiting claim."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from relish.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)


class LeadStatus(str, Enum):
    """Lead lifecycle. CLAIMED is terminal."""

    PENDING = "PENDING"
    CLAIMED = "CLAIMED"


class Lead(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Contact info left by a visitor on an owner's public page.

    Matched across tenants by blind index once the visitor authenticates.
    """

    __tablename__ = "leads"
    __table_args__ = (
        Index("ix_leads_status_email_idx", "status", "email_idx"),
        Index("ix_leads_status_phone_idx", "status", "phone_idx"),
        Index("ix_leads_status_linkedin_idx", "status", "linkedin_idx"),
        Index("ix_leads_owner_id_linkedin_idx", "owner_id", "linkedin_idx"),
        CheckConstraint("status IN ('PENDING', 'CLAIMED')", name="ck_leads_status"),
    )

    owner_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    contact_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("contacts.id", ondelete="SET NULL"),
        nullable=True,
    )

    email_idx: Mapped[bytes | None] = mapped_column(LargeBinary(32), nullable=True)
    phone_idx: Mapped[bytes | None] = mapped_column(LargeBinary(32), nullable=True)
    linkedin_idx: Mapped[bytes | None] = mapped_column(LargeBinary(32), nullable=True)
    linkedin_enc: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[LeadStatus] = mapped_column(
        String(20),
        default=LeadStatus.PENDING,
        nullable=False,
    )
    claimed_by_user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_pending(self) -> bool:
        return self.status == LeadStatus.PENDING

    def __repr__(self) -> str:
        return f"<Lead {self.id} owner={self.owner_id} status={self.status}>"
