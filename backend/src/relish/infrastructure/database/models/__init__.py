"""SQLAlchemy ORM models."""

from relish.infrastructure.database.models.base import Base, TenantMixin, TimestampMixin
from relish.infrastructure.database.models.contact import Contact, Interaction
from relish.infrastructure.database.models.lead import Lead, LeadStatus
from relish.infrastructure.database.models.tag import ContactTag, Tag, TagAlias
from relish.infrastructure.database.models.user import Profile, User, UserRole

__all__ = [
    "Base",
    "TimestampMixin",
    "TenantMixin",
    "User",
    "UserRole",
    "Profile",
    "Contact",
    "Interaction",
    "Lead",
    "LeadStatus",
    "Tag",
    "TagAlias",
    "ContactTag",
]
