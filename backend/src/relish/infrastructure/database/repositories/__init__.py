"""Repository pattern implementations for database access."""

from relish.infrastructure.database.repositories.base import TenantRepository
from relish.infrastructure.database.repositories.contact import (
    ContactRepository,
    InteractionRepository,
)
from relish.infrastructure.database.repositories.lead import LeadClaimRepository, LeadRepository
from relish.infrastructure.database.repositories.tag import TagRepository
from relish.infrastructure.database.repositories.user import ProfileRepository, UserRepository

__all__ = [
    "TenantRepository",
    "ContactRepository",
    "InteractionRepository",
    "LeadRepository",
    "LeadClaimRepository",
    "TagRepository",
    "UserRepository",
    "ProfileRepository",
]
