"""Contacts: the encrypted people in one tenant's relationship graph."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from relish.domain.records.schemas import CONTACT_SCHEMA, INTERACTION_SCHEMA
from relish.domain.records.store import TenantRecordStore
from relish.domain.records.types import (
    ContactFields,
    ContactUpdate,
    CreateResult,
    RevealedContact,
)
from relish.domain.users.profiles import FALLBACK_DISPLAY_NAME, ProfileService
from relish.infrastructure.database.connection import session_scope
from relish.infrastructure.database.models.contact import Contact, Interaction
from relish.infrastructure.database.models.user import Profile
from relish.infrastructure.database.repositories.contact import (
    ContactRepository,
    InteractionRepository,
)
from relish.shared.labels import CONTACT_FULL_NAME
from relish.shared.logging import get_logger
from relish.shared.normalize import clean_optional

logger = get_logger(__name__)

# Name given to auto-created contacts when the other user has none public
NEW_CONNECTION_NAME = "New connection"
PLACEHOLDER_NAMES = frozenset({NEW_CONNECTION_NAME.lower(), FALLBACK_DISPLAY_NAME.lower()})


def is_placeholder_name(name: str | None) -> bool:
    value = (name or "").strip().lower()
    return not value or value in PLACEHOLDER_NAMES


def fields_from_public_profile(profile: Profile, *, linked_user_id: UUID) -> ContactFields:
    """Contact fields built only from what a user published on their profile."""
    return ContactFields(
        full_name=clean_optional(profile.display_name) or NEW_CONNECTION_NAME,
        email=clean_optional(profile.email_public),
        phone=clean_optional(profile.phone_public),
        company=clean_optional(profile.company),
        position=clean_optional(profile.title),
        linked_user_id=linked_user_id,
    )


@dataclass(frozen=True)
class ContactView:
    """List entry for a contact."""

    id: UUID
    display_name: str
    linked_user_id: UUID | None


@dataclass(frozen=True)
class RevealedInteraction:
    id: UUID
    contact_id: UUID
    summary: str | None
    occurred_at: datetime


class ContactService:
    """Tenant-scoped contact operations on top of the record store.

    Callers pass the authenticated tenant id; nothing here authenticates.
    """

    def __init__(self, store: TenantRecordStore, profiles: ProfileService) -> None:
        self.store = store
        self.profiles = profiles

    async def create_contact(self, tenant_id: UUID, fields: ContactFields) -> CreateResult[Contact]:
        """Create a contact, converging on the tenant's contact with the same email."""
        result = await self.store.create_or_get(tenant_id, CONTACT_SCHEMA, fields.as_values())
        if not result.created:
            logger.info(
                "contact_create_converged",
                tenant_id=str(tenant_id),
                contact_id=str(result.record.id),
            )
        return result

    async def update_contact(
        self,
        tenant_id: UUID,
        contact_id: UUID,
        changes: ContactUpdate,
    ) -> Contact:
        return await self.store.update_record(
            tenant_id, CONTACT_SCHEMA, contact_id, changes.as_values()
        )

    async def get_contact(self, tenant_id: UUID, contact_id: UUID) -> Contact:
        return await self.store.get_record(tenant_id, CONTACT_SCHEMA, contact_id)

    async def find_by_email(self, tenant_id: UUID, email: str | None) -> Contact | None:
        return await self.store.find_by_index(tenant_id, CONTACT_SCHEMA, "email", email)

    async def find_by_phone(self, tenant_id: UUID, phone: str | None) -> Contact | None:
        return await self.store.find_by_index(tenant_id, CONTACT_SCHEMA, "phone", phone)

    async def find_by_linked_user(self, tenant_id: UUID, linked_user_id: UUID) -> Contact | None:
        async with session_scope(self.store.session_factory) as session:
            return await ContactRepository(session, tenant_id).find_by_linked_user(linked_user_id)

    async def delete_contact(self, tenant_id: UUID, contact_id: UUID) -> None:
        """Delete a contact with its interactions and tag links."""
        await self.store.delete_record(tenant_id, CONTACT_SCHEMA, contact_id)

    def reveal(self, contact: Contact) -> RevealedContact:
        """Decrypt every field. Raises DecryptionError, never masks."""
        values = self.store.reveal(CONTACT_SCHEMA, contact)
        return RevealedContact(
            id=contact.id,
            user_id=contact.user_id,
            linked_user_id=contact.linked_user_id,
            full_name=values["full_name"] or "",
            email=values["email"],
            phone=values["phone"],
            company=values["company"],
            position=values["position"],
            linkedin=values["linkedin"],
            created_at=contact.created_at,
            updated_at=contact.updated_at,
        )

    async def add_interaction(
        self,
        tenant_id: UUID,
        contact_id: UUID,
        summary: str | None,
        *,
        occurred_at: datetime | None = None,
    ) -> Interaction:
        """Log a touchpoint on one of the tenant's contacts."""
        # Ownership check, the FK alone would accept another tenant's contact
        await self.get_contact(tenant_id, contact_id)
        values: dict[str, object] = {"contact_id": contact_id, "summary": summary}
        if occurred_at is not None:
            values["occurred_at"] = occurred_at
        return await self.store.create_record(tenant_id, INTERACTION_SCHEMA, values)

    async def list_interactions(
        self,
        tenant_id: UUID,
        contact_id: UUID,
        *,
        limit: int = 50,
    ) -> list[RevealedInteraction]:
        async with session_scope(self.store.session_factory) as session:
            rows = await InteractionRepository(session, tenant_id).get_by_contact_id(
                contact_id, limit=limit
            )
        return [
            RevealedInteraction(
                id=row.id,
                contact_id=row.contact_id,
                summary=self.store.reveal(INTERACTION_SCHEMA, row)["summary"],
                occurred_at=row.occurred_at,
            )
            for row in rows
        ]

    async def list_for_view(
        self,
        tenant_id: UUID,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> list[ContactView]:
        """Contacts with a display name, most recently updated first.

        Linked contacts still carrying a placeholder name show the linked
        user's current profile name instead.
        """
        rows: Sequence[Contact] = await self.store.list_records(
            tenant_id, CONTACT_SCHEMA, limit=limit, offset=offset
        )
        views = []
        for row in rows:
            stored = self.store.cipher.decrypt(row.full_name_enc, CONTACT_FULL_NAME)
            display = stored.strip() or FALLBACK_DISPLAY_NAME
            if row.linked_user_id is not None and is_placeholder_name(display):
                display = await self.profiles.get_best_display_name(row.linked_user_id)
            views.append(
                ContactView(id=row.id, display_name=display, linked_user_id=row.linked_user_id)
            )
        return views
