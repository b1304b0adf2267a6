"""Lead capture from an owner's public page."""

from dataclasses import dataclass
from uuid import UUID

from relish.domain.contacts.service import ContactService
from relish.domain.records.schemas import LEAD_SCHEMA
from relish.domain.records.store import TenantRecordStore
from relish.domain.records.types import AlreadyExists, ContactFields, Created, CreateResult
from relish.infrastructure.database.models.contact import Contact
from relish.infrastructure.database.models.lead import Lead
from relish.shared.exceptions import ValidationError
from relish.shared.logging import get_logger
from relish.shared.normalize import canonicalize_linkedin_url, clean_optional, is_blank

logger = get_logger(__name__)

NEW_CONTACT_NAME = "New contact"


@dataclass(frozen=True)
class CapturedLead:
    lead: Lead
    contact: Contact
    contact_created: bool


class LeadCaptureService:
    """Records visitors as contacts of the page owner plus a PENDING lead."""

    def __init__(self, store: TenantRecordStore, contacts: ContactService) -> None:
        self.store = store
        self.contacts = contacts

    async def capture_lead(
        self,
        owner_id: UUID,
        *,
        name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
    ) -> CapturedLead:
        """Capture a visitor's details for ``owner_id``.

        The contact converges on the owner's existing contact with the same
        email. The lead carries only blind indexes of the email and phone.

        Raises:
            ValidationError: Neither an email nor a phone was given.
        """
        if is_blank(email) and is_blank(phone):
            raise ValidationError("At least one of email or phone is required")

        result = await self.contacts.create_contact(
            owner_id,
            ContactFields(
                full_name=clean_optional(name) or NEW_CONTACT_NAME,
                email=email,
                phone=phone,
            ),
        )
        lead = await self.store.create_record(
            owner_id,
            LEAD_SCHEMA,
            {"email": email, "phone": phone, "contact_id": result.record.id},
        )

        logger.info(
            "lead_captured",
            owner_id=str(owner_id),
            lead_id=str(lead.id),
            contact_id=str(result.record.id),
            contact_created=result.created,
        )
        return CapturedLead(lead=lead, contact=result.record, contact_created=result.created)

    async def upsert_linkedin_lead(self, owner_id: UUID, raw_url: str) -> CreateResult[Lead]:
        """One lead per (owner, canonical LinkedIn URL).

        Raises:
            ValidationError: The URL is not a LinkedIn profile URL.
        """
        if canonicalize_linkedin_url(raw_url) is None:
            raise ValidationError("Invalid LinkedIn URL", details={"field": "linkedin"})

        existing = await self.store.find_by_index(owner_id, LEAD_SCHEMA, "linkedin", raw_url)
        if existing is not None:
            if existing.linkedin_enc is None:
                existing = await self.store.update_record(
                    owner_id, LEAD_SCHEMA, existing.id, {"linkedin": raw_url}
                )
            return AlreadyExists(existing)

        lead = await self.store.create_record(owner_id, LEAD_SCHEMA, {"linkedin": raw_url})
        logger.info("linkedin_lead_created", owner_id=str(owner_id), lead_id=str(lead.id))
        return Created(lead)
