"""Explicit two-way connections between platform users."""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from relish.domain.contacts.service import (
    NEW_CONNECTION_NAME,
    ContactService,
    fields_from_public_profile,
)
from relish.domain.records.schemas import CONTACT_SCHEMA
from relish.domain.records.types import ContactFields, ContactUpdate
from relish.domain.users.profiles import ProfileService
from relish.infrastructure.database.models.user import Profile
from relish.observability.metrics import MUTUAL_CONNECTION_SIDES
from relish.shared.exceptions import DuplicateIndexError, ValidationError
from relish.shared.logging import get_logger

logger = get_logger(__name__)


class SideOutcome(str, Enum):
    CREATED = "created"
    ALREADY_CONNECTED = "already_connected"
    FAILED = "failed"


@dataclass(frozen=True)
class MutualConnectionResult:
    a_side: SideOutcome
    b_side: SideOutcome

    @property
    def complete(self) -> bool:
        """Both tenants now hold a contact for the other user."""
        return SideOutcome.FAILED not in (self.a_side, self.b_side)


class ConnectionService:
    """Creates one contact on each side of a connection.

    The sides are independent: one may fail while the other succeeds, and
    re-running the whole operation is always safe.
    """

    def __init__(self, contacts: ContactService, profiles: ProfileService) -> None:
        self.contacts = contacts
        self.profiles = profiles

    async def create_mutual_connection(self, user_a: UUID, user_b: UUID) -> MutualConnectionResult:
        if user_a == user_b:
            raise ValidationError("Cannot connect a user to themselves")

        profile_a = await self.profiles.get_best_profile(user_a)
        profile_b = await self.profiles.get_best_profile(user_b)

        a_side = await self._connect_side(user_a, user_b, profile_b)
        b_side = await self._connect_side(user_b, user_a, profile_a)

        logger.info(
            "mutual_connection_processed",
            user_a=str(user_a),
            user_b=str(user_b),
            a_side=a_side.value,
            b_side=b_side.value,
        )
        return MutualConnectionResult(a_side=a_side, b_side=b_side)

    async def _connect_side(
        self,
        tenant_id: UUID,
        other_id: UUID,
        profile: Profile | None,
    ) -> SideOutcome:
        try:
            outcome = await self._ensure_contact(tenant_id, other_id, profile)
        except Exception as exc:
            logger.warning(
                "mutual_connection_side_failed",
                tenant_id=str(tenant_id),
                other_id=str(other_id),
                error_type=type(exc).__name__,
            )
            outcome = SideOutcome.FAILED
        MUTUAL_CONNECTION_SIDES.labels(outcome=outcome.value).inc()
        return outcome

    async def _ensure_contact(
        self,
        tenant_id: UUID,
        other_id: UUID,
        profile: Profile | None,
    ) -> SideOutcome:
        if await self.contacts.find_by_linked_user(tenant_id, other_id) is not None:
            return SideOutcome.ALREADY_CONNECTED

        if profile is not None:
            fields = fields_from_public_profile(profile, linked_user_id=other_id)
        else:
            fields = ContactFields(full_name=NEW_CONNECTION_NAME, linked_user_id=other_id)

        try:
            await self.contacts.store.create_record(
                tenant_id, CONTACT_SCHEMA, fields.as_values()
            )
        except DuplicateIndexError:
            # The tenant already knows this email; link that contact instead
            existing = await self.contacts.find_by_email(tenant_id, fields.email)
            if existing is None:
                raise
            if existing.linked_user_id is None:
                await self.contacts.update_contact(
                    tenant_id, existing.id, ContactUpdate(linked_user_id=other_id)
                )
            elif existing.linked_user_id != other_id:
                # The email belongs to a contact of another user, nothing represents other_id
                logger.warning(
                    "mutual_connection_email_linked_elsewhere",
                    tenant_id=str(tenant_id),
                    other_id=str(other_id),
                    contact_id=str(existing.id),
                )
                raise
            return SideOutcome.ALREADY_CONNECTED
        return SideOutcome.CREATED
