"""Lead repositories."""

from collections.abc import Sequence
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from relish.infrastructure.database.models.contact import Contact
from relish.infrastructure.database.models.lead import Lead, LeadStatus
from relish.infrastructure.database.repositories.base import TenantRepository


class LeadRepository(TenantRepository[Lead]):
    """Leads owned by one tenant (the user whose page captured them)."""

    model_class = Lead
    owner_column = "owner_id"


class LeadClaimRepository:
    """Cross-tenant access to pending leads.

    This is the one intentionally unscoped query path: a claimant does not own
    the leads it matches. Access is restricted to PENDING leads matched by
    blind index, and writes only perform the PENDING -> CLAIMED transition.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_pending_for_update(
        self,
        *,
        email_idx: bytes | None = None,
        phone_idx: bytes | None = None,
        linkedin_idx: bytes | None = None,
    ) -> Sequence[Lead]:
        """Lock and return pending leads matching any of the given tokens."""
        conditions = []
        if email_idx is not None:
            conditions.append(Lead.email_idx == email_idx)
        if phone_idx is not None:
            conditions.append(Lead.phone_idx == phone_idx)
        if linkedin_idx is not None:
            conditions.append(Lead.linkedin_idx == linkedin_idx)
        if not conditions:
            return []

        query = (
            select(Lead)
            .where(Lead.status == LeadStatus.PENDING)
            .where(or_(*conditions))
            .order_by(Lead.created_at.asc())
            .with_for_update()
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def mark_claimed(self, leads: Sequence[Lead], user_id: UUID) -> None:
        """Transition the given leads to CLAIMED by ``user_id``."""
        now = datetime.now(UTC)
        for lead in leads:
            lead.status = LeadStatus.CLAIMED
            lead.claimed_by_user_id = user_id
            lead.claimed_at = now
        await self.session.flush()

    async def link_contacts(self, contact_ids: Sequence[UUID], user_id: UUID) -> int:
        """Point each lead's contact at the claiming platform user."""
        if not contact_ids:
            return 0
        result = await self.session.execute(
            update(Contact)
            .where(Contact.id.in_(list(contact_ids)))
            .values(linked_user_id=user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
