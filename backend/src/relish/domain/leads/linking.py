"""Claiming pending leads for a newly authenticated identity.

Leads are captured on an owner's public page before the visitor has an
account. Once the visitor signs in, every PENDING lead matching one of their
identifiers (by blind index, across tenants) is claimed, and the contact the
owner holds for them is linked to the new user. Claiming and linking commit
together or not at all. Reciprocal contacts are created afterwards, outside
that transaction, on a best-effort basis.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from relish.domain.leads.reciprocal import ReciprocalScheduler
from relish.domain.records.schemas import LEAD_SCHEMA
from relish.domain.records.store import TenantRecordStore
from relish.domain.records.types import IdentityClaims
from relish.domain.users.service import UserService
from relish.infrastructure.database.connection import session_scope
from relish.infrastructure.database.repositories.lead import LeadClaimRepository
from relish.observability.metrics import LEADS_CLAIMED
from relish.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class LinkResult:
    claimed_lead_ids: list[UUID] = field(default_factory=list)
    linked_contact_ids: list[UUID] = field(default_factory=list)
    owner_ids: list[UUID] = field(default_factory=list)

    @property
    def claimed(self) -> int:
        return len(self.claimed_lead_ids)


class IdentityLinker:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        store: TenantRecordStore,
        users: UserService,
        scheduler: ReciprocalScheduler,
    ) -> None:
        self.session_factory = session_factory
        self.store = store
        self.users = users
        self.scheduler = scheduler

    async def link_leads_for_identity(self, user_id: UUID, claims: IdentityClaims) -> LinkResult:
        """Claim every pending lead matching ``claims`` for ``user_id``.

        Having nothing to match is not an error; the result is just empty.
        """
        email_idx = self.store.token(LEAD_SCHEMA, "email", claims.email)
        phone_idx = self.store.token(LEAD_SCHEMA, "phone", claims.phone)
        linkedin_idx = self.store.token(LEAD_SCHEMA, "linkedin", claims.linkedin_url)
        if email_idx is None and phone_idx is None and linkedin_idx is None:
            return LinkResult()

        async with session_scope(self.session_factory) as session:
            repo = LeadClaimRepository(session)
            leads = await repo.find_pending_for_update(
                email_idx=email_idx,
                phone_idx=phone_idx,
                linkedin_idx=linkedin_idx,
            )
            if not leads:
                return LinkResult()

            await repo.mark_claimed(leads, user_id)
            contact_ids = list(dict.fromkeys(lead.contact_id for lead in leads if lead.contact_id))
            await self._link_contacts(session, contact_ids, user_id)

            result = LinkResult(
                claimed_lead_ids=[lead.id for lead in leads],
                linked_contact_ids=contact_ids,
                owner_ids=list(dict.fromkeys(lead.owner_id for lead in leads)),
            )

        LEADS_CLAIMED.inc(result.claimed)
        logger.info(
            "leads_claimed",
            user_id=str(user_id),
            leads=result.claimed,
            contacts=len(result.linked_contact_ids),
            owners=len(result.owner_ids),
        )

        await self._schedule_reciprocal(user_id, [o for o in result.owner_ids if o != user_id])
        return result

    async def _link_contacts(
        self,
        session: AsyncSession,
        contact_ids: Sequence[UUID],
        user_id: UUID,
    ) -> None:
        await LeadClaimRepository(session).link_contacts(contact_ids, user_id)

    async def _schedule_reciprocal(self, user_id: UUID, owner_ids: Sequence[UUID]) -> None:
        if not owner_ids:
            return
        try:
            await self.scheduler.schedule(user_id, owner_ids)
        except Exception as exc:
            # The claim is committed; a follow-up that cannot be scheduled is dropped
            logger.warning(
                "reciprocal_schedule_failed",
                user_id=str(user_id),
                error_type=type(exc).__name__,
            )

    async def link_leads_after_login(
        self,
        user_id: UUID,
        *,
        phone: str | None = None,
        linkedin_url: str | None = None,
    ) -> LinkResult:
        """Post-login hook: link by the user's verified email.

        Never raises; a sign-in must not fail because of lead linking.
        """
        try:
            user = await self.users.get_user(user_id)
            email = self.users.reveal_email(user)
            return await self.link_leads_for_identity(
                user_id,
                IdentityClaims(email=email, phone=phone, linkedin_url=linkedin_url),
            )
        except Exception as exc:
            logger.error(
                "lead_linking_failed",
                user_id=str(user_id),
                error_type=type(exc).__name__,
            )
            return LinkResult()
