"""Reciprocal contacts created after a lead is claimed.

When a visitor claims a lead, the page owner who captured it appears as a
contact in the visitor's tenant. Only the owner's public profile is used.
"""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from relish.domain.contacts.service import ContactService, fields_from_public_profile
from relish.domain.records.types import AlreadyExists, CreateResult
from relish.domain.users.profiles import ProfileService
from relish.infrastructure.database.models.contact import Contact
from relish.observability.metrics import BACKGROUND_TASK_FAILURES
from relish.shared.concurrency import BackgroundTasks
from relish.shared.logging import get_logger

logger = get_logger(__name__)

RECIPROCAL_TASK_NAME = "reciprocal_contacts"


@dataclass(frozen=True)
class ReciprocalBatch:
    """Outcome of one pass over the owners of claimed leads."""

    created: int = 0
    failed_owner_ids: list[UUID] = field(default_factory=list)


class ReciprocalContactService:
    def __init__(self, contacts: ContactService, profiles: ProfileService) -> None:
        self.contacts = contacts
        self.profiles = profiles

    async def create_reciprocal_contact_if_missing(
        self,
        recipient_id: UUID,
        owner_id: UUID,
    ) -> CreateResult[Contact] | None:
        """Create the owner as a contact of the recipient, at most once.

        Returns None when the owner has nothing public to import, otherwise
        Created or AlreadyExists. Safe to re-run.
        """
        profile = await self.profiles.get_best_profile(owner_id)
        if profile is None:
            return None

        fields = fields_from_public_profile(profile, linked_user_id=owner_id)
        has_public_name = bool((profile.display_name or "").strip())
        if not has_public_name and fields.email is None and fields.phone is None:
            return None

        existing = await self.contacts.find_by_linked_user(recipient_id, owner_id)
        if existing is None and fields.email is not None:
            existing = await self.contacts.find_by_email(recipient_id, fields.email)
        if existing is None and fields.phone is not None:
            existing = await self.contacts.find_by_phone(recipient_id, fields.phone)
        if existing is not None:
            return AlreadyExists(existing)

        result = await self.contacts.create_contact(recipient_id, fields)
        if result.created:
            logger.info(
                "reciprocal_contact_created",
                recipient_id=str(recipient_id),
                owner_id=str(owner_id),
                contact_id=str(result.record.id),
            )
        return result

    async def create_for_owners(
        self,
        recipient_id: UUID,
        owner_ids: Sequence[UUID],
    ) -> ReciprocalBatch:
        """Best-effort pass over every owner.

        One owner failing does not stop the others and never raises; failed
        owners are reported so a queued job can be retried.
        """
        created = 0
        failed: list[UUID] = []
        for owner_id in owner_ids:
            try:
                result = await self.create_reciprocal_contact_if_missing(recipient_id, owner_id)
            except Exception as exc:
                BACKGROUND_TASK_FAILURES.labels(task=RECIPROCAL_TASK_NAME).inc()
                logger.warning(
                    "reciprocal_contact_failed",
                    recipient_id=str(recipient_id),
                    owner_id=str(owner_id),
                    error_type=type(exc).__name__,
                )
                failed.append(owner_id)
                continue
            if result is not None and result.created:
                created += 1
        return ReciprocalBatch(created=created, failed_owner_ids=failed)


class ReciprocalScheduler(Protocol):
    """Runs reciprocal-contact creation after the claim has committed."""

    async def schedule(self, recipient_id: UUID, owner_ids: Sequence[UUID]) -> None: ...


class InlineReciprocalScheduler:
    """Runs the follow-up as an in-process background task."""

    def __init__(self, reciprocal: ReciprocalContactService, tasks: BackgroundTasks) -> None:
        self.reciprocal = reciprocal
        self.tasks = tasks

    async def schedule(self, recipient_id: UUID, owner_ids: Sequence[UUID]) -> None:
        self.tasks.spawn(
            self.reciprocal.create_for_owners(recipient_id, list(owner_ids)),
            name=RECIPROCAL_TASK_NAME,
        )


class QueuedReciprocalScheduler:
    """Hands the follow-up to the arq worker."""

    def __init__(self, enqueue: Callable[[UUID, Sequence[UUID]], Awaitable[str | None]]) -> None:
        self.enqueue = enqueue

    async def schedule(self, recipient_id: UUID, owner_ids: Sequence[UUID]) -> None:
        job_id = await self.enqueue(recipient_id, owner_ids)
        logger.info(
            "reciprocal_contacts_enqueued",
            recipient_id=str(recipient_id),
            owners=len(owner_ids),
            job_id=job_id,
        )
