"""Explicit wiring of the store handle and every core service.

Built once per process (API lifespan, worker startup) and passed by
reference; tests build their own bundle against a test database.
"""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from relish.config import Settings, get_settings
from relish.domain.connections.service import ConnectionService
from relish.domain.contacts.service import ContactService
from relish.domain.leads.capture import LeadCaptureService
from relish.domain.leads.linking import IdentityLinker
from relish.domain.leads.reciprocal import (
    InlineReciprocalScheduler,
    QueuedReciprocalScheduler,
    ReciprocalContactService,
    ReciprocalScheduler,
)
from relish.domain.records.store import TenantRecordStore
from relish.domain.tags.service import TagService
from relish.domain.users.profiles import ProfileService
from relish.domain.users.service import UserService
from relish.infrastructure.queue.client import enqueue_reciprocal_contacts
from relish.shared.blind_index import BlindIndex
from relish.shared.concurrency import BackgroundTasks
from relish.shared.crypto import EnvelopeCipher
from relish.shared.keys import KeyRing
from relish.shared.logging import get_logger

logger = get_logger(__name__)

Enqueue = Callable[[UUID, Sequence[UUID]], Awaitable[str | None]]


@dataclass
class CoreServices:
    session_factory: async_sessionmaker[AsyncSession]
    cipher: EnvelopeCipher
    blind_index: BlindIndex
    store: TenantRecordStore
    users: UserService
    profiles: ProfileService
    contacts: ContactService
    reciprocal: ReciprocalContactService
    linker: IdentityLinker
    leads: LeadCaptureService
    connections: ConnectionService
    tags: TagService
    background: BackgroundTasks

    async def aclose(self) -> None:
        """Let in-flight best-effort work finish."""
        pending = len(self.background)
        if pending:
            logger.info("background_tasks_draining", pending=pending)
        await self.background.drain()


def build_services(
    session_factory: async_sessionmaker[AsyncSession],
    key_ring: KeyRing,
    settings: Settings | None = None,
    *,
    enqueue: Enqueue | None = None,
) -> CoreServices:
    """Build every service around one session factory and one key ring."""
    if settings is None:
        settings = get_settings()

    cipher = EnvelopeCipher(key_ring.enc_key)
    blind_index = BlindIndex(key_ring.mac_key)
    store = TenantRecordStore(session_factory, cipher, blind_index)
    background = BackgroundTasks()

    users = UserService(session_factory, cipher, blind_index)
    profiles = ProfileService(
        session_factory,
        users,
        default_display_name=settings.default_profile_name,
    )
    contacts = ContactService(store, profiles)
    reciprocal = ReciprocalContactService(contacts, profiles)

    scheduler: ReciprocalScheduler
    if settings.followup_backend == "queue":
        scheduler = QueuedReciprocalScheduler(enqueue or enqueue_reciprocal_contacts)
    else:
        scheduler = InlineReciprocalScheduler(reciprocal, background)

    return CoreServices(
        session_factory=session_factory,
        cipher=cipher,
        blind_index=blind_index,
        store=store,
        users=users,
        profiles=profiles,
        contacts=contacts,
        reciprocal=reciprocal,
        linker=IdentityLinker(session_factory, store, users, scheduler),
        leads=LeadCaptureService(store, contacts),
        connections=ConnectionService(contacts, profiles),
        tags=TagService(session_factory, contacts),
        background=background,
    )
