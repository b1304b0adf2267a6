"""Tenant-scoped tags on contacts."""

import re
from collections.abc import Iterable, Sequence
from typing import Literal
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from relish.domain.contacts.service import ContactService
from relish.infrastructure.database.connection import session_scope
from relish.infrastructure.database.models.tag import Tag
from relish.infrastructure.database.repositories.tag import TagRepository
from relish.shared.exceptions import NotFoundError, ValidationError
from relish.shared.logging import get_logger

logger = get_logger(__name__)

Provenance = Literal["user", "ai"]

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify_tag(value: str | None) -> str:
    """Lowercase, hyphen-separated ASCII slug; empty when nothing is left."""
    return _NON_ALNUM.sub("-", (value or "").strip().lower()).strip("-")


class TagService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        contacts: ContactService,
    ) -> None:
        self.session_factory = session_factory
        self.contacts = contacts

    async def resolve_or_create(
        self,
        tenant_id: UUID,
        name: str,
        provenance: Provenance = "user",
    ) -> Tag:
        """Find the tenant's tag by slug or alias, creating it if missing.

        Raises:
            ValidationError: The name has no usable characters.
        """
        slug = slugify_tag(name)
        if not slug:
            raise ValidationError("Empty tag", details={"field": "name"})

        try:
            async with session_scope(self.session_factory) as session:
                repo = TagRepository(session, tenant_id)
                existing = await repo.get_by_slug(slug) or await repo.get_by_alias(slug)
                if existing is not None:
                    return existing
                tag = await repo.create(Tag(name=name.strip(), slug=slug, created_by=provenance))
        except IntegrityError:
            # Lost a race on (user_id, slug), use the winner's row
            async with session_scope(self.session_factory) as session:
                winner = await TagRepository(session, tenant_id).get_by_slug(slug)
            if winner is None:
                raise
            return winner

        logger.info(
            "tag_created",
            tenant_id=str(tenant_id),
            tag_id=str(tag.id),
            provenance=provenance,
        )
        return tag

    async def add_alias(self, tenant_id: UUID, tag_id: UUID, alias: str) -> None:
        slug = slugify_tag(alias)
        if not slug:
            raise ValidationError("Empty alias", details={"field": "alias"})
        async with session_scope(self.session_factory) as session:
            repo = TagRepository(session, tenant_id)
            tag = await repo.get_by_id(tag_id)
            if tag is None:
                raise NotFoundError("tag", str(tag_id))
            await repo.add_alias(tag, slug)

    async def attach(
        self,
        tenant_id: UUID,
        contact_id: UUID,
        names: Iterable[str],
        provenance: Provenance = "user",
    ) -> list[Tag]:
        """Attach tags by name; names resolving to an existing link are skipped."""
        await self.contacts.get_contact(tenant_id, contact_id)

        unique_names = list(dict.fromkeys(n.strip() for n in names if n and n.strip()))
        tags: list[Tag] = []
        for name in unique_names:
            try:
                tags.append(await self.resolve_or_create(tenant_id, name, provenance))
            except ValidationError:
                logger.info("tag_name_skipped", tenant_id=str(tenant_id))

        attached: list[Tag] = []
        async with session_scope(self.session_factory) as session:
            repo = TagRepository(session, tenant_id)
            for tag in {tag.id: tag for tag in tags}.values():
                if await repo.link_exists(contact_id, tag.id):
                    continue
                await repo.link(contact_id, tag.id, provenance)
                attached.append(tag)

        logger.info(
            "contact_tags_attached",
            tenant_id=str(tenant_id),
            contact_id=str(contact_id),
            attached=len(attached),
        )
        return attached

    async def detach(self, tenant_id: UUID, contact_id: UUID, slug: str) -> bool:
        """Remove one tag from a contact. Returns False when nothing matched."""
        clean = slugify_tag(slug)
        if not clean:
            return False
        async with session_scope(self.session_factory) as session:
            repo = TagRepository(session, tenant_id)
            tag = await repo.get_by_slug(clean)
            if tag is None:
                return False
            if not await repo.link_exists(contact_id, tag.id):
                return False
            await repo.unlink(contact_id, tag.id)
        return True

    async def list_for_contact(self, tenant_id: UUID, contact_id: UUID) -> Sequence[Tag]:
        async with session_scope(self.session_factory) as session:
            return await TagRepository(session, tenant_id).get_for_contact(contact_id)
