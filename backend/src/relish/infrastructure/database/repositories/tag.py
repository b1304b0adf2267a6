"""Tag repositories."""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import delete, select

from relish.infrastructure.database.models.tag import ContactTag, Tag, TagAlias
from relish.infrastructure.database.repositories.base import TenantRepository


class TagRepository(TenantRepository[Tag]):
    """Repository for Tag entities."""

    model_class = Tag

    async def get_by_slug(self, slug: str) -> Tag | None:
        result = await self.session.execute(self._base_query().where(Tag.slug == slug))
        return result.scalar_one_or_none()

    async def get_by_alias(self, slug: str) -> Tag | None:
        """Resolve an alias slug to its canonical tag within the tenant."""
        query = (
            self._base_query()
            .join(TagAlias, TagAlias.tag_id == Tag.id)
            .where(TagAlias.slug == slug)
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def add_alias(self, tag: Tag, slug: str) -> TagAlias:
        alias = TagAlias(tag_id=tag.id, slug=slug)
        self.session.add(alias)
        await self.session.flush()
        return alias

    async def get_for_contact(self, contact_id: UUID) -> Sequence[Tag]:
        query = (
            self._base_query()
            .join(ContactTag, ContactTag.tag_id == Tag.id)
            .where(ContactTag.contact_id == contact_id)
            .order_by(Tag.slug.asc())
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def link_exists(self, contact_id: UUID, tag_id: UUID) -> bool:
        result = await self.session.execute(
            select(ContactTag).where(
                ContactTag.contact_id == contact_id,
                ContactTag.tag_id == tag_id,
            )
        )
        return result.scalar_one_or_none() is not None

    async def link(self, contact_id: UUID, tag_id: UUID, assigned_by: str) -> None:
        self.session.add(ContactTag(contact_id=contact_id, tag_id=tag_id, assigned_by=assigned_by))
        await self.session.flush()

    async def unlink(self, contact_id: UUID, tag_id: UUID) -> None:
        await self.session.execute(
            delete(ContactTag).where(
                ContactTag.contact_id == contact_id,
                ContactTag.tag_id == tag_id,
            )
        )
