"""Contact repositories."""

from collections.abc import Sequence
from uuid import UUID

from relish.infrastructure.database.models.contact import Contact, Interaction
from relish.infrastructure.database.repositories.base import TenantRepository


class ContactRepository(TenantRepository[Contact]):
    """Repository for Contact entities."""

    model_class = Contact

    async def find_by_linked_user(self, linked_user_id: UUID) -> Contact | None:
        """Find the tenant's contact representing another platform user."""
        query = (
            self._base_query()
            .where(Contact.linked_user_id == linked_user_id)
            .order_by(Contact.updated_at.desc(), Contact.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalars().first()


class InteractionRepository(TenantRepository[Interaction]):
    """Repository for Interaction entities."""

    model_class = Interaction

    async def get_by_contact_id(
        self,
        contact_id: UUID,
        *,
        limit: int = 50,
    ) -> Sequence[Interaction]:
        query = (
            self._base_query()
            .where(Interaction.contact_id == contact_id)
            .order_by(Interaction.occurred_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return result.scalars().all()
