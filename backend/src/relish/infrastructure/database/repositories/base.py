"""Base repository with tenant isolation."""

from collections.abc import Sequence
from typing import Any, Generic, TypeVar, cast
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


T = TypeVar("T")


class TenantRepository(Generic[T]):
    """Base repository with automatic tenant filtering.

    IMPORTANT: This base class ensures all queries are filtered by the owning
    user id, preventing cross-tenant data access. The tenant id is given by
    the caller (the request layer authenticates, this layer only trusts it).

    All tenant-scoped repositories MUST inherit from this class.
    """

    model_class: type[T]
    owner_column: str = "user_id"

    def __init__(self, session: AsyncSession, tenant_id: UUID) -> None:
        self.session = session
        self.tenant_id = tenant_id

    def _owner(self) -> Any:
        return getattr(self.model_class, self.owner_column)

    def _base_query(self) -> Any:
        """Create a base query filtered by tenant.

        All queries should start from this method to ensure tenant isolation.
        """
        return select(self.model_class).where(self._owner() == self.tenant_id)

    async def get_by_id(self, id: UUID, *, for_update: bool = False) -> T | None:
        """Get entity by ID, filtered by tenant."""
        model = cast(Any, self.model_class)
        query = self._base_query().where(model.id == id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_all(
        self,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[T]:
        """Get all entities for the current tenant, most recently updated first."""
        model = cast(Any, self.model_class)
        query = (
            self._base_query()
            .order_by(model.updated_at.desc(), model.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def find_by_index(self, column: str, token: bytes) -> T | None:
        """Equality lookup on a blind-index column within the tenant.

        Non-unique columns may match several rows; the most recently updated
        one wins.
        """
        model = cast(Any, self.model_class)
        query = (
            self._base_query()
            .where(getattr(model, column) == token)
            .order_by(model.updated_at.desc(), model.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def create(self, entity: T) -> T:
        """Create a new entity.

        Automatically sets the owner column from the repository's tenant.
        """
        entity_any = cast(Any, entity)
        setattr(entity_any, self.owner_column, self.tenant_id)
        self.session.add(entity_any)
        await self.session.flush()
        await self.session.refresh(entity_any)
        return cast(T, entity_any)

    async def delete(self, entity: T) -> None:
        """Hard delete an entity."""
        await self.session.delete(entity)
        await self.session.flush()
