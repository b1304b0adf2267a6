"""Encrypted, tenant-scoped record store.

Every write of a sensitive field goes through the cipher and the blind index
together, in the same transaction as the row. Every lookup on PII is an
equality match on a blind-index column, filtered by the owning tenant.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any
from uuid import UUID

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from relish.domain.records.schemas import RecordSchema, SensitiveField
from relish.domain.records.types import UNSET, AlreadyExists, Created, CreateResult
from relish.infrastructure.database.connection import session_scope
from relish.infrastructure.database.repositories.base import TenantRepository
from relish.observability.metrics import DUPLICATE_INDEX_CONFLICTS
from relish.shared.blind_index import BlindIndex
from relish.shared.crypto import EnvelopeCipher
from relish.shared.exceptions import DuplicateIndexError, NotFoundError, ValidationError
from relish.shared.logging import get_logger
from relish.shared.normalize import clean_optional, is_blank, normalize

logger = get_logger(__name__)

UNIQUE_VIOLATION_SQLSTATE = "23505"


def duplicate_index_field(exc: IntegrityError, candidates: Iterable[str]) -> str | None:
    """Name of the unique blind-index field an IntegrityError is about.

    Returns None when the error is not a unique violation on one of the
    ``<field>_idx`` columns in ``candidates``.
    """
    orig = exc.orig
    message = str(orig).lower()
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    is_unique = (
        sqlstate == UNIQUE_VIOLATION_SQLSTATE
        or "unique constraint" in message
        or "duplicate key" in message
    )
    if not is_unique:
        return None
    for name in candidates:
        if f"{name}_idx" in message:
            return name
    return None


class SchemaRepository(TenantRepository[Any]):
    """Tenant repository bound to the model described by a schema."""

    def __init__(self, session: AsyncSession, tenant_id: UUID, schema: RecordSchema) -> None:
        super().__init__(session, tenant_id)
        self.model_class = schema.model
        self.owner_column = schema.owner_column


class TenantRecordStore:
    """Create, update, find, delete and reveal encrypted tenant records.

    Each operation is its own unit of work. Store errors come out typed:
    DuplicateIndexError for a unique blind-index conflict, NotFoundError for
    an id outside the tenant, ValidationError for bad input or any other
    constraint failure.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cipher: EnvelopeCipher,
        blind_index: BlindIndex,
    ) -> None:
        self.session_factory = session_factory
        self.cipher = cipher
        self.blind_index = blind_index

    # ----- Field preparation -----

    def prepare(
        self,
        sensitive: SensitiveField,
        raw: str | None,
        *,
        strict: bool = True,
    ) -> str | None:
        """Trim and canonicalize one raw value; blank input becomes None.

        With ``strict`` a value the field's canonicalizer rejects raises
        ValidationError, otherwise it is treated as absent.
        """
        value = clean_optional(raw)
        if value is None:
            return None
        if sensitive.canonicalize is not None:
            canonical = sensitive.canonicalize(value)
            if canonical is None:
                if strict:
                    raise ValidationError(
                        f"Invalid value for {sensitive.name}",
                        details={"field": sensitive.name},
                    )
                return None
            value = canonical
        if sensitive.store_normalized:
            value = normalize(value)
        return value

    def token(self, schema: RecordSchema, field_name: str, raw: str | None) -> bytes | None:
        """Blind-index token for a lookup, or None when there is nothing to match."""
        sensitive = schema.field(field_name)
        value = self.prepare(sensitive, raw, strict=False)
        if value is None:
            return None
        return self.blind_index.token(value, sensitive.label)

    def _seal(self, sensitive: SensitiveField, raw: str | None) -> dict[str, Any]:
        value = self.prepare(sensitive, raw)
        columns: dict[str, Any] = {}
        if sensitive.encrypted:
            columns[sensitive.enc_column] = (
                None if value is None else self.cipher.encrypt(value, sensitive.label)
            )
        if sensitive.indexed:
            columns[sensitive.idx_column] = (
                None if value is None else self.blind_index.token(value, sensitive.label)
            )
        return columns

    def _columns(self, schema: RecordSchema, values: Mapping[str, Any]) -> dict[str, Any]:
        columns: dict[str, Any] = {}
        for name, raw in values.items():
            if raw is UNSET:
                continue
            if schema.has_field(name):
                if name in schema.required and is_blank(raw):
                    raise ValidationError(f"{name} is required", details={"field": name})
                columns.update(self._seal(schema.field(name), raw))
            elif name in schema.plain_fields:
                columns[name] = raw
            else:
                raise ValidationError(
                    f"Unknown field {name} for {schema.entity}",
                    details={"field": name},
                )
        return columns

    async def _translate(
        self,
        exc: IntegrityError,
        tenant_id: UUID,
        schema: RecordSchema,
        values: Mapping[str, Any],
    ) -> Exception:
        unique_fields = [sensitive.name for sensitive in schema.fields if sensitive.unique]
        field_name = duplicate_index_field(exc, unique_fields)
        if field_name is None:
            logger.warning(
                "record_constraint_violation",
                entity=schema.entity,
                tenant_id=str(tenant_id),
            )
            return ValidationError(
                f"{schema.entity} violates a storage constraint",
                details={"entity": schema.entity},
            )

        DUPLICATE_INDEX_CONFLICTS.labels(entity=schema.entity, field=field_name).inc()
        raw = values.get(field_name)
        existing = None
        if isinstance(raw, str):
            existing = await self.find_by_index(tenant_id, schema, field_name, raw)
        logger.info(
            "record_duplicate_index",
            entity=schema.entity,
            field=field_name,
            tenant_id=str(tenant_id),
        )
        return DuplicateIndexError(schema.entity, field_name, existing.id if existing else None)

    # ----- Operations -----

    async def create_record(
        self,
        tenant_id: UUID,
        schema: RecordSchema,
        values: Mapping[str, Any],
    ) -> Any:
        """Insert a record owned by ``tenant_id``.

        Raises:
            ValidationError: A required field is blank or a value is rejected.
            DuplicateIndexError: A unique blind index already exists in scope.
        """
        for name in schema.required:
            if is_blank(values.get(name)):
                raise ValidationError(f"{name} is required", details={"field": name})

        columns = self._columns(schema, values)
        columns[schema.owner_column] = tenant_id
        record = schema.model(**columns)

        try:
            async with session_scope(self.session_factory) as session:
                session.add(record)
                await session.flush()
        except IntegrityError as exc:
            raise await self._translate(exc, tenant_id, schema, values) from exc

        logger.info(
            "record_created",
            entity=schema.entity,
            record_id=str(record.id),
            tenant_id=str(tenant_id),
        )
        return record

    async def create_or_get(
        self,
        tenant_id: UUID,
        schema: RecordSchema,
        values: Mapping[str, Any],
    ) -> CreateResult[Any]:
        """Create a record, converging on the existing row on a duplicate index.

        The conflict is resolved by exactly one re-query; if the winning row is
        gone by then the DuplicateIndexError propagates.
        """
        try:
            return Created(await self.create_record(tenant_id, schema, values))
        except DuplicateIndexError as exc:
            if exc.existing_id is None:
                raise
            existing = await self.find_record(tenant_id, schema, exc.existing_id)
            if existing is None:
                raise
            return AlreadyExists(existing)

    async def update_record(
        self,
        tenant_id: UUID,
        schema: RecordSchema,
        record_id: UUID,
        values: Mapping[str, Any],
    ) -> Any:
        """Apply a partial update.

        UNSET values are skipped, None or blank clears both the ciphertext and
        the index column, anything else is re-encrypted and re-indexed.
        """
        columns = self._columns(schema, values)

        try:
            async with session_scope(self.session_factory) as session:
                repo = SchemaRepository(session, tenant_id, schema)
                record = await repo.get_by_id(record_id, for_update=True)
                if record is None:
                    raise NotFoundError(schema.entity, str(record_id))
                for column, value in columns.items():
                    setattr(record, column, value)
                await session.flush()
        except IntegrityError as exc:
            raise await self._translate(exc, tenant_id, schema, values) from exc

        logger.info(
            "record_updated",
            entity=schema.entity,
            record_id=str(record_id),
            tenant_id=str(tenant_id),
            columns=sorted(columns),
        )
        return record

    async def find_by_index(
        self,
        tenant_id: UUID,
        schema: RecordSchema,
        field_name: str,
        raw: str | None,
    ) -> Any | None:
        """Equality lookup on a sensitive field within one tenant.

        Where the index is not unique the most recently updated row wins.
        """
        token = self.token(schema, field_name, raw)
        if token is None:
            return None
        async with session_scope(self.session_factory) as session:
            repo = SchemaRepository(session, tenant_id, schema)
            return await repo.find_by_index(schema.field(field_name).idx_column, token)

    async def find_record(
        self,
        tenant_id: UUID,
        schema: RecordSchema,
        record_id: UUID,
    ) -> Any | None:
        async with session_scope(self.session_factory) as session:
            return await SchemaRepository(session, tenant_id, schema).get_by_id(record_id)

    async def get_record(self, tenant_id: UUID, schema: RecordSchema, record_id: UUID) -> Any:
        """Like ``find_record`` but raises NotFoundError."""
        record = await self.find_record(tenant_id, schema, record_id)
        if record is None:
            raise NotFoundError(schema.entity, str(record_id))
        return record

    async def list_records(
        self,
        tenant_id: UUID,
        schema: RecordSchema,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[Any]:
        async with session_scope(self.session_factory) as session:
            repo = SchemaRepository(session, tenant_id, schema)
            return await repo.get_all(limit=limit, offset=offset)

    async def delete_record(self, tenant_id: UUID, schema: RecordSchema, record_id: UUID) -> None:
        """Delete a record and handle its children in one transaction.

        Raises:
            NotFoundError: The record does not exist for this tenant.
        """
        async with session_scope(self.session_factory) as session:
            repo = SchemaRepository(session, tenant_id, schema)
            record = await repo.get_by_id(record_id, for_update=True)
            if record is None:
                raise NotFoundError(schema.entity, str(record_id))

            for child in schema.children:
                conditions = [getattr(child.model, child.column) == record_id]
                if child.owner_column is not None:
                    conditions.append(getattr(child.model, child.owner_column) == tenant_id)
                if child.action == "delete":
                    await session.execute(delete(child.model).where(*conditions))
                else:
                    await session.execute(
                        update(child.model).where(*conditions).values({child.column: None})
                    )

            await repo.delete(record)

        logger.info(
            "record_deleted",
            entity=schema.entity,
            record_id=str(record_id),
            tenant_id=str(tenant_id),
        )

    def reveal(self, schema: RecordSchema, record: Any) -> dict[str, str | None]:
        """Decrypt every encrypted field of a record.

        Raises:
            DecryptionError: Any field fails to decrypt. Nothing is masked here.
        """
        return {
            sensitive.name: self.cipher.decrypt_optional(
                getattr(record, sensitive.enc_column), sensitive.label
            )
            for sensitive in schema.fields
            if sensitive.encrypted
        }
