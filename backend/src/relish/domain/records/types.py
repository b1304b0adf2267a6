"""Value types shared by the record store and the services built on it."""

from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any, Final, Generic, Literal, TypeAlias, TypeVar
from uuid import UUID


class Unset(Enum):
    """Sentinel for "field not provided" in partial updates."""

    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = Unset.UNSET

T = TypeVar("T")

# Three states: UNSET leaves the column alone, None (or blank) clears it,
# a value re-encrypts and re-indexes it.
Maybe: TypeAlias = T | None | Literal[Unset.UNSET]


@dataclass(frozen=True)
class Created(Generic[T]):
    """A create that inserted a new row."""

    record: T

    @property
    def created(self) -> bool:
        return True


@dataclass(frozen=True)
class AlreadyExists(Generic[T]):
    """A create that converged on the row already holding the same index."""

    record: T

    @property
    def created(self) -> bool:
        return False


CreateResult: TypeAlias = Created[T] | AlreadyExists[T]


@dataclass
class ContactFields:
    """Raw input for a new contact."""

    full_name: str | None
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    position: str | None = None
    linkedin: str | None = None
    linked_user_id: UUID | None = None

    def as_values(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class ContactUpdate:
    """Partial update of a contact; every field defaults to UNSET."""

    full_name: Maybe[str] = UNSET
    email: Maybe[str] = UNSET
    phone: Maybe[str] = UNSET
    company: Maybe[str] = UNSET
    position: Maybe[str] = UNSET
    linkedin: Maybe[str] = UNSET
    linked_user_id: Maybe[UUID] = UNSET

    def as_values(self) -> dict[str, Any]:
        """Only the fields that were provided."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }


@dataclass(frozen=True)
class IdentityClaims:
    """Identifiers a newly authenticated user can claim leads with."""

    email: str | None = None
    phone: str | None = None
    linkedin_url: str | None = None


@dataclass(frozen=True)
class RevealedContact:
    """Decrypted view of a contact, for the owning tenant only."""

    id: UUID
    user_id: UUID
    linked_user_id: UUID | None
    full_name: str
    email: str | None
    phone: str | None
    company: str | None
    position: str | None
    linkedin: str | None
    created_at: datetime
    updated_at: datetime
