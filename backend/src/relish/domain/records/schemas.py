"""Declarative description of each encrypted entity.

A schema lists the sensitive fields of a model, the label each one is
encrypted and indexed under, and which index columns are unique. The record
store derives every column name from it (``<field>_enc`` / ``<field>_idx``).
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from relish.infrastructure.database.models import Contact, ContactTag, Interaction, Lead
from relish.shared import labels
from relish.shared.normalize import canonicalize_linkedin_url


@dataclass(frozen=True)
class SensitiveField:
    """One PII field stored as ciphertext, blind index, or both."""

    name: str
    label: str
    unique: bool = False
    encrypted: bool = True
    indexed: bool = True
    # Store the normalized form instead of the trimmed input (emails)
    store_normalized: bool = False
    # Returns the canonical form, or None when the input is not acceptable
    canonicalize: Callable[[str], str | None] | None = None

    @property
    def enc_column(self) -> str:
        return f"{self.name}_enc"

    @property
    def idx_column(self) -> str:
        return f"{self.name}_idx"


@dataclass(frozen=True)
class ChildLink:
    """A table referencing the record that must be handled before deleting it."""

    model: type[Any]
    column: str
    action: Literal["delete", "detach"]
    owner_column: str | None = None


@dataclass(frozen=True)
class RecordSchema:
    entity: str
    model: type[Any]
    owner_column: str
    fields: tuple[SensitiveField, ...]
    required: tuple[str, ...] = ()
    plain_fields: tuple[str, ...] = ()
    children: tuple[ChildLink, ...] = ()

    def field(self, name: str) -> SensitiveField:
        for candidate in self.fields:
            if candidate.name == name:
                return candidate
        raise KeyError(f"{self.entity} has no sensitive field {name!r}")

    def has_field(self, name: str) -> bool:
        return any(candidate.name == name for candidate in self.fields)


CONTACT_SCHEMA = RecordSchema(
    entity="contact",
    model=Contact,
    owner_column="user_id",
    fields=(
        SensitiveField("full_name", labels.CONTACT_FULL_NAME),
        SensitiveField("email", labels.CONTACT_EMAIL, unique=True, store_normalized=True),
        SensitiveField("phone", labels.CONTACT_PHONE),
        SensitiveField("company", labels.CONTACT_COMPANY),
        SensitiveField("position", labels.CONTACT_POSITION),
        SensitiveField("linkedin", labels.CONTACT_LINKEDIN, canonicalize=canonicalize_linkedin_url),
    ),
    required=("full_name",),
    plain_fields=("linked_user_id",),
    children=(
        ChildLink(Interaction, "contact_id", "delete", owner_column="user_id"),
        ChildLink(ContactTag, "contact_id", "delete"),
        # Leads keep their claim history, they only lose the reference
        ChildLink(Lead, "contact_id", "detach", owner_column="owner_id"),
    ),
)

LEAD_SCHEMA = RecordSchema(
    entity="lead",
    model=Lead,
    owner_column="owner_id",
    fields=(
        SensitiveField("email", labels.LEAD_EMAIL, encrypted=False),
        SensitiveField("phone", labels.LEAD_PHONE, encrypted=False),
        SensitiveField("linkedin", labels.LEAD_LINKEDIN, canonicalize=canonicalize_linkedin_url),
    ),
    plain_fields=("contact_id",),
)

INTERACTION_SCHEMA = RecordSchema(
    entity="interaction",
    model=Interaction,
    owner_column="user_id",
    fields=(SensitiveField("summary", labels.INTERACTION_SUMMARY, indexed=False),),
    plain_fields=("contact_id", "occurred_at"),
)
