"""Integration tests for the encrypted, tenant-scoped record store."""

from uuid import uuid4

import pytest
from sqlalchemy import select

from relish.domain.records.schemas import CONTACT_SCHEMA
from relish.domain.records.types import ContactFields, ContactUpdate
from relish.infrastructure.database.models import ContactTag, Lead
from relish.shared.exceptions import (
    DecryptionError,
    DuplicateIndexError,
    NotFoundError,
    ValidationError,
)
from relish.shared.labels import CONTACT_EMAIL


class TestCreateAndFind:
    """Test writes and blind-index lookups."""

    @pytest.mark.asyncio
    async def test_email_lookup_is_normalized_and_tenant_scoped(self, services, owner, visitor):
        result = await services.contacts.create_contact(
            owner.id, ContactFields(full_name="Alice", email="  Alice@Example.com ")
        )
        assert result.created

        found = await services.contacts.find_by_email(owner.id, "alice@EXAMPLE.com")
        assert found is not None
        assert found.id == result.record.id
        assert await services.contacts.find_by_email(visitor.id, "alice@example.com") is None

    @pytest.mark.asyncio
    async def test_pii_is_never_stored_in_plaintext(self, services, owner):
        result = await services.contacts.create_contact(
            owner.id, ContactFields(full_name="Alice Wonder", email="alice@example.com")
        )
        contact = result.record

        assert contact.full_name_enc.count(":") == 2
        assert "Alice" not in contact.full_name_enc
        assert "alice@example.com" not in contact.email_enc
        assert contact.email_idx == services.blind_index.token("alice@example.com", CONTACT_EMAIL)
        assert contact.phone_enc is None
        assert contact.phone_idx is None

    @pytest.mark.asyncio
    async def test_duplicate_email_in_same_tenant(self, services, owner):
        first = await services.store.create_record(
            owner.id, CONTACT_SCHEMA, {"full_name": "A", "email": "a@b.com"}
        )

        with pytest.raises(DuplicateIndexError) as exc_info:
            await services.store.create_record(
                owner.id, CONTACT_SCHEMA, {"full_name": "Also A", "email": "A@B.COM"}
            )

        assert exc_info.value.field == "email"
        assert exc_info.value.existing_id == first.id

    @pytest.mark.asyncio
    async def test_create_contact_converges_on_duplicate_email(self, services, owner):
        first = await services.contacts.create_contact(
            owner.id, ContactFields(full_name="A", email="a@b.com")
        )
        second = await services.contacts.create_contact(
            owner.id, ContactFields(full_name="Someone else", email="A@B.COM")
        )

        assert not second.created
        assert second.record.id == first.record.id
        rows = await services.store.list_records(owner.id, CONTACT_SCHEMA)
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_same_email_allowed_across_tenants(self, services, owner, visitor):
        a = await services.contacts.create_contact(
            owner.id, ContactFields(full_name="A", email="a@b.com")
        )
        b = await services.contacts.create_contact(
            visitor.id, ContactFields(full_name="A", email="a@b.com")
        )
        assert a.created and b.created
        assert a.record.id != b.record.id

    @pytest.mark.asyncio
    async def test_phone_is_not_unique(self, services, owner):
        await services.contacts.create_contact(
            owner.id, ContactFields(full_name="First", phone="+1 555 0101")
        )
        second = await services.contacts.create_contact(
            owner.id, ContactFields(full_name="Second", phone="+1 555 0101")
        )
        assert second.created

    @pytest.mark.asyncio
    async def test_blank_name_is_rejected(self, services, owner):
        with pytest.raises(ValidationError):
            await services.contacts.create_contact(owner.id, ContactFields(full_name="   "))

    @pytest.mark.asyncio
    async def test_unknown_field_is_rejected(self, services, owner):
        with pytest.raises(ValidationError):
            await services.store.create_record(
                owner.id, CONTACT_SCHEMA, {"full_name": "A", "nickname": "Al"}
            )

    @pytest.mark.asyncio
    async def test_invalid_linkedin_rejected_on_write_and_unmatched_on_read(self, services, owner):
        with pytest.raises(ValidationError):
            await services.contacts.create_contact(
                owner.id, ContactFields(full_name="A", linkedin="https://example.com/in/a")
            )
        assert (
            await services.store.find_by_index(
                owner.id, CONTACT_SCHEMA, "linkedin", "https://example.com/in/a"
            )
            is None
        )

    @pytest.mark.asyncio
    async def test_blank_lookup_matches_nothing(self, services, owner):
        await services.contacts.create_contact(owner.id, ContactFields(full_name="No email"))
        assert await services.contacts.find_by_email(owner.id, "   ") is None
        assert await services.contacts.find_by_email(owner.id, None) is None


class TestUpdate:
    """Test partial updates."""

    @pytest.mark.asyncio
    async def test_unset_fields_are_left_alone(self, services, owner):
        created = await services.contacts.create_contact(
            owner.id,
            ContactFields(full_name="Alice", phone="+1 555 0102", company="Acme"),
        )

        updated = await services.contacts.update_contact(
            owner.id,
            created.record.id,
            ContactUpdate(company=None, position="CTO"),
        )
        revealed = services.contacts.reveal(updated)

        assert revealed.full_name == "Alice"
        assert revealed.phone == "+1 555 0102"
        assert revealed.company is None
        assert updated.company_idx is None
        assert revealed.position == "CTO"

    @pytest.mark.asyncio
    async def test_blank_clears_the_index(self, services, owner):
        created = await services.contacts.create_contact(
            owner.id, ContactFields(full_name="Alice", email="alice@example.com")
        )
        await services.contacts.update_contact(owner.id, created.record.id, ContactUpdate(email="  "))

        assert await services.contacts.find_by_email(owner.id, "alice@example.com") is None

    @pytest.mark.asyncio
    async def test_changed_value_is_reindexed(self, services, owner):
        created = await services.contacts.create_contact(
            owner.id, ContactFields(full_name="Alice", email="old@example.com")
        )
        await services.contacts.update_contact(
            owner.id, created.record.id, ContactUpdate(email="New@Example.com")
        )

        assert await services.contacts.find_by_email(owner.id, "old@example.com") is None
        found = await services.contacts.find_by_email(owner.id, "new@example.com")
        assert found is not None and found.id == created.record.id

    @pytest.mark.asyncio
    async def test_required_field_cannot_be_cleared(self, services, owner):
        created = await services.contacts.create_contact(owner.id, ContactFields(full_name="Alice"))
        with pytest.raises(ValidationError):
            await services.contacts.update_contact(
                owner.id, created.record.id, ContactUpdate(full_name="")
            )

    @pytest.mark.asyncio
    async def test_update_to_taken_email(self, services, owner):
        await services.contacts.create_contact(
            owner.id, ContactFields(full_name="A", email="a@b.com")
        )
        other = await services.contacts.create_contact(owner.id, ContactFields(full_name="B"))

        with pytest.raises(DuplicateIndexError):
            await services.contacts.update_contact(
                owner.id, other.record.id, ContactUpdate(email="a@b.com")
            )

    @pytest.mark.asyncio
    async def test_update_other_tenants_contact(self, services, owner, visitor):
        created = await services.contacts.create_contact(owner.id, ContactFields(full_name="A"))
        with pytest.raises(NotFoundError):
            await services.contacts.update_contact(
                visitor.id, created.record.id, ContactUpdate(company="Stolen")
            )

    @pytest.mark.asyncio
    async def test_update_missing_contact(self, services, owner):
        with pytest.raises(NotFoundError):
            await services.contacts.update_contact(owner.id, uuid4(), ContactUpdate(company="X"))


class TestDeleteAndReveal:
    """Test deletion of a contact and decryption for its owner."""

    @pytest.mark.asyncio
    async def test_delete_removes_children_and_detaches_leads(self, services, owner):
        captured = await services.leads.capture_lead(owner.id, name="Bob", email="bob@x.com")
        contact_id = captured.contact.id
        await services.contacts.add_interaction(owner.id, contact_id, "Met at the fair")
        await services.tags.attach(owner.id, contact_id, ["Investor"])

        await services.contacts.delete_contact(owner.id, contact_id)

        assert await services.store.find_record(owner.id, CONTACT_SCHEMA, contact_id) is None
        assert await services.contacts.list_interactions(owner.id, contact_id) == []
        async with services.session_factory() as session:
            links = await session.execute(
                select(ContactTag).where(ContactTag.contact_id == contact_id)
            )
            assert links.scalars().all() == []
            lead = await session.get(Lead, captured.lead.id)
            assert lead is not None
            assert lead.contact_id is None
            assert lead.is_pending

    @pytest.mark.asyncio
    async def test_delete_other_tenants_contact(self, services, owner, visitor):
        created = await services.contacts.create_contact(owner.id, ContactFields(full_name="A"))
        with pytest.raises(NotFoundError):
            await services.contacts.delete_contact(visitor.id, created.record.id)
        assert await services.contacts.get_contact(owner.id, created.record.id) is not None

    @pytest.mark.asyncio
    async def test_reveal_round_trip(self, services, owner):
        created = await services.contacts.create_contact(
            owner.id,
            ContactFields(
                full_name="  Alice Wonder ",
                email="Alice@Example.com",
                linkedin="linkedin.com/in/AliceW/",
            ),
        )
        revealed = services.contacts.reveal(created.record)

        assert revealed.full_name == "Alice Wonder"
        assert revealed.email == "alice@example.com"
        assert revealed.linkedin == "https://www.linkedin.com/in/alicew"
        assert revealed.user_id == owner.id

    @pytest.mark.asyncio
    async def test_reveal_fails_loudly_on_swapped_ciphertext(self, services, owner):
        created = await services.contacts.create_contact(
            owner.id, ContactFields(full_name="Alice", email="alice@example.com")
        )
        contact = created.record
        # Ciphertext bound to the email label cannot be read as a name
        contact.full_name_enc = contact.email_enc

        with pytest.raises(DecryptionError):
            services.contacts.reveal(contact)
