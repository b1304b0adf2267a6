"""Integration tests for contact views and interactions."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from relish.domain.contacts.service import NEW_CONNECTION_NAME, is_placeholder_name
from relish.domain.records.types import ContactFields, ContactUpdate
from relish.shared.exceptions import NotFoundError


class TestPlaceholderNames:
    """Test placeholder detection."""

    @pytest.mark.parametrize("name", [None, "", "  ", "New connection", "new CONNECTION", "Relish user"])
    def test_placeholders(self, name):
        assert is_placeholder_name(name)

    def test_real_name(self):
        assert not is_placeholder_name("Bob")


class TestListForView:
    """Test the contact list display names."""

    @pytest.mark.asyncio
    async def test_linked_placeholder_shows_live_profile_name(self, services, owner, visitor):
        await services.contacts.create_contact(
            owner.id,
            ContactFields(full_name=NEW_CONNECTION_NAME, linked_user_id=visitor.id),
        )

        views = await services.contacts.list_for_view(owner.id)

        assert [v.display_name for v in views] == ["Bob Visitor"]
        assert views[0].linked_user_id == visitor.id

    @pytest.mark.asyncio
    async def test_real_names_are_kept(self, services, owner, visitor):
        await services.contacts.create_contact(
            owner.id, ContactFields(full_name="Robert", linked_user_id=visitor.id)
        )
        views = await services.contacts.list_for_view(owner.id)
        assert [v.display_name for v in views] == ["Robert"]

    @pytest.mark.asyncio
    async def test_falls_back_to_email_local_part(self, services, owner, make_user):
        quiet = await make_user("carol@example.com", with_profile=False)
        await services.contacts.create_contact(
            owner.id, ContactFields(full_name=NEW_CONNECTION_NAME, linked_user_id=quiet.id)
        )

        views = await services.contacts.list_for_view(owner.id)

        assert [v.display_name for v in views] == ["carol"]

    @pytest.mark.asyncio
    async def test_unlinked_placeholder_is_not_resolved(self, services, owner):
        await services.contacts.create_contact(owner.id, ContactFields(full_name=NEW_CONNECTION_NAME))
        views = await services.contacts.list_for_view(owner.id)
        assert [v.display_name for v in views] == [NEW_CONNECTION_NAME]

    @pytest.mark.asyncio
    async def test_most_recently_updated_first(self, services, owner):
        first = await services.contacts.create_contact(owner.id, ContactFields(full_name="First"))
        await services.contacts.create_contact(owner.id, ContactFields(full_name="Second"))
        await services.contacts.update_contact(
            owner.id, first.record.id, ContactUpdate(company="Touched")
        )

        views = await services.contacts.list_for_view(owner.id)

        assert [v.display_name for v in views] == ["First", "Second"]

    @pytest.mark.asyncio
    async def test_only_own_contacts(self, services, owner, visitor):
        await services.contacts.create_contact(visitor.id, ContactFields(full_name="Hidden"))
        assert await services.contacts.list_for_view(owner.id) == []


class TestInteractions:
    """Test encrypted interaction logging."""

    @pytest.mark.asyncio
    async def test_add_and_list(self, services, owner):
        contact = (await services.contacts.create_contact(owner.id, ContactFields(full_name="A"))).record
        now = datetime.now(UTC)
        older = await services.contacts.add_interaction(
            owner.id, contact.id, "Coffee", occurred_at=now - timedelta(days=2)
        )
        newer = await services.contacts.add_interaction(
            owner.id, contact.id, "Follow-up call", occurred_at=now
        )

        assert "Coffee" not in older.summary_enc
        listed = await services.contacts.list_interactions(owner.id, contact.id)

        assert [i.id for i in listed] == [newer.id, older.id]
        assert [i.summary for i in listed] == ["Follow-up call", "Coffee"]

    @pytest.mark.asyncio
    async def test_cannot_log_on_another_tenants_contact(self, services, owner, visitor):
        contact = (await services.contacts.create_contact(owner.id, ContactFields(full_name="A"))).record
        with pytest.raises(NotFoundError):
            await services.contacts.add_interaction(visitor.id, contact.id, "Sneaky")

    @pytest.mark.asyncio
    async def test_missing_contact(self, services, owner):
        with pytest.raises(NotFoundError):
            await services.contacts.add_interaction(owner.id, uuid4(), "Nobody")
