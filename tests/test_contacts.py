"""
Tests for the contact service

Tests cover:
- Adding and validation
- Search, group and list queries
- Updates (validated like add)
- Deletion
"""
import pytest

from mailctl.core.contacts import ContactService, ContactStore
from mailctl.utils.errors import (
    InvalidContactFieldError,
    InvalidEmailError,
    MissingContactIdError,
    MissingNameError,
)


class TestAddContact:
    """Tests for adding contacts"""

    def test_add_then_search_finds_one(self, contacts):
        contacts.add_contact("Jane", "jane@example.com", "work")

        found = contacts.search_contacts("jane")

        assert len(found) == 1
        assert found[0].email == "jane@example.com"

    def test_no_group_stays_unset(self, contacts):
        contact = contacts.add_contact("Bob Wilson", "bob@example.com")

        assert contact.group is None

    def test_values_are_trimmed_and_email_lowercased(self, contacts):
        contact = contacts.add_contact("  Ann  ", " Ann@Example.COM ", "  ")

        assert contact.name == "Ann"
        assert contact.email == "ann@example.com"
        assert contact.group is None

    def test_ids_are_unique_and_prefixed(self, contacts):
        first = contacts.add_contact("A", "a@example.com")
        second = contacts.add_contact("B", "b@example.com")

        assert first.id != second.id
        assert first.id.startswith("contact_")

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_blank_name_is_rejected(self, contacts, name):
        with pytest.raises(MissingNameError):
            contacts.add_contact(name, "a@example.com")

    @pytest.mark.parametrize("email", ["", "not-an-email", "a@b", None])
    def test_invalid_email_is_rejected(self, contacts, email):
        with pytest.raises(InvalidEmailError):
            contacts.add_contact("Ann", email)

        assert contacts.get_all_contacts() == []


class TestQueries:
    """Tests for search, group and list queries"""

    @pytest.fixture
    def populated(self, contacts):
        contacts.add_contact("Jane Doe", "jane@example.com", "work")
        contacts.add_contact("John Smith", "john@corp.com", "work")
        contacts.add_contact("Mum", "mum@family.org", "family")
        return contacts

    def test_search_matches_name_or_email_case_insensitively(self, populated):
        assert [c.name for c in populated.search_contacts("DOE")] == ["Jane Doe"]
        assert [c.name for c in populated.search_contacts("corp")] == ["John Smith"]

    def test_blank_search_matches_nothing(self, populated):
        assert populated.search_contacts("   ") == []

    def test_group_is_exact_match(self, populated):
        assert len(populated.get_contacts_by_group("work")) == 2
        assert populated.get_contacts_by_group("Work") == []

    def test_blank_group_matches_nothing(self, populated):
        assert populated.get_contacts_by_group("") == []

    def test_list_keeps_insertion_order_and_limit(self, populated):
        assert [c.name for c in populated.list_contacts(2)] == ["Jane Doe", "John Smith"]
        assert len(populated.list_contacts()) == 3

    def test_store_is_injected_not_shared(self):
        first = ContactService(ContactStore())
        second = ContactService(ContactStore())

        first.add_contact("Jane", "jane@example.com")

        assert second.get_all_contacts() == []


class TestUpdateContact:
    """Tests for contact updates"""

    def test_invalid_email_update_is_rejected(self, contacts):
        contact = contacts.add_contact("Jane", "jane@example.com")

        with pytest.raises(InvalidEmailError):
            contacts.update_contact_field(contact.id, "email", "not-an-email")

        assert contacts.get_contact(contact.id).email == "jane@example.com"

    def test_valid_email_update_is_lowercased(self, contacts):
        contact = contacts.add_contact("Jane", "jane@example.com")

        updated = contacts.update_contact_field(contact.id, "email", "JANE@new.org")

        assert updated.email == "jane@new.org"

    def test_rejected_update_changes_nothing(self, contacts):
        contact = contacts.add_contact("Jane", "jane@example.com", "work")

        with pytest.raises(MissingNameError):
            contacts.update_contact_fields(contact.id, {"group": "home", "name": " "})

        assert contact.group == "work"

    def test_unknown_field_is_rejected(self, contacts):
        contact = contacts.add_contact("Jane", "jane@example.com")

        with pytest.raises(InvalidContactFieldError):
            contacts.update_contact_field(contact.id, "id", "other")

    def test_unknown_id_returns_none(self, contacts):
        assert contacts.update_contact_field("contact_0_missing", "name", "X") is None

    def test_blank_id_is_rejected(self, contacts):
        with pytest.raises(MissingContactIdError):
            contacts.update_contact_field(" ", "name", "X")

    def test_metadata_is_merged(self, contacts):
        contact = contacts.add_contact("Jane", "jane@example.com", metadata={"a": 1})

        contacts.update_contact_fields(contact.id, {"metadata": {"b": 2}})

        assert contact.metadata == {"a": 1, "b": 2}

    def test_blank_group_clears_group(self, contacts):
        contact = contacts.add_contact("Jane", "jane@example.com", "work")

        contacts.update_contact_field(contact.id, "group", "")

        assert contact.group is None


class TestDeleteContact:
    """Tests for contact deletion"""

    def test_delete_removes_contact(self, contacts):
        contact = contacts.add_contact("Jane", "jane@example.com")

        assert contacts.delete_contact(contact.id) is True
        assert contacts.get_contact(contact.id) is None

    def test_delete_unknown_returns_false(self, contacts):
        assert contacts.delete_contact("contact_0_missing") is False
