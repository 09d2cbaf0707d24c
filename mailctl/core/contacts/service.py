"""Contact service - add, find, update and remove address book entries."""

from typing import Any, Dict, List, Optional

from mailctl.core.models import Contact
from mailctl.core.validation import EmailValidator
from mailctl.utils.errors import (
    InvalidContactFieldError,
    InvalidEmailError,
    MissingContactIdError,
    MissingNameError,
)
from mailctl.utils.ids import generate_id
from mailctl.utils.logging import get_logger

from .store import ContactStore

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("name", "email", "group", "metadata")


class ContactService:
    """CRUD over a ContactStore.

    Updates follow the same rules as creation: names are trimmed and must
    not be blank, emails must look like ``local@domain.tld`` and are
    lower-cased, and a blank group clears the group.
    """

    def __init__(self, store: ContactStore):
        self.store = store

    @staticmethod
    def _clean_name(name) -> str:
        if name is None or not str(name).strip():
            raise MissingNameError()
        return str(name).strip()

    @staticmethod
    def _clean_email(email) -> str:
        if email is None or not EmailValidator.is_valid_email(str(email).strip()):
            raise InvalidEmailError(details={"email": email})
        return str(email).strip().lower()

    @staticmethod
    def _clean_group(group) -> Optional[str]:
        if group is None or not str(group).strip():
            return None
        return str(group).strip()

    @staticmethod
    def _require_id(contact_id) -> str:
        if contact_id is None or not str(contact_id).strip():
            raise MissingContactIdError()
        return str(contact_id).strip()

    def add_contact(
        self,
        name: str,
        email: str,
        group: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Contact:
        """Create a contact.

        Raises:
            MissingNameError: If the name is blank
            InvalidEmailError: If the email is not a valid address
        """
        contact = Contact(
            id=generate_id("contact"),
            name=self._clean_name(name),
            email=self._clean_email(email),
            group=self._clean_group(group),
            metadata=dict(metadata or {}),
        )
        self.store.add(contact)

        logger.info("Contact added", extra={"contact_id": contact.id})
        return contact

    def get_all_contacts(self) -> List[Contact]:
        return list(self.store)

    def list_contacts(self, limit: Optional[int] = None) -> List[Contact]:
        """Contacts in insertion order, at most ``limit`` of them."""
        contacts = list(self.store)
        if limit is None:
            return contacts
        return contacts[: max(limit, 0)]

    def get_contacts_by_group(self, group: str) -> List[Contact]:
        """Exact match on the trimmed group name; a blank group matches nothing."""
        group = (group or "").strip()
        if not group:
            return []
        return [contact for contact in self.store if contact.group == group]

    def search_contacts(self, query: str) -> List[Contact]:
        """Case-insensitive substring match on name or email; blank matches nothing."""
        query = (query or "").strip().lower()
        if not query:
            return []
        return [
            contact
            for contact in self.store
            if query in contact.name.lower() or query in contact.email.lower()
        ]

    def get_contact(self, contact_id: str) -> Optional[Contact]:
        return self.store.find(self._require_id(contact_id))

    def update_contact_field(
        self, contact_id: str, field: str, value: Any
    ) -> Optional[Contact]:
        """Update one field; see ``update_contact_fields``."""
        return self.update_contact_fields(contact_id, {field: value})

    def update_contact_fields(
        self, contact_id: str, updates: Dict[str, Any]
    ) -> Optional[Contact]:
        """Validate and merge ``updates`` into a contact.

        All values are validated before any is applied, so a rejected
        update leaves the contact unchanged.

        Returns:
            The updated contact, or None when the id is unknown

        Raises:
            MissingContactIdError: If the id is blank
            InvalidContactFieldError: If a field other than name, email,
                group or metadata is given
            MissingNameError / InvalidEmailError: As for ``add_contact``
        """
        contact_id = self._require_id(contact_id)

        unknown = [field for field in updates if field not in UPDATABLE_FIELDS]
        if unknown:
            raise InvalidContactFieldError(
                f"Cannot update contact field(s): {', '.join(unknown)}",
                details={"fields": unknown, "allowed": list(UPDATABLE_FIELDS)},
            )

        contact = self.store.find(contact_id)
        if contact is None:
            return None

        cleaned: Dict[str, Any] = {}
        if "name" in updates:
            cleaned["name"] = self._clean_name(updates["name"])
        if "email" in updates:
            cleaned["email"] = self._clean_email(updates["email"])
        if "group" in updates:
            cleaned["group"] = self._clean_group(updates["group"])
        if "metadata" in updates:
            cleaned["metadata"] = {**contact.metadata, **(updates["metadata"] or {})}

        for field, value in cleaned.items():
            setattr(contact, field, value)

        logger.info(
            "Contact updated",
            extra={"contact_id": contact_id, "fields": list(cleaned)},
        )
        return contact

    def delete_contact(self, contact_id: str) -> bool:
        """Remove a contact; False when no contact has that id."""
        removed = self.store.remove(self._require_id(contact_id))
        if removed:
            logger.info("Contact deleted", extra={"contact_id": contact_id})
        return removed
