"""In-memory contact store."""

from typing import Iterator, List, Optional

from mailctl.core.models import Contact


class ContactStore:
    """Ordered list of contacts held for the lifetime of the process.

    Insertion order is kept; every lookup is a linear scan.
    """

    def __init__(self, contacts: Optional[List[Contact]] = None):
        self._contacts: List[Contact] = list(contacts or [])

    def __iter__(self) -> Iterator[Contact]:
        return iter(list(self._contacts))

    def __len__(self) -> int:
        return len(self._contacts)

    def add(self, contact: Contact) -> None:
        self._contacts.append(contact)

    def find(self, contact_id: str) -> Optional[Contact]:
        for contact in self._contacts:
            if contact.id == contact_id:
                return contact
        return None

    def remove(self, contact_id: str) -> bool:
        for index, contact in enumerate(self._contacts):
            if contact.id == contact_id:
                del self._contacts[index]
                return True
        return False

    def clear(self) -> None:
        self._contacts.clear()
