"""Address book: in-memory store and the contact service."""

from .service import ContactService
from .store import ContactStore

__all__ = ["ContactService", "ContactStore"]
