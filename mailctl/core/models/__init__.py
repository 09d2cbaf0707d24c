"""Domain models for messages, contacts and operation results."""

from .contact import Contact
from .email import (
    Attachment,
    BatchDeleteResult,
    BulkEmailResult,
    BulkSendItem,
    BulkSendResult,
    DraftResult,
    EmailFilter,
    EmailMessage,
    EmailStatistics,
    FailedItem,
    OutgoingEmail,
    ScheduledEmailResult,
    SearchResult,
    SendEmailResult,
)

__all__ = [
    "Attachment",
    "BatchDeleteResult",
    "BulkEmailResult",
    "BulkSendItem",
    "BulkSendResult",
    "Contact",
    "DraftResult",
    "EmailFilter",
    "EmailMessage",
    "EmailStatistics",
    "FailedItem",
    "OutgoingEmail",
    "ScheduledEmailResult",
    "SearchResult",
    "SendEmailResult",
]
