"""Shared constants for email protocols.

Centralised configuration for:
- IMAP response codes
- Flags, folder names and fetch items
- Timeouts that are not user-configurable
"""

from enum import Enum


class IMAPResponse(str, Enum):
    "IMAP server response codes."

    OK = "OK"
    NO = "NO"
    BAD = "BAD"


class IMAPFlags:
    """Standard IMAP flags."""

    SEEN = "\\Seen"
    FLAGGED = "\\Flagged"
    DELETED = "\\Deleted"
    ANSWERED = "\\Answered"
    DRAFT = "\\Draft"
    RECENT = "\\Recent"


class IMAPFolders:
    """Standard IMAP folder names."""

    INBOX = "INBOX"


class FetchItems:
    """FETCH data items used by the service layer."""

    HEADER_FIELDS = "HEADER.FIELDS (FROM TO CC BCC SUBJECT DATE)"

    @staticmethod
    def headers(peek: bool = True) -> str:
        body = "BODY.PEEK" if peek else "BODY"
        return f"(UID FLAGS {body}[{FetchItems.HEADER_FIELDS}])"

    @staticmethod
    def full_message(peek: bool = True) -> str:
        body = "BODY.PEEK" if peek else "BODY"
        return f"(UID FLAGS {body}[])"


class Timeouts:
    """Fixed timeouts (in seconds); connect/operation timeouts come from config."""

    IMAP_LOGOUT = 5.0
    SMTP_QUIT = 5.0


LIST_MODE_BODY_PLACEHOLDER = "(Preview not available in list mode)"
