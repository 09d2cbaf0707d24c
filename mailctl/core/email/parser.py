"""Email parsing utilities for turning fetched IMAP data into EmailMessage records"""

import email
from datetime import datetime
from email.header import decode_header
from email.message import Message
from email.policy import compat32
from email.utils import getaddresses, parsedate_to_datetime
from typing import List, Optional, Tuple

from mailctl.core.models import Attachment, EmailMessage
from mailctl.utils.logging import get_logger

from .constants import LIST_MODE_BODY_PLACEHOLDER
from .imap.protocol import FetchedMessage

logger = get_logger(__name__)


def decode_email_header(header_value) -> str:
    """Decode an RFC 2047 encoded header into text."""
    if not header_value:
        return ""

    parts = []
    for decoded, encoding in decode_header(str(header_value)):
        if isinstance(decoded, bytes):
            try:
                parts.append(decoded.decode(encoding or "utf-8", errors="replace"))
            except LookupError:
                parts.append(decoded.decode("utf-8", errors="replace"))
        else:
            parts.append(decoded)

    return "".join(parts).strip()


def parse_addresses(header_value) -> List[str]:
    """Extract bare addresses from an address header, brackets stripped."""
    if not header_value:
        return []

    addresses = []
    for _, address in getaddresses([decode_email_header(header_value)]):
        address = address.strip().strip("<>").strip()
        if address:
            addresses.append(address)
    return addresses


def parse_email_date(date_str) -> datetime:
    """Parse an RFC 2822 date; absent or unparsable dates become now."""
    if not date_str:
        return datetime.now()

    try:
        return parsedate_to_datetime(str(date_str))
    except (TypeError, ValueError, IndexError):
        logger.debug(f"Unparsable Date header: {date_str!r}")
        return datetime.now()


def normalize_flags(flags: List[str]) -> List[str]:
    """``\\Seen`` -> ``seen``; order kept, duplicates dropped."""
    normalized = []
    for flag in flags:
        name = flag.lstrip("\\").lower()
        if name and name not in normalized:
            normalized.append(name)
    return normalized


def _decode_part(part: Message) -> str:
    payload = part.get_payload(decode=True)
    if payload is None:
        return ""
    charset = part.get_content_charset() or "utf-8"
    try:
        return payload.decode(charset, errors="replace")
    except LookupError:
        return payload.decode("utf-8", errors="replace")


def _is_attachment(part: Message) -> bool:
    disposition = str(part.get("Content-Disposition", "")).lower()
    return "attachment" in disposition or (
        part.get_filename() is not None and not part.get_content_maintype() == "text"
    )


def extract_bodies(msg: Message) -> Tuple[str, Optional[str]]:
    """Return ``(text, html)`` for a message.

    Text is the first inline text/plain part. Without one it falls back to
    the html part, then to any other textual part.
    """
    plain = None
    html = None
    fallback = None

    for part in msg.walk() if msg.is_multipart() else [msg]:
        if part.is_multipart() or _is_attachment(part):
            continue

        content_type = part.get_content_type()
        if content_type == "text/plain" and plain is None:
            plain = _decode_part(part)
        elif content_type == "text/html" and html is None:
            html = _decode_part(part)
        elif part.get_content_maintype() == "text" and fallback is None:
            fallback = _decode_part(part)

    if plain is not None:
        return plain, html
    if html is not None:
        return html, html
    return fallback or "", None


def extract_attachments(msg: Message) -> List[Attachment]:
    """Collect attachment parts with their decoded filename and content."""
    attachments = []

    for part in msg.walk():
        if part.is_multipart() or not _is_attachment(part):
            continue

        filename = decode_email_header(part.get_filename()) or "attachment"
        content = part.get_payload(decode=True) or b""
        cid = part.get("Content-ID")

        attachments.append(
            Attachment(
                filename=filename,
                content=content,
                content_type=part.get_content_type(),
                cid=cid.strip("<>") if cid else None,
            )
        )

    return attachments


class EmailParser:
    """Builds EmailMessage records from FetchedMessage data."""

    def parse(self, fetched: FetchedMessage, full_body: bool = False) -> EmailMessage:
        """Parse one fetched message.

        Args:
            fetched: Raw sections and flags from the FETCH response
            full_body: True when the whole RFC 822 message was fetched

        Without ``full_body`` only headers are available and the body is
        a fixed placeholder.
        """
        raw = fetched.sections.get("FULL") or fetched.sections.get("HEADER") or b""
        msg = email.message_from_bytes(raw, policy=compat32)

        senders = parse_addresses(msg.get("From"))

        message = EmailMessage(
            id=str(fetched.uid),
            sender=senders[0] if senders else "",
            to=parse_addresses(msg.get("To")),
            cc=parse_addresses(msg.get("Cc")),
            bcc=parse_addresses(msg.get("Bcc")),
            subject=decode_email_header(msg.get("Subject")),
            date=parse_email_date(msg.get("Date")),
            flags=normalize_flags(fetched.flags),
            priority=msg.get("X-Priority"),
        )

        if full_body and "FULL" in fetched.sections:
            message.body, message.html = extract_bodies(msg)
            message.attachments = extract_attachments(msg)
        elif full_body and "TEXT" in fetched.sections:
            message.body = fetched.sections["TEXT"].decode("utf-8", errors="replace")
        else:
            message.body = LIST_MODE_BODY_PLACEHOLDER

        return message
