"""SMTP client for composing and sending emails via an SMTP server"""

import mimetypes
import time
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email import encoders
from email.utils import formatdate, make_msgid
from pathlib import Path
from typing import List, Optional, Tuple

from mailctl.core.models import Attachment, SendEmailResult
from mailctl.utils.errors import FileSystemError
from mailctl.utils.logging import get_logger

from .connection import SMTPConnection

logger = get_logger(__name__)


def _load_attachment(attachment: Attachment) -> Tuple[bytes, str]:
    """Return the attachment bytes and its MIME type."""
    content = attachment.content
    if content is None:
        try:
            content = Path(attachment.path).expanduser().read_bytes()
        except OSError as e:
            raise FileSystemError(
                f"Cannot read attachment: {attachment.path}",
                details={"path": str(attachment.path), "error": str(e)},
            ) from e
    elif isinstance(content, str):
        content = content.encode("utf-8")

    content_type = (
        attachment.content_type
        or mimetypes.guess_type(attachment.filename)[0]
        or "application/octet-stream"
    )
    return content, content_type


def _attachment_part(attachment: Attachment) -> MIMEBase:
    content, content_type = _load_attachment(attachment)
    maintype, _, subtype = content_type.partition("/")

    part = MIMEBase(maintype, subtype or "octet-stream")
    part.set_payload(content)
    encoders.encode_base64(part)

    if attachment.cid:
        part.add_header("Content-ID", f"<{attachment.cid}>")
        part.add_header("Content-Disposition", "inline", filename=attachment.filename)
    else:
        part.add_header(
            "Content-Disposition", "attachment", filename=attachment.filename
        )
    return part


def build_message(
    sender: str,
    to: List[str],
    subject: str,
    body: str,
    html: Optional[str] = None,
    attachments: Optional[List[Attachment]] = None,
) -> MIMEMultipart:
    """Compose a MIME message.

    Text and html bodies form a multipart/alternative; attachments wrap
    that in a multipart/mixed.
    """
    alternative = MIMEMultipart("alternative")
    alternative.attach(MIMEText(body or "", "plain", "utf-8"))
    if html:
        alternative.attach(MIMEText(html, "html", "utf-8"))

    if attachments:
        msg = MIMEMultipart("mixed")
        msg.attach(alternative)
        for attachment in attachments:
            msg.attach(_attachment_part(attachment))
    else:
        msg = alternative

    domain = sender.rpartition("@")[2] or None
    msg["From"] = sender
    msg["To"] = ", ".join(to)
    msg["Subject"] = subject
    msg["Date"] = formatdate(localtime=True)
    msg["Message-ID"] = make_msgid(domain=domain)

    return msg


class SMTPClient:
    """Asynchronous SMTP client for email operations."""

    def __init__(self, connection: SMTPConnection, sender: str):
        """Initialise SMTP client.

        Args:
            connection: SMTPConnection owning the transport
            sender: Address used in the From header
        """
        self.connection = connection
        self.sender = sender

    async def send_email(
        self,
        to: List[str],
        subject: str,
        body: str,
        html: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None,
    ) -> SendEmailResult:
        """Compose and send one message; inputs are assumed validated.

        No retry: transport failures propagate to the caller.
        """
        send_start = time.time()
        msg = build_message(self.sender, to, subject, body, html, attachments)

        logger.info(
            "Sending email",
            extra={
                "recipients": len(to),
                "subject": subject[:50],
                "attachments": len(attachments or []),
            },
        )

        response = await self.connection.send(msg, recipients=to)

        logger.info(
            "Email sent successfully",
            extra={
                "message_id": msg["Message-ID"],
                "duration_seconds": round(time.time() - send_start, 2),
            },
        )
        return SendEmailResult(message_id=msg["Message-ID"], response=response)
