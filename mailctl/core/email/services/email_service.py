"""Email service - the verb surface over one SMTP transport and one IMAP mailbox."""

import asyncio
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Union

from mailctl.core.email.constants import FetchItems, IMAPFlags, IMAPFolders
from mailctl.core.email.imap import IMAPConnection, IMAPProtocol
from mailctl.core.email.parser import EmailParser
from mailctl.core.email.smtp import SMTPClient, SMTPConnection
from mailctl.core.models import (
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
from mailctl.core.validation import EmailValidator
from mailctl.utils.config import EmailConfig
from mailctl.utils.errors import (
    AuthenticationError,
    DeleteEmailError,
    EmailNotFoundError,
    FileSystemError,
    GetEmailError,
    InvalidConfigError,
    InvalidCountError,
    InvalidLimitError,
    InvalidPageError,
    InvalidScheduleDateError,
    MarkEmailError,
    MissingBodyError,
    MissingEmailIdError,
    MissingReplyBodyError,
    MissingSubjectError,
    NetworkTimeoutError,
    NoAttachmentsError,
    NoEmailsError,
    NoRecipientsError,
    ReadEmailsError,
    SearchError,
    SendEmailError,
    StatsError,
    ValidationError,
    wrap_error,
)
from mailctl.utils.ids import generate_id
from mailctl.utils.logging import get_logger, log_event

logger = get_logger(__name__)

Recipients = Union[str, Sequence[str]]

MAX_READ_COUNT = 1000
MAX_PAGE_LIMIT = 100

# Errors the caller can act on directly; operations never wrap these
PASSTHROUGH_ERRORS = (
    ValidationError,
    NetworkTimeoutError,
    AuthenticationError,
    FileSystemError,
    EmailNotFoundError,
)

_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def imap_date(value: datetime) -> str:
    """Format a date for SEARCH (``01-Mar-2024``), independent of locale."""
    return f"{value.day:02d}-{_MONTHS[value.month - 1]}-{value.year}"


def _is_int(value) -> bool:
    # bool is an int subclass; True must not read as a count of 1
    return isinstance(value, int) and not isinstance(value, bool)


def imap_quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_search_criteria(search_filter: Optional[EmailFilter]) -> List[str]:
    """Translate a filter into conjunctive SEARCH keys; empty filter -> ALL."""
    if search_filter is None or search_filter.is_empty():
        return ["ALL"]

    criteria: List[str] = []
    if search_filter.from_:
        criteria += ["FROM", imap_quote(search_filter.from_)]
    if search_filter.to:
        criteria += ["TO", imap_quote(search_filter.to)]
    if search_filter.subject:
        criteria += ["SUBJECT", imap_quote(search_filter.subject)]
    if search_filter.since:
        criteria += ["SINCE", imap_date(search_filter.since)]
    if search_filter.before:
        criteria += ["BEFORE", imap_date(search_filter.before)]
    if search_filter.seen is not None:
        criteria.append("SEEN" if search_filter.seen else "UNSEEN")
    if search_filter.flagged is not None:
        criteria.append("FLAGGED" if search_filter.flagged else "UNFLAGGED")

    return criteria or ["ALL"]


class EmailService:
    """Send, read and manage email for one account.

    The IMAP connection and SMTP transport are created lazily and owned
    by this instance until ``close``.
    """

    def __init__(
        self,
        config: EmailConfig,
        imap_connection: Optional[IMAPConnection] = None,
        smtp_connection: Optional[SMTPConnection] = None,
    ):
        """Initialise the service.

        Args:
            config: Complete email configuration
            imap_connection: Overrides the IMAP connection built from config
            smtp_connection: Overrides the SMTP connection built from config

        Raises:
            InvalidConfigError: If SMTP or IMAP host/user/password are empty
        """
        self._validate_config(config)
        self.config = config

        self.imap_connection = imap_connection or IMAPConnection(
            config.imap,
            connect_timeout=config.connect_timeout,
            operation_timeout=config.operation_timeout,
        )
        self.smtp_connection = smtp_connection or SMTPConnection(
            config.smtp,
            connect_timeout=config.connect_timeout,
            operation_timeout=config.operation_timeout,
        )

        self.protocol = IMAPProtocol(self.imap_connection)
        self.smtp_client = SMTPClient(self.smtp_connection, sender=config.smtp.user)
        self.parser = EmailParser()
        self.validator = EmailValidator()

    @staticmethod
    def _validate_config(config: EmailConfig) -> None:
        smtp, imap = config.smtp, config.imap

        if not (smtp.host and smtp.user and smtp.password):
            raise InvalidConfigError(
                "Invalid SMTP configuration",
                details={"host": smtp.host, "port": smtp.port, "user": smtp.user},
                code="INVALID_SMTP_CONFIG",
            )
        if not (imap.host and imap.user and imap.password):
            raise InvalidConfigError(
                "Invalid IMAP configuration",
                details={"host": imap.host, "port": imap.port, "user": imap.user},
                code="INVALID_IMAP_CONFIG",
            )

    @staticmethod
    def _require_id(email_id) -> str:
        if email_id is None or not str(email_id).strip():
            raise MissingEmailIdError()
        return str(email_id).strip()

    async def _open_inbox(self) -> None:
        await self.protocol.select_folder(IMAPFolders.INBOX)

    @property
    def _peek(self) -> bool:
        return not self.config.imap.mark_seen

    ## Sending

    def _validate_message(
        self, to: Recipients, subject: str, body: str, html: Optional[str]
    ) -> List[str]:
        recipients = self.validator.validate_recipients(to)

        if not subject or not subject.strip():
            raise MissingSubjectError()
        if not (body and body.strip()) and not (html and html.strip()):
            raise MissingBodyError()

        return recipients

    async def verify_smtp(self) -> None:
        """Contact the SMTP server now instead of on first send."""
        await self.smtp_connection.verify()

    async def send_email(
        self, to: Recipients, subject: str, body: str, html: Optional[str] = None
    ) -> SendEmailResult:
        """Send a simple email.

        Raises:
            InvalidEmailAddressError: If any recipient is malformed
            MissingSubjectError: If the subject is blank
            MissingBodyError: If both text and html bodies are blank
            SendEmailError: If the transport fails (not retried)
        """
        recipients = self._validate_message(to, subject, body, html)

        try:
            result = await self.smtp_client.send_email(recipients, subject, body, html)

        except PASSTHROUGH_ERRORS:
            raise

        except Exception as e:
            logger.error(f"Failed to send email: {e}")
            raise wrap_error(
                SendEmailError, "Failed to send email", e, recipients=len(recipients)
            ) from e

        log_event(
            "email_sent",
            "Email sent",
            message_id=result.message_id,
            recipients=len(recipients),
        )
        return result

    async def send_email_with_attachments(
        self,
        to: Recipients,
        subject: str,
        body: str,
        attachments: List[Attachment],
        html: Optional[str] = None,
    ) -> SendEmailResult:
        """Send an email carrying at least one attachment.

        Raises:
            NoAttachmentsError: If ``attachments`` is empty
            FileSystemError: If a path attachment cannot be read
            SendEmailError: If the transport fails (not retried)
        """
        recipients = self._validate_message(to, subject, body, html)

        if not attachments:
            raise NoAttachmentsError()

        try:
            result = await self.smtp_client.send_email(
                recipients, subject, body, html, attachments
            )

        except PASSTHROUGH_ERRORS:
            raise

        except Exception as e:
            logger.error(f"Failed to send email with attachments: {e}")
            error = wrap_error(
                SendEmailError,
                "Failed to send email with attachments",
                e,
                recipients=len(recipients),
            )
            error.code = "SEND_WITH_ATTACHMENTS_FAILED"
            raise error from e

        log_event(
            "email_sent",
            "Email with attachments sent",
            message_id=result.message_id,
            recipients=len(recipients),
            attachments=len(attachments),
        )
        return result

    ## Reading

    async def read_recent_emails(
        self, count: int = 10, full_body: bool = False
    ) -> List[EmailMessage]:
        """Read the most recent ``count`` messages from the inbox, newest first.

        "Recent" follows mailbox order, not the Date header. Messages are
        peeked unless IMAP_MARK_SEEN is enabled.

        Raises:
            InvalidCountError: If count is outside 1..1000
            ReadEmailsError: If the mailbox cannot be read
        """
        if not _is_int(count) or not 1 <= count <= MAX_READ_COUNT:
            raise InvalidCountError(details={"count": count})

        try:
            await self._open_inbox()
            uids = await self.protocol.search_uids("ALL")
            recent = list(reversed(uids[-count:]))

            items = (
                FetchItems.full_message(peek=self._peek)
                if full_body
                else FetchItems.headers(peek=self._peek)
            )
            fetched = await self.protocol.fetch(recent, items)

        except PASSTHROUGH_ERRORS:
            raise

        except Exception as e:
            raise wrap_error(ReadEmailsError, "Failed to read emails", e) from e

        by_uid = {item.uid: item for item in fetched}
        emails = [
            self.parser.parse(by_uid[uid], full_body=full_body)
            for uid in recent
            if uid in by_uid
        ]

        logger.info(f"Read {len(emails)} emails", extra={"requested": count})
        return emails

    async def get_email_by_id(self, email_id: str) -> Optional[EmailMessage]:
        """Fetch one message (full body) by UID.

        Returns:
            The message, or None when no message has that UID

        Raises:
            MissingEmailIdError: If the id is blank
            GetEmailError: If the mailbox cannot be read
        """
        email_id = self._require_id(email_id)

        if not email_id.isdigit():
            logger.debug(f"Email ID {email_id!r} is not a UID")
            return None

        try:
            await self._open_inbox()
            fetched = await self.protocol.fetch(
                [int(email_id)], FetchItems.full_message(peek=True)
            )

        except PASSTHROUGH_ERRORS:
            raise

        except Exception as e:
            raise wrap_error(
                GetEmailError, f"Failed to get email with ID: {email_id}", e
            ) from e

        for item in fetched:
            if item.uid == int(email_id):
                return self.parser.parse(item, full_body=True)

        logger.debug(f"No email with ID {email_id}")
        return None

    ## Mailbox changes

    async def delete_email(self, email_id: str) -> bool:
        """Flag one message deleted and expunge.

        Raises:
            MissingEmailIdError: If the id is blank
            DeleteEmailError: If the server rejects the change
        """
        email_id = self._require_id(email_id)

        try:
            await self._open_inbox()
            await self.protocol.set_flags(email_id, [IMAPFlags.DELETED])
            await self.protocol.expunge()

        except PASSTHROUGH_ERRORS:
            raise

        except Exception as e:
            raise wrap_error(
                DeleteEmailError, f"Failed to delete email with ID: {email_id}", e
            ) from e

        log_event("email_deleted", "Email deleted", email_id=email_id)
        return True

    async def delete_emails(self, email_ids: Sequence[str]) -> BatchDeleteResult:
        """Delete several messages with a single expunge.

        Every id ends up in exactly one of ``success`` or ``failed``. One
        id failing does not stop the others; a connection failure fails
        every id not yet resolved. If the final expunge fails, the ids
        that were flagged move to ``failed`` as well.
        """
        result = BatchDeleteResult()
        if not email_ids:
            return result

        pending: List[str] = []
        for raw_id in email_ids:
            if raw_id is None or not str(raw_id).strip():
                result.failed.append(
                    FailedItem(id=str(raw_id or ""), error="Email ID is required")
                )
            else:
                pending.append(str(raw_id).strip())

        try:
            if pending:
                await self._open_inbox()

            for email_id in pending:
                try:
                    await self.protocol.set_flags(email_id, [IMAPFlags.DELETED])
                    result.success.append(email_id)
                except Exception as e:
                    logger.warning(f"Failed to flag email {email_id} deleted: {e}")
                    result.failed.append(FailedItem(id=email_id, error=str(e)))

            if result.success:
                try:
                    await self.protocol.expunge()
                except Exception as e:
                    logger.warning(f"Expunge failed after batch delete: {e}")
                    result.failed.extend(
                        FailedItem(id=email_id, error=str(e))
                        for email_id in result.success
                    )
                    result.success = []

        except Exception as e:
            logger.warning(f"Batch delete aborted: {e}")
            error_text = str(e) or "Connection error"
            for email_id in pending:
                if not result.is_resolved(email_id):
                    result.failed.append(FailedItem(id=email_id, error=error_text))

        log_event(
            "emails_deleted",
            "Batch delete finished",
            deleted=len(result.success),
            failed=len(result.failed),
        )
        return result

    async def mark_email_as_read(self, email_id: str, read: bool = True) -> bool:
        """Set (or clear) the seen flag; repeating the same call is harmless.

        Raises:
            MissingEmailIdError: If the id is blank
            MarkEmailError: If the server rejects the change
        """
        email_id = self._require_id(email_id)

        try:
            await self._open_inbox()
            await self.protocol.set_flags(email_id, [IMAPFlags.SEEN], add=read)

        except PASSTHROUGH_ERRORS:
            raise

        except Exception as e:
            raise wrap_error(
                MarkEmailError,
                f"Failed to mark email as {'read' if read else 'unread'}",
                e,
                email_id=email_id,
            ) from e

        logger.info(f"Marked email {email_id} as {'read' if read else 'unread'}")
        return True

    ## Search and statistics

    async def search_emails(
        self,
        search_filter: Optional[EmailFilter] = None,
        page: int = 1,
        limit: int = 10,
    ) -> SearchResult:
        """Search the inbox and return one page of header-only results.

        Pages are cut from the full match list in mailbox order; ``total``
        counts every match.

        Raises:
            InvalidPageError: If page < 1
            InvalidLimitError: If limit is outside 1..100
            SearchError: If the search fails
        """
        if not _is_int(page) or page < 1:
            raise InvalidPageError(details={"page": page})
        if not _is_int(limit) or not 1 <= limit <= MAX_PAGE_LIMIT:
            raise InvalidLimitError(details={"limit": limit})

        criteria = build_search_criteria(search_filter)
        start = (page - 1) * limit

        try:
            await self._open_inbox()
            uids = await self.protocol.search_uids(*criteria)
            page_uids = uids[start : start + limit]
            fetched = await self.protocol.fetch(
                page_uids, FetchItems.headers(peek=True)
            )

        except PASSTHROUGH_ERRORS:
            raise

        except Exception as e:
            raise wrap_error(
                SearchError, "Email search failed", e, criteria=" ".join(criteria)
            ) from e

        by_uid = {item.uid: item for item in fetched}
        emails = [self.parser.parse(by_uid[uid]) for uid in page_uids if uid in by_uid]

        logger.info(
            "Search completed",
            extra={"criteria": " ".join(criteria), "total": len(uids), "page": page},
        )
        return SearchResult(emails=emails, total=len(uids), page=page, limit=limit)

    async def get_email_statistics(self) -> EmailStatistics:
        """Count all, unseen, flagged and recent messages.

        The four searches are gathered; the protocol layer sends them to the
        server one at a time.

        Raises:
            StatsError: If any of the counts fails
        """
        try:
            await self._open_inbox()
            total, unread, flagged, recent = await asyncio.gather(
                self.protocol.search_uids("ALL"),
                self.protocol.search_uids("UNSEEN"),
                self.protocol.search_uids("FLAGGED"),
                self.protocol.search_uids("RECENT"),
            )

        except PASSTHROUGH_ERRORS:
            raise

        except Exception as e:
            raise wrap_error(StatsError, "Failed to get email statistics", e) from e

        return EmailStatistics(
            total=len(total),
            unread=len(unread),
            flagged=len(flagged),
            recent=len(recent),
        )

    ## Forward and reply

    async def _require_email(self, email_id: str) -> EmailMessage:
        original = await self.get_email_by_id(email_id)
        if original is None:
            raise EmailNotFoundError(
                f"Email with ID {email_id} not found", details={"email_id": email_id}
            )
        return original

    async def forward_email(
        self, email_id: str, to: Recipients, note: Optional[str] = None
    ) -> SendEmailResult:
        """Forward a message with an optional note above the quoted original.

        Raises:
            InvalidEmailAddressError: If any recipient is malformed
            EmailNotFoundError: If no message has that id (nothing is sent)
        """
        recipients = self.validator.validate_recipients(to)
        original = await self._require_email(email_id)

        subject = f"Fwd: {original.subject}"
        body = (
            f"{note or ''}\n\n"
            "---------- Forwarded message ----------\n"
            f"From: {original.sender}\n"
            f"Date: {original.date:%Y-%m-%d %H:%M}\n"
            f"Subject: {original.subject}\n"
            f"To: {', '.join(original.to)}\n\n"
            f"{original.body}"
        )

        return await self.send_email(recipients, subject, body)

    def _reply_recipients(self, original: EmailMessage, reply_all: bool) -> List[str]:
        if not reply_all:
            return [original.sender]

        own_address = self.config.smtp.user.lower()
        seen = set()
        recipients = []

        for address in [original.sender, *original.to, *original.cc]:
            key = address.lower()
            if not address or key in seen or key == own_address:
                continue
            seen.add(key)
            recipients.append(address)

        return recipients or [original.sender]

    async def reply_to_email(
        self, email_id: str, body: str, reply_all: bool = False
    ) -> SendEmailResult:
        """Reply to a message, quoting it below the reply.

        Reply-all goes to the sender plus every To/Cc address, without
        duplicates and without this account's own address.

        Raises:
            MissingReplyBodyError: If the reply body is blank
            EmailNotFoundError: If no message has that id (nothing is sent)
        """
        if not body or not body.strip():
            raise MissingReplyBodyError()

        original = await self._require_email(email_id)

        subject = original.subject
        if not subject.lower().startswith("re:"):
            subject = f"Re: {subject}"

        full_body = (
            f"{body}\n\n"
            f"On {original.date:%Y-%m-%d %H:%M}, {original.sender} wrote:\n"
            f"{original.body}"
        )

        return await self.send_email(
            self._reply_recipients(original, reply_all), subject, full_body
        )

    ## Drafts and scheduling (not persisted)

    async def create_draft(
        self,
        to: Recipients,
        subject: str,
        body: str,
        attachments: Optional[List[Attachment]] = None,
    ) -> DraftResult:
        """Validate a draft and hand back an id; the draft is not stored."""
        recipients = self.validator.validate_recipients(to)
        draft_id = generate_id("draft")

        logger.warning(
            "Drafts are not persisted; nothing was saved",
            extra={"draft_id": draft_id},
        )
        log_event(
            "draft_created",
            "Draft created",
            draft_id=draft_id,
            recipients=len(recipients),
            subject=subject,
            attachments=len(attachments or []),
        )
        return DraftResult(draft_id=draft_id)

    async def schedule_email(
        self,
        to: Recipients,
        subject: str,
        body: str,
        schedule_date: datetime,
        attachments: Optional[List[Attachment]] = None,
    ) -> ScheduledEmailResult:
        """Validate a schedule request and hand back an id; nothing is queued.

        Raises:
            InvalidScheduleDateError: If ``schedule_date`` is not in the future
        """
        recipients = self.validator.validate_recipients(to)

        now = datetime.now(schedule_date.tzinfo)
        if schedule_date <= now:
            raise InvalidScheduleDateError(
                details={"scheduled_for": schedule_date.isoformat()}
            )

        scheduled_id = generate_id("scheduled")
        logger.warning(
            "Scheduled emails are not queued; nothing will be sent",
            extra={"scheduled_id": scheduled_id},
        )
        log_event(
            "email_scheduled",
            "Email scheduled",
            scheduled_id=scheduled_id,
            recipients=len(recipients),
            scheduled_for=schedule_date.isoformat(),
            attachments=len(attachments or []),
        )
        return ScheduledEmailResult(
            scheduled_id=scheduled_id,
            to=to,
            subject=subject,
            scheduled_for=schedule_date,
        )

    ## Bulk sending

    async def send_bulk_emails(
        self,
        recipients: Sequence[str],
        subject: str,
        body: str,
        html: Optional[str] = None,
    ) -> BulkSendResult:
        """Send the same message to each recipient separately, in order.

        A failure is recorded against its recipient and the rest still go out.
        """
        if not recipients:
            raise NoRecipientsError()

        result = BulkSendResult()

        for recipient in recipients:
            try:
                sent = await self.send_email(recipient, subject, body, html)
                result.results.append(
                    BulkSendItem(recipient=recipient, success=True, result=sent)
                )
                result.sent += 1

            except Exception as e:
                logger.warning(f"Bulk send to {recipient} failed: {e}")
                result.results.append(
                    BulkSendItem(recipient=recipient, success=False, error=str(e))
                )
                result.failed += 1

        log_event(
            "bulk_send", "Bulk send finished", sent=result.sent, failed=result.failed
        )
        return result

    async def bulk_send_emails(
        self, emails: Sequence[OutgoingEmail]
    ) -> List[BulkEmailResult]:
        """Send a list of different messages, one result per message."""
        if not emails:
            raise NoEmailsError()

        results = []

        for outgoing in emails:
            try:
                if outgoing.attachments:
                    sent = await self.send_email_with_attachments(
                        outgoing.to,
                        outgoing.subject,
                        outgoing.body,
                        outgoing.attachments,
                        outgoing.html,
                    )
                else:
                    sent = await self.send_email(
                        outgoing.to, outgoing.subject, outgoing.body, outgoing.html
                    )
                results.append(BulkEmailResult(success=True, message_id=sent.message_id))

            except Exception as e:
                logger.warning(f"Bulk item failed: {e}")
                results.append(BulkEmailResult(success=False, error=str(e)))

        return results

    ## Lifecycle

    def connection_stats(self) -> Dict[str, object]:
        imap_stats = self.imap_connection.get_stats()
        smtp_stats = self.smtp_connection.get_stats()
        return {
            "imap_state": self.imap_connection.state.value,
            "imap_connect_attempts": imap_stats.connect_attempts,
            "smtp_emails_sent": smtp_stats.emails_sent,
            "smtp_send_failures": smtp_stats.send_failures,
        }

    async def close(self) -> None:
        """Release both connections. Safe to call more than once; never raises."""
        await self.imap_connection.close()
        await self.smtp_connection.close()
        logger.debug("Email service closed", extra=self.connection_stats())
