"""Email domain models"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union


@dataclass
class Attachment:
    """A file attached to an outgoing or fetched message.

    Outgoing attachments carry either ``content`` or a ``path`` to read
    from; ``cid`` marks an inline part referenced from the HTML body.
    """

    filename: str
    content: Optional[Union[bytes, str]] = None
    content_type: Optional[str] = None
    path: Optional[Union[str, Path]] = None
    cid: Optional[str] = None

    def __post_init__(self):
        if not self.filename or not self.filename.strip():
            if self.path:
                self.filename = Path(self.path).name
            else:
                raise ValueError("Attachment filename cannot be empty")

        if self.content is None and self.path is None:
            raise ValueError(f"Attachment {self.filename} needs content or a path")

    @property
    def size(self) -> Optional[int]:
        if self.content is None:
            return None
        if isinstance(self.content, str):
            return len(self.content.encode("utf-8"))
        return len(self.content)


@dataclass
class EmailMessage:
    """One email as retrieved from the mailbox.

    ``id`` is the mailbox UID: unique within one mailbox only, and not
    stable across UIDVALIDITY resets.
    """

    id: str
    sender: str
    to: List[str] = field(default_factory=list)
    cc: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)
    subject: str = ""
    body: str = ""
    date: datetime = field(default_factory=datetime.now)
    flags: List[str] = field(default_factory=list)
    html: Optional[str] = None
    attachments: List[Attachment] = field(default_factory=list)
    priority: Optional[str] = None

    @property
    def is_read(self) -> bool:
        return "seen" in self.flags

    @property
    def is_flagged(self) -> bool:
        return "flagged" in self.flags


@dataclass
class EmailFilter:
    """Search criteria; unset fields do not restrict the search."""

    from_: Optional[str] = None
    to: Optional[str] = None
    subject: Optional[str] = None
    since: Optional[datetime] = None
    before: Optional[datetime] = None
    seen: Optional[bool] = None
    flagged: Optional[bool] = None

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.from_,
                self.to,
                self.subject,
                self.since,
                self.before,
                self.seen,
                self.flagged,
            )
        )


@dataclass
class OutgoingEmail:
    """One item of a heterogeneous bulk send."""

    to: Union[str, List[str]]
    subject: str
    body: str
    html: Optional[str] = None
    attachments: List[Attachment] = field(default_factory=list)


## Operation Results


@dataclass
class SendEmailResult:
    message_id: str
    response: str


@dataclass
class FailedItem:
    id: str
    error: str


@dataclass
class BatchDeleteResult:
    """Every requested id lands in exactly one of the two lists."""

    success: List[str] = field(default_factory=list)
    failed: List[FailedItem] = field(default_factory=list)

    def is_resolved(self, email_id: str) -> bool:
        return email_id in self.success or any(f.id == email_id for f in self.failed)


@dataclass
class SearchResult:
    emails: List[EmailMessage]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return max(1, math.ceil(self.total / self.limit))


@dataclass
class EmailStatistics:
    total: int = 0
    unread: int = 0
    flagged: int = 0
    recent: int = 0


@dataclass
class BulkSendItem:
    recipient: str
    success: bool
    result: Optional[SendEmailResult] = None
    error: Optional[str] = None


@dataclass
class BulkSendResult:
    sent: int = 0
    failed: int = 0
    results: List[BulkSendItem] = field(default_factory=list)


@dataclass
class BulkEmailResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class DraftResult:
    """A draft that has been validated but not stored anywhere."""

    draft_id: str
    durable: bool = False


@dataclass
class ScheduledEmailResult:
    """A schedule request that has been validated but not queued anywhere."""

    scheduled_id: str
    to: Union[str, List[str]]
    subject: str
    scheduled_for: datetime
    durable: bool = False
