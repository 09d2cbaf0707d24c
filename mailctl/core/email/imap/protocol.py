"""IMAP protocol operations - low-level IMAP command interface."""

import asyncio
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from mailctl.utils.errors import IMAPError, MailctlError, NetworkTimeoutError
from mailctl.utils.logging import get_logger

from ..constants import IMAPFolders, IMAPResponse
from .connection import IMAPConnection, _response_text

logger = get_logger(__name__)

_FETCH_START = re.compile(rb"^\*?\s*\d+\s+FETCH\s*\(", re.IGNORECASE)
_UID = re.compile(rb"UID\s+(\d+)", re.IGNORECASE)
_FLAGS = re.compile(rb"FLAGS\s+\(([^)]*)\)", re.IGNORECASE)
_SECTION = re.compile(rb"BODY\[([^\]]*)\](?:<\d+>)?\s*\{\d+\}\s*$", re.IGNORECASE)


@dataclass
class FetchedMessage:
    """Raw pieces of one FETCH response, keyed by body section.

    Sections are ``HEADER`` (any header fetch), ``TEXT`` and ``FULL``
    (the whole RFC822 message).
    """

    uid: int
    flags: List[str] = field(default_factory=list)
    sections: Dict[str, bytes] = field(default_factory=dict)


def _section_key(section: bytes) -> str:
    name = section.decode("ascii", errors="ignore").strip().upper()
    if not name:
        return "FULL"
    if name.startswith("HEADER"):
        return "HEADER"
    return name


def parse_fetch_response(lines: Sequence) -> List[FetchedMessage]:
    """Group aioimaplib FETCH response lines into per-message records.

    Literal data arrives as ``bytearray`` directly after the line that
    announces it; everything else is plain ``bytes``.
    """
    messages: List[FetchedMessage] = []
    meta = b""
    pending_section: Optional[str] = None
    sections: Dict[str, bytes] = {}

    def flush():
        if not meta:
            return
        uid_match = _UID.search(meta)
        if uid_match is None:
            logger.debug("Skipping FETCH response without UID")
            return
        flags_match = _FLAGS.search(meta)
        flags = (
            flags_match.group(1).decode("ascii", errors="ignore").split()
            if flags_match
            else []
        )
        messages.append(
            FetchedMessage(uid=int(uid_match.group(1)), flags=flags, sections=sections)
        )

    for line in lines:
        if isinstance(line, bytearray):
            if pending_section is not None:
                sections[pending_section] = bytes(line)
                pending_section = None
            continue

        if not isinstance(line, bytes):
            line = str(line).encode("utf-8", errors="replace")

        if _FETCH_START.match(line):
            flush()
            meta, sections, pending_section = b"", {}, None

        meta += b" " + line
        section_match = _SECTION.search(line)
        if section_match:
            pending_section = _section_key(section_match.group(1))

    flush()
    return messages


class IMAPProtocol:
    """Low-level IMAP protocol operations & orchestration."""

    def __init__(self, connection: IMAPConnection):
        """Initialise IMAP protocol handler.

        Args:
            connection: IMAPConnection instance for connection management
        """
        self.connection = connection
        self._selected_folder: Optional[str] = None
        self._selected_client = None
        # aioimaplib tracks pending commands by name, so one at a time
        self._command_lock = asyncio.Lock()

    async def _run(self, operation: str, coro, **details):
        """Await one IMAP command under the operation timeout and check it.

        Commands are serialised: a second caller waits for the lock before
        its command is sent, and the timeout starts once it is sent.

        Raises:
            NetworkTimeoutError: If the command exceeds the operation timeout
            IMAPError: If the command fails or the server answers NO/BAD
        """
        timeout = self.connection.operation_timeout

        try:
            async with self._command_lock:
                response = await asyncio.wait_for(coro, timeout=timeout)

        except asyncio.TimeoutError as e:
            logger.error(f"IMAP {operation} timed out after {timeout:.0f}s")
            raise NetworkTimeoutError(
                f"IMAP {operation} timed out",
                details={"operation": operation, **details},
            ) from e

        except MailctlError:
            raise

        except Exception as e:
            raise IMAPError(
                f"IMAP {operation} error: {str(e)}",
                details={"operation": operation, **details},
            ) from e

        if response.result != IMAPResponse.OK:
            raise IMAPError(
                f"IMAP {operation} failed: {_response_text(response)}",
                details={
                    "operation": operation,
                    "response": response.result,
                    **details,
                },
            )

        return response

    async def select_folder(self, folder: str = IMAPFolders.INBOX) -> None:
        """Select an IMAP folder for operations.

        The selection is remembered per connection, so reconnecting
        selects the folder again.

        Raises:
            IMAPError: If folder selection fails
        """
        client = await self.connection.get_client()

        if self._selected_folder == folder and self._selected_client is client:
            logger.debug(f"Folder {folder} already selected, skipping")
            return

        await self._run("select", client.select(folder), folder=folder)

        self._selected_folder = folder
        self._selected_client = client
        logger.debug(f"Selected IMAP folder: {folder}")

    async def search_uids(self, *criteria: str) -> List[int]:
        """Search the selected folder for message UIDs matching criteria.

        Args:
            criteria: IMAP search keys (e.g. "ALL", "UNSEEN", "FROM", '"bob"')

        Returns:
            List of matching UIDs (sorted ascending)
        """
        client = await self.connection.get_client()
        criteria = criteria or ("ALL",)

        # Only announce a charset when the criteria actually need one
        charset = None if all(c.isascii() for c in criteria) else "utf-8"

        response = await self._run(
            "search",
            client.uid_search(*criteria, charset=charset),
            criteria=" ".join(criteria),
        )

        uids = set()
        for line in response.lines[:-1]:
            if isinstance(line, bytearray):
                continue
            if isinstance(line, str):
                line = line.encode("ascii", errors="ignore")
            uids.update(int(token) for token in line.split() if token.isdigit())

        logger.debug(
            "UID search completed",
            extra={"criteria": " ".join(criteria), "count": len(uids)},
        )
        return sorted(uids)

    async def fetch(self, uids: Sequence[int], items: str) -> List[FetchedMessage]:
        """Fetch the given data items for a set of UIDs.

        Args:
            uids: UIDs to fetch
            items: FETCH item list, e.g. "(UID FLAGS BODY.PEEK[])"

        Returns:
            One record per message the server returned, in server order.
            Messages the server does not return are simply absent.
        """
        if not uids:
            return []

        client = await self.connection.get_client()
        uid_set = ",".join(str(uid) for uid in uids)

        response = await self._run(
            "fetch", client.uid("fetch", uid_set, items), uids=uid_set
        )
        messages = parse_fetch_response(response.lines)

        if len(messages) < len(uids):
            missing = set(uids) - {m.uid for m in messages}
            logger.debug(
                "Some messages were not returned by FETCH",
                extra={"missing_uids": sorted(missing)},
            )

        return messages

    async def set_flags(self, uid: str, flags: List[str], add: bool = True) -> None:
        """Set or remove flags on a message.

        Args:
            uid: Message UID
            flags: List of IMAP flags (e.g., ["\\Seen", "\\Deleted"])
            add: True to add flags, False to remove

        Raises:
            IMAPError: If the server rejects the STORE
        """
        client = await self.connection.get_client()
        operation = "+FLAGS" if add else "-FLAGS"
        flags_str = "(" + " ".join(flags) + ")"

        await self._run(
            "store",
            client.uid("store", str(uid), operation, flags_str),
            uid=str(uid),
        )

        logger.debug(
            f"Flags {'added' if add else 'removed'}",
            extra={"uid": uid, "flags": flags},
        )

    async def expunge(self) -> None:
        """Permanently remove messages flagged \\Deleted from the selected folder."""
        client = await self.connection.get_client()
        await self._run("expunge", client.expunge())
        logger.debug("Expunged deleted messages")
