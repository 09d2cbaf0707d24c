"""IMAP protocol implementation.

- IMAPConnection: Connection lifecycle (single in-flight connect, timeouts)
- IMAPProtocol: Low-level IMAP commands (select, search, fetch, store, expunge)
"""

from .connection import ConnectionState, IMAPConnection
from .protocol import FetchedMessage, IMAPProtocol

__all__ = [
    "ConnectionState",
    "FetchedMessage",
    "IMAPConnection",
    "IMAPProtocol",
]
