"""SMTP protocol implementation.

- SMTPConnection: Transport lifecycle (lazy creation, verify, close)
- SMTPClient: Message composition and sending
"""

from .client import SMTPClient, build_message
from .connection import SMTPConnection

__all__ = [
    "SMTPClient",
    "SMTPConnection",
    "build_message",
]
