"""Shared command handler types."""

from dataclasses import dataclass
from typing import Optional

from rich.console import Console

from mailctl.core.contacts import ContactService
from mailctl.core.email.services import EmailService


@dataclass
class CommandContext:
    """Everything a handler may use; the email service is only set for
    commands that talk to the mail servers."""

    console: Console
    email_service: Optional[EmailService] = None
    contacts: Optional[ContactService] = None
