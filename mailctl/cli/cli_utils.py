"""Shared CLI utilities - argument conversion and error display"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Type, Union

from rich.console import Console
from rich.markup import escape

from mailctl.utils.console import get_console, print_error, print_hint, print_warning
from mailctl.utils.errors import (
    AuthenticationError,
    ConfigurationError,
    ErrorHandler,
    FileSystemError,
    IMAPConnectError,
    MailctlError,
    NetworkTimeoutError,
    SMTPInitError,
    ValidationError,
    format_error_message,
)
from mailctl.utils.logging import log_call

AUTH_HINTS = [
    "Authentication failed. Please check:",
    "  - EMAIL_USER and EMAIL_PASS in your .env file",
    "  - For Gmail: use an App Password, not your regular password",
    "  - Enable 2FA and generate an App Password in your account settings",
]

CONNECTION_HINTS = [
    "Connection failed. Please check:",
    "  - Your internet connection",
    "  - SMTP/IMAP host and port settings in your .env file",
    "  - Firewall settings",
]


## Argument Conversion


def split_recipients(value: str) -> Union[str, List[str]]:
    """``"a@x.com, b@y.com"`` -> list; a single address stays a string."""
    recipients = [part.strip() for part in value.split(",") if part.strip()]
    if len(recipients) == 1:
        return recipients[0]
    return recipients


@log_call
def parse_send_datetime(value: str) -> datetime:
    """Parse ``YYYY-MM-DD HH:MM`` or an ISO 8601 timestamp.

    Raises:
        ValidationError: If the text matches neither format
    """
    text = (value or "").strip()

    try:
        return datetime.strptime(text, "%Y-%m-%d %H:%M")
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(
            f"Invalid date format: {value}. Please use YYYY-MM-DD HH:MM or ISO 8601",
            details={"value": value},
            code="INVALID_DATE_FORMAT",
        ) from e


def parse_date_option(value: Optional[str]) -> Optional[datetime]:
    """Optional --since/--before value; a bare date means midnight."""
    if value is None:
        return None
    return parse_send_datetime(value)


@log_call
def read_recipients_file(path: Union[str, Path]) -> List[str]:
    """Read one address per line; blank lines and ``#`` comments are skipped.

    Raises:
        FileSystemError: If the file cannot be read
    """
    try:
        lines = Path(path).expanduser().read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise FileSystemError(
            f"Cannot read recipients file: {path}", details={"path": str(path)}
        ) from e

    return [
        line.strip()
        for line in lines
        if line.strip() and not line.strip().startswith("#")
    ]


## Error Display


def find_error(
    error: BaseException, error_types: Union[Type[BaseException], tuple]
) -> Optional[BaseException]:
    """First exception of ``error_types`` in the ``raise ... from`` chain."""
    current: Optional[BaseException] = error
    while current is not None:
        if isinstance(current, error_types):
            return current
        current = current.__cause__
    return None


def handle_error(
    error: Exception, operation: str = "operation", console: Optional[Console] = None
) -> int:
    """Print a red error line, the message and any hints; return exit code 1."""
    output_console = console or get_console()

    ErrorHandler.handle(
        error,
        f"Error during {operation}",
        log_traceback=not isinstance(error, MailctlError),
    )

    print_error(f"Error during {operation}:", output_console)
    output_console.print(f"[red]{escape(format_error_message(error))}[/]")

    if isinstance(error, ConfigurationError):
        for key in error.details.get("missing", []):
            print_error(f"   - {key}", output_console)
        print_hint(
            "Please configure your .env file with all required email settings "
            "(see .env.example).",
            output_console,
        )

    elif find_error(error, AuthenticationError):
        output_console.print()
        for line in AUTH_HINTS:
            print_warning(line, output_console)

    elif find_error(error, (IMAPConnectError, SMTPInitError, NetworkTimeoutError)):
        output_console.print()
        for line in CONNECTION_HINTS:
            print_warning(line, output_console)

    return 1
