"""Argument parser configuration for the mailctl CLI"""

import argparse
import sys
from typing import Callable, Dict, Tuple

from mailctl import __version__


## Parser


class MailctlArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


## Argument Types


def positive_int(value: str) -> int:
    """argparse type for integers >= 1."""
    try:
        number = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"{value!r} is not a number") from e

    if number < 1:
        raise argparse.ArgumentTypeError(f"{value} must be 1 or more")
    return number


def true_false(value: str) -> bool:
    """argparse type accepting true/false (also yes/no, 1/0)."""
    lowered = value.strip().lower()
    if lowered in ("true", "yes", "1"):
        return True
    if lowered in ("false", "no", "0"):
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got {value!r}")


## Argument Adding Utilities


def add_message_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the <to> <subject> <body> positionals shared by sending commands."""

    parser.add_argument(
        "to", help="Recipient address, or several separated by commas"
    )
    parser.add_argument("subject", help="Email subject")
    parser.add_argument("body", help="Plain text body")


def add_force_argument(parser: argparse.ArgumentParser) -> None:
    """Add --force/-f to skip the confirmation prompt."""

    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Skip confirmation prompt",
    )


## Email Command Setup Functions


def setup_send(parser: argparse.ArgumentParser) -> None:
    add_message_arguments(parser)
    parser.add_argument("html", nargs="?", help="Optional HTML body")


def setup_read(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "count",
        nargs="?",
        type=int,
        default=10,
        help="Number of recent emails to show, 1-1000 (default: 10)",
    )
    parser.add_argument(
        "--full",
        action="store_true",
        help="Fetch full message bodies instead of headers only",
    )


def setup_get(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("email_id", help="Email ID (as shown by email-read)")


def setup_delete(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("email_ids", nargs="+", help="One or more email IDs")
    add_force_argument(parser)


def setup_mark_read(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("email_ids", nargs="+", help="One or more email IDs")
    parser.add_argument(
        "--unread",
        action="store_true",
        help="Mark as unread instead of read",
    )


def setup_attach(parser: argparse.ArgumentParser) -> None:
    add_message_arguments(parser)
    parser.add_argument("path", help="File to attach")
    parser.add_argument(
        "name", nargs="?", help="Attachment name (default: the file name)"
    )


def setup_search(parser: argparse.ArgumentParser) -> None:
    filter_group = parser.add_argument_group("filters", "All given filters must match")

    filter_group.add_argument("--from", dest="from_", help="Filter by sender")
    filter_group.add_argument("--to", help="Filter by recipient")
    filter_group.add_argument("--subject", help="Filter by subject text")
    filter_group.add_argument("--since", help="Emails since date (ISO format)")
    filter_group.add_argument("--before", help="Emails before date (ISO format)")
    filter_group.add_argument(
        "--seen", type=true_false, help="Filter by read status (true|false)"
    )
    filter_group.add_argument(
        "--flagged", type=true_false, help="Filter by flagged status (true|false)"
    )

    parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    parser.add_argument(
        "--limit", type=int, default=10, help="Results per page, 1-100 (default: 10)"
    )


def setup_bulk(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "recipients_file",
        help="File with one address per line (blank and # lines ignored)",
    )
    parser.add_argument("subject", help="Email subject")
    parser.add_argument("body", help="Plain text body")


def setup_draft(parser: argparse.ArgumentParser) -> None:
    add_message_arguments(parser)


def setup_schedule(parser: argparse.ArgumentParser) -> None:
    add_message_arguments(parser)
    parser.add_argument(
        "when", help='Send time: "YYYY-MM-DD HH:MM" or ISO 8601'
    )


def setup_reply(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("email_id", help="Email ID to reply to")
    parser.add_argument("message", help="Reply text")
    parser.add_argument(
        "-a",
        "--all",
        dest="reply_all",
        action="store_true",
        help="Reply to the sender and all recipients",
    )


def setup_forward(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("email_id", help="Email ID to forward")
    parser.add_argument("to", help="Recipient address, or several separated by commas")
    parser.add_argument("message", nargs="?", help="Optional note above the original")


def setup_no_arguments(parser: argparse.ArgumentParser) -> None:
    pass


## Contact Command Setup Functions


def setup_contact_add(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("name", help="Contact name")
    parser.add_argument("email", help="Contact email address")
    parser.add_argument("group", nargs="?", help="Optional group name")


def setup_contact_list(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "limit",
        nargs="?",
        type=positive_int,
        default=20,
        help="Maximum contacts to show (default: 20)",
    )


def setup_contact_search(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("query", help="Text to find in names or emails")


def setup_contact_update(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("contact_id", help="Contact ID")
    parser.add_argument("field", help="Field to change: name, email or group")
    parser.add_argument("value", help="New value")


def setup_contact_delete(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("contact_id", help="Contact ID")
    add_force_argument(parser)


def setup_contact_group(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("group", help="Group name")


## Setup Command


def setup_setup(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--local",
        action="store_true",
        help="Write ./.env instead of ~/.mailctl/.env",
    )


## Command Table

COMMAND_PARSERS: Dict[str, Tuple[str, Callable[[argparse.ArgumentParser], None]]] = {
    "email-send": ("Send an email", setup_send),
    "email-read": ("Show recent emails from the inbox", setup_read),
    "email-get": ("Show one email in full", setup_get),
    "email-delete": ("Permanently delete emails", setup_delete),
    "email-mark-read": ("Mark emails as read or unread", setup_mark_read),
    "email-attach": ("Send an email with a file attached", setup_attach),
    "email-search": ("Search the inbox", setup_search),
    "email-bulk": ("Send one email to every address in a file", setup_bulk),
    "email-draft": ("Create a draft (not saved)", setup_draft),
    "email-schedule": ("Schedule an email (not queued)", setup_schedule),
    "email-reply": ("Reply to an email", setup_reply),
    "email-forward": ("Forward an email", setup_forward),
    "email-stats": ("Show inbox statistics", setup_no_arguments),
    "email-list": ("List all commands", setup_no_arguments),
    "email-setup": ("Configure your email account interactively", setup_setup),
    "contact-add": ("Add a contact", setup_contact_add),
    "contact-list": ("List contacts", setup_contact_list),
    "contact-search": ("Search contacts by name or email", setup_contact_search),
    "contact-update": ("Update one contact field", setup_contact_update),
    "contact-delete": ("Delete a contact", setup_contact_delete),
    "contact-group": ("List contacts in a group", setup_contact_group),
}


def build_command_parser(command: str) -> argparse.ArgumentParser:
    """Parser for a single-verb console script such as ``email-send``."""

    description, setup = COMMAND_PARSERS[command]
    parser = MailctlArgumentParser(prog=command, description=description)
    setup(parser)
    return parser


def setup_argument_parser() -> argparse.ArgumentParser:
    """Parser for the umbrella ``mailctl <command>`` entry point."""

    parser = MailctlArgumentParser(
        prog="mailctl",
        description="Send, read and manage email from the command line",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        metavar="<command>",
        help="Command to run (see 'mailctl email-list')",
    )

    for command, (description, setup) in COMMAND_PARSERS.items():
        subparser = subparsers.add_parser(
            command, help=description, description=description
        )
        setup(subparser)

    return parser
