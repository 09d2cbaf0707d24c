"""Main CLI entry point - parses arguments and dispatches via the registry."""

import asyncio
import os
import sys
from typing import Callable, List, Optional

from rich.console import Console

from mailctl.core.contacts import ContactService, ContactStore
from mailctl.core.email.services import EmailServiceFactory
from mailctl.utils.config import EmailConfig, load_config
from mailctl.utils.console import get_console, print_error
from mailctl.utils.errors import MailctlError
from mailctl.utils.logging import async_log_call, get_logger, init_logging

from .cli_parser import build_command_parser, setup_argument_parser
from .cli_utils import handle_error
from .commands import CommandContext, get_registry

logger = get_logger(__name__)


@async_log_call
async def dispatch_command(
    args,
    console: Console,
    config: Optional[EmailConfig] = None,
    contacts: Optional[ContactService] = None,
    **service_overrides,
) -> int:
    """Run the handler registered for ``args.command``.

    Args:
        args: Parsed arguments
        console: Rich console
        config: Email configuration for commands that need a service
        contacts: Contact service (a fresh in-memory one if None)
        service_overrides: Passed to EmailServiceFactory (e.g. injected connections)

    Returns:
        Exit code (0 = success, 1 = error)
    """
    metadata = get_registry().get(args.command)
    if metadata is None:
        print_error(f"Unknown command: {args.command}", console)
        return 1

    ctx = CommandContext(
        console=console,
        contacts=contacts if contacts is not None else ContactService(ContactStore()),
    )

    try:
        if not metadata.requires_config:
            return await metadata.handler(args, ctx)

        async with EmailServiceFactory.create(config, **service_overrides) as service:
            ctx.email_service = service
            return await metadata.handler(args, ctx)

    except Exception as e:
        return handle_error(e, metadata.operation, console)


def main(argv: Optional[List[str]] = None, command: Optional[str] = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Arguments to parse (defaults to sys.argv)
        command: Fixed command for single-verb scripts such as ``email-send``

    Returns:
        Exit code
    """
    console = get_console()

    if command:
        args = build_command_parser(command).parse_args(argv)
        args.command = command
    else:
        args = setup_argument_parser().parse_args(argv)

    metadata = get_registry().get(args.command)
    config = None

    try:
        if metadata is not None and metadata.requires_config:
            config = load_config()
        init_logging(config.log_level if config else os.environ.get("LOG_LEVEL", "WARNING"))

    except MailctlError as e:
        return handle_error(e, "loading configuration", console)

    except ValueError as e:
        print_error(f"Configuration error: {e}", console)
        return 1

    try:
        return asyncio.run(dispatch_command(args, console, config))

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/]")
        return 130


def run() -> None:
    """Console script for ``mailctl <command>``."""
    sys.exit(main())


def _entry_point(command: str) -> Callable[[], None]:
    def entry() -> None:
        sys.exit(main(command=command))

    entry.__name__ = command.replace("-", "_")
    entry.__doc__ = f"Console script for ``{command}``."
    return entry


email_send = _entry_point("email-send")
email_read = _entry_point("email-read")
email_get = _entry_point("email-get")
email_delete = _entry_point("email-delete")
email_mark_read = _entry_point("email-mark-read")
email_attach = _entry_point("email-attach")
email_search = _entry_point("email-search")
email_bulk = _entry_point("email-bulk")
email_draft = _entry_point("email-draft")
email_schedule = _entry_point("email-schedule")
email_reply = _entry_point("email-reply")
email_forward = _entry_point("email-forward")
email_stats = _entry_point("email-stats")
email_list = _entry_point("email-list")
email_setup = _entry_point("email-setup")
contact_add = _entry_point("contact-add")
contact_list = _entry_point("contact-list")
contact_search = _entry_point("contact-search")
contact_update = _entry_point("contact-update")
contact_delete = _entry_point("contact-delete")
contact_group = _entry_point("contact-group")


if __name__ == "__main__":
    run()
