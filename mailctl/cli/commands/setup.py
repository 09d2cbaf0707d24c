"""Setup command - write account settings to an env file interactively"""

from typing import Dict, Optional

from rich.console import Console

from mailctl.core.validation import EmailValidator
from mailctl.utils.config import detect_provider, save_env_file
from mailctl.utils.console import print_hint, print_status, print_success, print_warning
from mailctl.utils.errors import InvalidEmailAddressError, MissingPasswordError
from mailctl.utils.logging import async_log_call, get_logger
from mailctl.utils.paths import CWD_ENV_PATH, USER_ENV_PATH
from mailctl.utils.ui_helpers import ask_int, ask_text, ask_yes_no

from .base import CommandContext

logger = get_logger(__name__)

IMPLICIT_TLS_PORT = 465


def _ask_servers(console: Console) -> Optional[Dict[str, str]]:
    """Prompt for SMTP and IMAP hosts and ports; None if cancelled."""

    print_hint(
        "Common providers: Gmail smtp.gmail.com / imap.gmail.com, "
        "Outlook smtp-mail.outlook.com / outlook.office365.com",
        console,
    )

    smtp_host = ask_text("SMTP host", console)
    if not smtp_host:
        return None
    smtp_port = ask_int("SMTP port", console, default=587)
    if smtp_port is None:
        return None

    imap_host = ask_text("IMAP host", console)
    if not imap_host:
        return None
    imap_port = ask_int("IMAP port", console, default=993)
    if imap_port is None:
        return None

    return {
        "SMTP_HOST": smtp_host,
        "SMTP_PORT": str(smtp_port),
        "IMAP_HOST": imap_host,
        "IMAP_PORT": str(imap_port),
    }


@async_log_call
async def handle_setup(args, ctx: CommandContext) -> int:
    """Ask for the account and its servers, then save them to an env file.

    Known providers are detected from the address domain. Settings go to
    ~/.mailctl/.env, or ./.env with --local; other keys in the file are kept.
    """
    console = ctx.console
    target = CWD_ENV_PATH if args.local else USER_ENV_PATH

    print_status("Step 1/3: Email credentials", console)
    user = ask_text("Email address", console)
    if user is None:
        print_warning("Setup cancelled.", console)
        return 1
    if not EmailValidator.is_valid_email(user):
        raise InvalidEmailAddressError(
            f"Invalid email address: {user}", details={"address": user}
        )

    password = ask_text("Password or app password", console, password=True)
    if password is None:
        print_warning("Setup cancelled.", console)
        return 1
    if not password:
        raise MissingPasswordError()

    print_status("Step 2/3: Server settings", console)
    servers = detect_provider(user)
    if servers is not None:
        console.print(f"  SMTP: {servers['SMTP_HOST']}:{servers['SMTP_PORT']}")
        console.print(f"  IMAP: {servers['IMAP_HOST']}:{servers['IMAP_PORT']}")
        if not ask_yes_no("Use detected settings?", console, default=True):
            servers = None
    else:
        print_warning(f"No known settings for {user.rpartition('@')[2]}", console)

    if servers is None:
        servers = _ask_servers(console)
        if servers is None:
            print_warning("Setup cancelled.", console)
            return 1

    values = {"EMAIL_USER": user, "EMAIL_PASS": password, **servers}
    implicit_tls = int(servers["SMTP_PORT"]) == IMPLICIT_TLS_PORT
    values["SMTP_SECURE"] = "true" if implicit_tls else "false"
    values["IMAP_TLS"] = "true"

    print_status("Step 3/3: Saving configuration", console)
    path = save_env_file(values, target)

    logger.info("Setup completed", extra={"path": str(path)})
    print_success(f"Configuration saved to {path}", console)
    print_hint("Run email-stats to check the connection.", console)
    return 0
