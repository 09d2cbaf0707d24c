"""UI helper functions - confirmation prompts and input handling."""

from typing import Optional

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt

from mailctl.utils.console import get_console
from mailctl.utils.logging import get_logger

logger = get_logger(__name__)

CONFIRM_TOKEN = "yes"


def confirm_action(message: str, console: Optional[Console] = None) -> bool:
    """Ask the user to type "yes" to confirm a destructive action.

    Only the exact token ``yes`` (trimmed, case-insensitive) confirms.
    """
    output_console = console or get_console()
    output_console.print(f"[red]{message}[/]")
    output_console.print(f'[yellow]Type "{CONFIRM_TOKEN}" to confirm or anything else to cancel:[/]')

    try:
        response = output_console.input("> ")

    except (KeyboardInterrupt, EOFError):
        output_console.print()
        return False

    return response.strip().lower() == CONFIRM_TOKEN


def ask_text(
    message: str,
    console: Optional[Console] = None,
    default: Optional[str] = None,
    password: bool = False,
) -> Optional[str]:
    """Ask for one line of text; None if the user cancels."""
    # rich treats any default, None included, as the empty-input answer
    options = {} if default is None else {"default": default}

    try:
        answer = Prompt.ask(
            message, password=password, console=console or get_console(), **options
        )
    except (KeyboardInterrupt, EOFError):
        return None

    return answer.strip()


def ask_int(
    message: str, console: Optional[Console] = None, default: Optional[int] = None
) -> Optional[int]:
    """Ask for a whole number, re-asking on bad input; None if cancelled."""
    options = {} if default is None else {"default": default}

    try:
        return IntPrompt.ask(message, console=console or get_console(), **options)
    except (KeyboardInterrupt, EOFError):
        return None


def ask_yes_no(
    message: str, console: Optional[Console] = None, default: bool = True
) -> bool:
    """Ask a y/n question; cancelling counts as no."""
    try:
        return Confirm.ask(message, default=default, console=console or get_console())
    except (KeyboardInterrupt, EOFError):
        return False
