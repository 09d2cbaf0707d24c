"""Centralised console management module"""

from typing import Optional

from rich.console import Console

_console: Optional[Console] = None


def get_console() -> Console:
    """Get the shared Console instance"""
    global _console

    if _console is None:
        _console = Console()

    return _console


def reset_console() -> None:
    """Reset the shared Console instance (for testing purposes)"""
    global _console
    _console = None


## Convenience Print Functions


def print_success(message: str, console: Optional[Console] = None) -> None:
    """Print a success message to the console"""
    output_console = console or get_console()
    output_console.print(f"[green]{message}[/]")


def print_error(message: str, console: Optional[Console] = None) -> None:
    """Print an error message to the console"""
    output_console = console or get_console()
    output_console.print(f"[bold red]{message}[/]")


def print_warning(message: str, console: Optional[Console] = None) -> None:
    """Print a warning message to the console"""
    output_console = console or get_console()
    output_console.print(f"[yellow]{message}[/]")


def print_status(message: str, console: Optional[Console] = None) -> None:
    """Print a status message to the console"""
    output_console = console or get_console()
    output_console.print(f"[cyan]{message}[/]")


def print_hint(message: str, console: Optional[Console] = None) -> None:
    """Print a dimmed hint line to the console"""
    output_console = console or get_console()
    output_console.print(f"[dim]{message}[/]")
