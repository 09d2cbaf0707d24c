"""CLI command handlers and their registry."""

from .base import CommandContext
from .command_registry import CommandMetadata, CommandRegistry, get_registry

__all__ = [
    "CommandContext",
    "CommandMetadata",
    "CommandRegistry",
    "get_registry",
]
