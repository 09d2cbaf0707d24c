"""Command registry for the mailctl CLI

Maps each command name to its handler and what the handler needs
(configuration and an email service, or only the contact service).
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

from . import contacts, email, setup

Handler = Callable[..., Awaitable[int]]


@dataclass
class CommandMetadata:
    """Metadata for a registered command."""

    name: str
    handler: Handler
    operation: str
    category: str = "email"
    requires_config: bool = True


class CommandRegistry:
    """Registry for CLI command handlers with metadata."""

    def __init__(self):
        self._commands: Dict[str, CommandMetadata] = {}

    def register(
        self,
        name: str,
        handler: Handler,
        operation: str,
        category: str = "email",
        requires_config: bool = True,
    ) -> None:
        self._commands[name] = CommandMetadata(
            name=name,
            handler=handler,
            operation=operation,
            category=category,
            requires_config=requires_config,
        )

    def get(self, command: str) -> Optional[CommandMetadata]:
        return self._commands.get(command)

    def list_commands(self, category: Optional[str] = None) -> List[str]:
        return [
            name
            for name, metadata in self._commands.items()
            if category is None or metadata.category == category
        ]


def create_registry() -> CommandRegistry:
    """Build the registry with every mailctl command."""
    registry = CommandRegistry()

    registry.register("email-send", email.handle_send, "sending email")
    registry.register("email-read", email.handle_read, "reading emails")
    registry.register("email-get", email.handle_get, "getting email")
    registry.register("email-delete", email.handle_delete, "deleting email")
    registry.register("email-mark-read", email.handle_mark_read, "marking email")
    registry.register("email-attach", email.handle_attach, "sending attachment")
    registry.register("email-search", email.handle_search, "searching emails")
    registry.register("email-bulk", email.handle_bulk, "bulk sending")
    registry.register("email-draft", email.handle_draft, "creating draft")
    registry.register("email-schedule", email.handle_schedule, "scheduling email")
    registry.register("email-reply", email.handle_reply, "replying to email")
    registry.register("email-forward", email.handle_forward, "forwarding email")
    registry.register("email-stats", email.handle_stats, "getting statistics")
    registry.register(
        "email-list", email.handle_list, "listing commands", requires_config=False
    )

    registry.register(
        "email-setup",
        setup.handle_setup,
        "running setup",
        category="setup",
        requires_config=False,
    )

    for name, handler, operation in (
        ("contact-add", contacts.handle_contact_add, "adding contact"),
        ("contact-list", contacts.handle_contact_list, "listing contacts"),
        ("contact-search", contacts.handle_contact_search, "searching contacts"),
        ("contact-update", contacts.handle_contact_update, "updating contact"),
        ("contact-delete", contacts.handle_contact_delete, "deleting contact"),
        ("contact-group", contacts.handle_contact_group, "listing group"),
    ):
        registry.register(
            name, handler, operation, category="contacts", requires_config=False
        )

    return registry


_registry: Optional[CommandRegistry] = None


def get_registry() -> CommandRegistry:
    """Get the shared registry, building it on first use."""
    global _registry

    if _registry is None:
        _registry = create_registry()

    return _registry
