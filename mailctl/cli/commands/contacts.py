"""Contact commands - manage the address book"""

from mailctl.utils.console import print_error, print_hint, print_success, print_warning
from mailctl.utils.logging import async_log_call, get_logger
from mailctl.utils.ui_helpers import confirm_action

from ..display import print_contact, print_contacts
from .base import CommandContext

logger = get_logger(__name__)

PERSISTENCE_NOTE = (
    "Note: contacts are kept in memory only and are not saved between commands."
)


@async_log_call
async def handle_contact_add(args, ctx: CommandContext) -> int:
    contact = ctx.contacts.add_contact(args.name, args.email, args.group)

    print_contact(contact, ctx.console, heading="Contact added successfully!")
    print_hint(PERSISTENCE_NOTE, ctx.console)
    return 0


@async_log_call
async def handle_contact_list(args, ctx: CommandContext) -> int:
    contacts = ctx.contacts.list_contacts(args.limit)

    print_contacts(contacts, ctx.console)
    print_hint(PERSISTENCE_NOTE, ctx.console)
    return 0


@async_log_call
async def handle_contact_search(args, ctx: CommandContext) -> int:
    contacts = ctx.contacts.search_contacts(args.query)

    print_contacts(contacts, ctx.console, title=f'Contacts matching "{args.query}"')
    print_hint(PERSISTENCE_NOTE, ctx.console)
    return 0


@async_log_call
async def handle_contact_group(args, ctx: CommandContext) -> int:
    contacts = ctx.contacts.get_contacts_by_group(args.group)

    print_contacts(contacts, ctx.console, title=f'Group "{args.group}"')
    print_hint(PERSISTENCE_NOTE, ctx.console)
    return 0


@async_log_call
async def handle_contact_update(args, ctx: CommandContext) -> int:
    """Update one field; validation errors propagate to the error handler."""

    contact = ctx.contacts.update_contact_field(args.contact_id, args.field, args.value)

    if contact is None:
        print_error(f"Contact not found with ID: {args.contact_id}", ctx.console)
        print_hint(PERSISTENCE_NOTE, ctx.console)
        return 1

    print_contact(contact, ctx.console, heading="Contact updated successfully!")
    return 0


@async_log_call
async def handle_contact_delete(args, ctx: CommandContext) -> int:
    contact = ctx.contacts.get_contact(args.contact_id)

    if contact is None:
        print_error(f"Contact not found with ID: {args.contact_id}", ctx.console)
        print_hint(PERSISTENCE_NOTE, ctx.console)
        return 1

    print_contact(contact, ctx.console, heading="Contact to be deleted:")

    if not args.force and not confirm_action(
        "Are you sure you want to delete this contact?", ctx.console
    ):
        print_warning("Delete cancelled.", ctx.console)
        return 0

    ctx.contacts.delete_contact(contact.id)
    print_success(f"Contact {contact.id} deleted.", ctx.console)
    return 0
