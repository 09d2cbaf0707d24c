"""Email commands - send, read, delete, search and friends"""

from pathlib import Path

from rich.markup import escape
from rich.table import Table

from mailctl.core.models import Attachment, EmailFilter
from mailctl.utils.console import (
    print_error,
    print_hint,
    print_status,
    print_success,
    print_warning,
)
from mailctl.utils.errors import FileSystemError, MailctlError
from mailctl.utils.logging import async_log_call, get_logger
from mailctl.utils.ui_helpers import confirm_action

from ..cli_parser import COMMAND_PARSERS
from ..cli_utils import (
    parse_date_option,
    parse_send_datetime,
    read_recipients_file,
    split_recipients,
)
from ..display import (
    print_batch_delete,
    print_bulk_result,
    print_email_detail,
    print_email_list,
    print_email_summary,
    print_search_result,
    print_statistics,
)
from .base import CommandContext

logger = get_logger(__name__)


@async_log_call
async def handle_send(args, ctx: CommandContext) -> int:
    """Send a simple email"""

    print_status("Sending email...", ctx.console)
    result = await ctx.email_service.send_email(
        split_recipients(args.to), args.subject, args.body, args.html
    )

    print_success("Email sent successfully!", ctx.console)
    ctx.console.print(f"[dim]Message ID: {escape(result.message_id)}[/]")
    return 0


@async_log_call
async def handle_read(args, ctx: CommandContext) -> int:
    """Show the most recent emails"""

    emails = await ctx.email_service.read_recent_emails(args.count, full_body=args.full)

    if args.full:
        for message in emails:
            print_email_detail(message, ctx.console)
            ctx.console.print()
    else:
        print_email_list(emails, ctx.console, title="Recent emails")

    if emails:
        print_hint("Use email-get <id> to read a full email", ctx.console)
    return 0


@async_log_call
async def handle_get(args, ctx: CommandContext) -> int:
    """Show one email in full"""

    message = await ctx.email_service.get_email_by_id(args.email_id)

    if message is None:
        print_error(f"Email not found with ID: {args.email_id}", ctx.console)
        print_hint('Use "email-read" to see available email IDs', ctx.console)
        return 1

    print_email_detail(message, ctx.console)
    return 0


@async_log_call
async def handle_delete(args, ctx: CommandContext) -> int:
    """Delete one or more emails after confirmation"""

    service = ctx.email_service
    found = []

    for email_id in args.email_ids:
        message = await service.get_email_by_id(email_id)
        if message is None:
            print_error(f"Email not found with ID: {email_id}", ctx.console)
        else:
            found.append(message)

    if not found:
        print_hint('Use "email-read" to see available email IDs', ctx.console)
        return 1

    ctx.console.print("[blue]Email(s) to be deleted:[/]")
    for message in found:
        print_email_summary(message, ctx.console)
        ctx.console.print()

    if not args.force and not confirm_action(
        "Are you sure you want to delete? This cannot be undone!", ctx.console
    ):
        print_warning("Delete cancelled.", ctx.console)
        return 0

    if len(found) == 1:
        await service.delete_email(found[0].id)
        print_success(f"Email {found[0].id} has been permanently deleted.", ctx.console)
        return 0 if len(args.email_ids) == 1 else 1

    result = await service.delete_emails([message.id for message in found])
    print_batch_delete(result, ctx.console)

    all_found = len(found) == len(args.email_ids)
    return 0 if all_found and not result.failed else 1


@async_log_call
async def handle_mark_read(args, ctx: CommandContext) -> int:
    """Mark emails as read (or unread)"""

    read = not args.unread
    state = "read" if read else "unread"
    failures = 0

    for email_id in args.email_ids:
        try:
            await ctx.email_service.mark_email_as_read(email_id, read=read)
            print_success(f"Email {email_id} marked as {state}", ctx.console)

        except MailctlError as e:
            logger.warning(f"Could not mark {email_id} as {state}: {e.message}")
            print_error(f"Email {email_id}: {e.message}", ctx.console)
            failures += 1

    return 1 if failures else 0


@async_log_call
async def handle_attach(args, ctx: CommandContext) -> int:
    """Send an email with one file attached"""

    path = Path(args.path).expanduser()
    if not path.is_file():
        raise FileSystemError(
            f"Attachment file not found: {args.path}", details={"path": str(path)}
        )

    attachment = Attachment(filename=args.name or path.name, path=path)

    print_status(f"Sending email with attachment {attachment.filename}...", ctx.console)
    result = await ctx.email_service.send_email_with_attachments(
        split_recipients(args.to), args.subject, args.body, [attachment]
    )

    print_success("Email with attachment sent successfully!", ctx.console)
    ctx.console.print(f"[dim]Message ID: {escape(result.message_id)}[/]")
    return 0


@async_log_call
async def handle_search(args, ctx: CommandContext) -> int:
    """Search the inbox with filters and pagination"""

    search_filter = EmailFilter(
        from_=args.from_,
        to=args.to,
        subject=args.subject,
        since=parse_date_option(args.since),
        before=parse_date_option(args.before),
        seen=args.seen,
        flagged=args.flagged,
    )

    result = await ctx.email_service.search_emails(
        search_filter, page=args.page, limit=args.limit
    )
    print_search_result(result, ctx.console)

    if result.page < result.pages:
        print_hint(f"More results: --page {result.page + 1}", ctx.console)
    return 0


@async_log_call
async def handle_bulk(args, ctx: CommandContext) -> int:
    """Send one email to every address in a file"""

    recipients = read_recipients_file(args.recipients_file)
    print_status(f"Sending to {len(recipients)} recipient(s)...", ctx.console)

    result = await ctx.email_service.send_bulk_emails(
        recipients, args.subject, args.body
    )
    print_bulk_result(result, ctx.console)
    return 0 if result.failed == 0 else 1


@async_log_call
async def handle_draft(args, ctx: CommandContext) -> int:
    """Create a (non-persistent) draft"""

    result = await ctx.email_service.create_draft(
        split_recipients(args.to), args.subject, args.body
    )

    print_success(f"Draft created: {result.draft_id}", ctx.console)
    if not result.durable:
        print_warning("Drafts are not saved yet; this draft will not be kept.", ctx.console)
    return 0


@async_log_call
async def handle_schedule(args, ctx: CommandContext) -> int:
    """Schedule an email (validated only, not queued)"""

    when = parse_send_datetime(args.when)
    result = await ctx.email_service.schedule_email(
        split_recipients(args.to), args.subject, args.body, when
    )

    print_success(f"Email scheduled: {result.scheduled_id}", ctx.console)
    ctx.console.print(f"[cyan]   Scheduled for: {result.scheduled_for:%Y-%m-%d %H:%M}[/]")
    if not result.durable:
        print_warning(
            "Scheduling is not backed by a queue yet; this email will not be sent.",
            ctx.console,
        )
    return 0


@async_log_call
async def handle_reply(args, ctx: CommandContext) -> int:
    """Reply to an email"""

    print_status("Sending reply...", ctx.console)
    result = await ctx.email_service.reply_to_email(
        args.email_id, args.message, reply_all=args.reply_all
    )

    print_success("Reply sent successfully!", ctx.console)
    ctx.console.print(f"[dim]Message ID: {escape(result.message_id)}[/]")
    return 0


@async_log_call
async def handle_forward(args, ctx: CommandContext) -> int:
    """Forward an email"""

    print_status("Forwarding email...", ctx.console)
    result = await ctx.email_service.forward_email(
        args.email_id, split_recipients(args.to), args.message
    )

    print_success("Email forwarded successfully!", ctx.console)
    ctx.console.print(f"[dim]Message ID: {escape(result.message_id)}[/]")
    return 0


@async_log_call
async def handle_stats(args, ctx: CommandContext) -> int:
    """Show inbox statistics"""

    stats = await ctx.email_service.get_email_statistics()
    print_statistics(stats, ctx.console)
    return 0


async def handle_list(args, ctx: CommandContext) -> int:
    """List every available command, grouped by category"""

    from .command_registry import get_registry

    registry = get_registry()

    table = Table(title="mailctl commands", show_header=True, header_style="bold cyan")
    table.add_column("Category", style="magenta")
    table.add_column("Command", style="green", no_wrap=True)
    table.add_column("Description")

    for category in ("setup", "email", "contacts"):
        for command in registry.list_commands(category):
            table.add_row(category, command, COMMAND_PARSERS[command][0])

    ctx.console.print(table)
    print_hint("Run any command with --help for its arguments", ctx.console)
    return 0
