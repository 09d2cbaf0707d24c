"""Rich rendering of messages, contacts and operation results"""

from typing import Iterable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from mailctl.core.models import (
    BatchDeleteResult,
    BulkSendResult,
    Contact,
    EmailMessage,
    EmailStatistics,
    SearchResult,
)

DEFAULT_GROUP_LABEL = "general"


def _format_date(message: EmailMessage) -> str:
    return message.date.strftime("%Y-%m-%d %H:%M")


def _status(message: EmailMessage) -> str:
    marks = []
    if not message.is_read:
        marks.append("[bold blue]●[/]")
    if message.is_flagged:
        marks.append("[yellow]★[/]")
    return " ".join(marks)


def email_table(emails: Iterable[EmailMessage], title: str) -> Table:
    """Summary table: one row per message."""

    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("", no_wrap=True)
    table.add_column("From", overflow="ellipsis", max_width=32)
    table.add_column("Subject", overflow="ellipsis")
    table.add_column("Date", no_wrap=True)

    for message in emails:
        table.add_row(
            message.id,
            _status(message),
            escape(message.sender),
            escape(message.subject or "(no subject)"),
            _format_date(message),
        )

    return table


def print_email_list(
    emails: List[EmailMessage], console: Console, title: str = "Inbox"
) -> None:
    if not emails:
        console.print("[yellow]No emails found.[/]")
        return

    console.print(email_table(emails, f"{title} ({len(emails)})"))
    console.print("[dim]Unread: ●  Flagged: ★[/]")


def print_email_summary(message: EmailMessage, console: Console) -> None:
    """Short header block, used before confirming a delete."""

    console.print(f"[cyan]   ID: {escape(message.id)}[/]")
    console.print(f"[cyan]   From: {escape(message.sender)}[/]")
    console.print(f"[cyan]   Subject: {escape(message.subject)}[/]")
    console.print(f"[cyan]   Date: {_format_date(message)}[/]")


def print_email_detail(message: EmailMessage, console: Console) -> None:
    """Full view of one message."""

    header = Table.grid(padding=(0, 1))
    header.add_column(style="bold cyan", no_wrap=True)
    header.add_column()
    header.add_row("From:", escape(message.sender))
    header.add_row("To:", escape(", ".join(message.to)))
    if message.cc:
        header.add_row("Cc:", escape(", ".join(message.cc)))
    header.add_row("Subject:", escape(message.subject))
    header.add_row("Date:", _format_date(message))
    header.add_row("Flags:", ", ".join(message.flags) or "-")

    console.print(Panel(header, title=f"Email {escape(message.id)}", expand=True))
    console.print(escape(message.body or ""))

    if message.attachments:
        console.print()
        console.print(f"[bold]Attachments ({len(message.attachments)}):[/]")
        for attachment in message.attachments:
            size = f" ({attachment.size} bytes)" if attachment.size is not None else ""
            console.print(f"  [cyan]{escape(attachment.filename)}[/][dim]{size}[/]")


def print_search_result(result: SearchResult, console: Console) -> None:
    if not result.emails:
        console.print(f"[yellow]No emails found (total matches: {result.total}).[/]")
        return

    console.print(
        email_table(
            result.emails,
            f"Search results: page {result.page} of {result.pages} "
            f"({result.total} total)",
        )
    )


def print_statistics(stats: EmailStatistics, console: Console) -> None:
    table = Table(title="Inbox Statistics", show_header=True, header_style="bold cyan")
    table.add_column("Metric")
    table.add_column("Count", justify="right")

    table.add_row("Total", str(stats.total))
    table.add_row("Unread", str(stats.unread))
    table.add_row("Flagged", str(stats.flagged))
    table.add_row("Recent", str(stats.recent))

    console.print(table)


def print_batch_delete(result: BatchDeleteResult, console: Console) -> None:
    for email_id in result.success:
        console.print(f"[green]Deleted {escape(email_id)}[/]")
    for failure in result.failed:
        console.print(f"[red]Failed {escape(failure.id)}: {escape(failure.error)}[/]")


def print_bulk_result(result: BulkSendResult, console: Console) -> None:
    for item in result.results:
        if item.success:
            console.print(f"[green]Sent to {escape(item.recipient)}[/]")
        else:
            console.print(
                f"[red]Failed for {escape(item.recipient)}: {escape(item.error or '')}[/]"
            )
    console.print(f"[bold]Sent: {result.sent}  Failed: {result.failed}[/]")


def contact_table(contacts: Iterable[Contact], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Group")

    for contact in contacts:
        table.add_row(
            contact.id,
            escape(contact.name),
            escape(contact.email),
            escape(contact.group or DEFAULT_GROUP_LABEL),
        )

    return table


def print_contacts(
    contacts: List[Contact], console: Console, title: str = "Contacts"
) -> None:
    if not contacts:
        console.print("[yellow]No contacts found.[/]")
        return
    console.print(contact_table(contacts, f"{title} ({len(contacts)})"))


def print_contact(contact: Contact, console: Console, heading: Optional[str] = None) -> None:
    if heading:
        console.print(f"[green]{heading}[/]")
    console.print(f"[cyan]   ID: {escape(contact.id)}[/]")
    console.print(f"[cyan]   Name: {escape(contact.name)}[/]")
    console.print(f"[cyan]   Email: {escape(contact.email)}[/]")
    console.print(f"[cyan]   Group: {escape(contact.group or DEFAULT_GROUP_LABEL)}[/]")
