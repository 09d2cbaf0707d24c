"""
Tests for turning fetched IMAP data into EmailMessage records
"""
from datetime import datetime

from mailctl.core.email.constants import LIST_MODE_BODY_PLACEHOLDER
from mailctl.core.email.imap import FetchedMessage
from mailctl.core.email.parser import (
    EmailParser,
    decode_email_header,
    normalize_flags,
    parse_addresses,
    parse_email_date,
)
from mailctl.core.email.smtp import build_message
from mailctl.core.models import Attachment

from .test_helpers import make_raw_email


class TestHeaderHelpers:
    """Tests for header decoding helpers"""

    def test_encoded_word_is_decoded(self):
        assert decode_email_header("=?utf-8?b?SGVsbG8gV29ybGQ=?=") == "Hello World"

    def test_addresses_lose_display_names(self):
        assert parse_addresses('"Doe, Jane" <jane@example.com>, bob@example.com') == [
            "jane@example.com",
            "bob@example.com",
        ]

    def test_missing_header_gives_empty_list(self):
        assert parse_addresses(None) == []

    def test_unparsable_date_falls_back_to_now(self):
        before = datetime.now()

        parsed = parse_email_date("not a date")

        assert parsed >= before

    def test_flags_are_lowercased_without_backslash(self):
        assert normalize_flags(["\\Seen", "\\Flagged", "\\Seen", "$Label"]) == [
            "seen",
            "flagged",
            "$label",
        ]


class TestEmailParser:
    """Tests for EmailParser.parse"""

    def test_header_only_fetch_uses_placeholder(self):
        raw = make_raw_email(subject="Status")
        header = raw.split(b"\r\n\r\n", 1)[0] + b"\r\n\r\n"

        message = EmailParser().parse(
            FetchedMessage(uid=5, flags=["\\Seen"], sections={"HEADER": header})
        )

        assert message.id == "5"
        assert message.subject == "Status"
        assert message.body == LIST_MODE_BODY_PLACEHOLDER
        assert message.is_read

    def test_full_fetch_prefers_plain_text_and_lists_attachments(self):
        mime = build_message(
            "alice@example.com",
            ["me@example.com"],
            "Report",
            "Plain body",
            html="<p>HTML body</p>",
            attachments=[Attachment(filename="data.bin", content=b"\x00\x01")],
        )

        message = EmailParser().parse(
            FetchedMessage(uid=8, sections={"FULL": mime.as_bytes()}), full_body=True
        )

        assert message.body == "Plain body"
        assert message.html == "<p>HTML body</p>"
        assert [a.filename for a in message.attachments] == ["data.bin"]
        assert message.attachments[0].content == b"\x00\x01"

    def test_html_only_message_falls_back_to_html(self):
        raw = (
            b"From: a@example.com\r\nSubject: Hi\r\n"
            b"Content-Type: text/html; charset=utf-8\r\n\r\n<b>Hi</b>\r\n"
        )

        message = EmailParser().parse(
            FetchedMessage(uid=1, sections={"FULL": raw}), full_body=True
        )

        assert message.body.strip() == "<b>Hi</b>"

    def test_missing_date_uses_now(self):
        raw = b"From: a@example.com\r\nSubject: Hi\r\n\r\nBody\r\n"

        message = EmailParser().parse(FetchedMessage(uid=1, sections={"FULL": raw}))

        assert isinstance(message.date, datetime)
