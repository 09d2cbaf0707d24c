"""
Tests for the IMAP connection and protocol layers

Tests cover:
- Lazy connection with a single in-flight attempt
- Authentication and timeout failures
- FETCH response parsing
- Command failures
"""
import asyncio

import pytest

from mailctl.core.email.imap import ConnectionState, IMAPConnection, IMAPProtocol
from mailctl.core.email.imap.protocol import parse_fetch_response
from mailctl.utils.errors import (
    IMAPConnectError,
    IMAPError,
    InvalidCredentialsError,
    NetworkTimeoutError,
)

from .test_helpers import CountingFactory, FakeIMAPClient, make_raw_email


def make_connection(config, factory, connect_timeout=1.0):
    return IMAPConnection(
        config.imap,
        connect_timeout=connect_timeout,
        operation_timeout=1.0,
        client_factory=factory,
    )


class TestIMAPConnection:
    """Tests for IMAP connection establishment"""

    @pytest.mark.asyncio
    async def test_connects_lazily(self, email_config, fake_imap):
        factory = CountingFactory(fake_imap)
        connection = make_connection(email_config, factory)

        assert connection.state is ConnectionState.IDLE
        assert factory.calls == 0

        client = await connection.get_client()

        assert client is fake_imap
        assert connection.state is ConnectionState.READY
        assert fake_imap.command_names() == ["hello", "login"]

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_attempt(self, email_config):
        slow_client = FakeIMAPClient(hello_delay=0.05)
        factory = CountingFactory(slow_client)
        connection = make_connection(email_config, factory)

        clients = await asyncio.gather(*(connection.get_client() for _ in range(5)))

        assert factory.calls == 1
        assert all(client is slow_client for client in clients)
        assert connection.get_stats().connections_created == 1

    @pytest.mark.asyncio
    async def test_ready_connection_is_reused(self, email_config, fake_imap):
        factory = CountingFactory(fake_imap)
        connection = make_connection(email_config, factory)

        await connection.get_client()
        await connection.get_client()

        assert factory.calls == 1

    @pytest.mark.asyncio
    async def test_rejected_login_raises_invalid_credentials(self, email_config):
        connection = make_connection(
            email_config, CountingFactory(FakeIMAPClient(login_result="NO"))
        )

        with pytest.raises(InvalidCredentialsError):
            await connection.get_client()

        assert connection.state is ConnectionState.FAILED

    @pytest.mark.asyncio
    async def test_slow_greeting_times_out(self, email_config):
        connection = make_connection(
            email_config,
            CountingFactory(FakeIMAPClient(hello_delay=1.0)),
            connect_timeout=0.05,
        )

        with pytest.raises(NetworkTimeoutError) as exc_info:
            await connection.get_client()

        assert exc_info.value.code == "TIMEOUT"
        assert connection.state is ConnectionState.FAILED

    @pytest.mark.asyncio
    async def test_socket_error_is_wrapped(self, email_config):
        factory = CountingFactory(error=OSError("Connection refused"))
        connection = make_connection(email_config, factory)

        with pytest.raises(IMAPConnectError) as exc_info:
            await connection.get_client()

        assert isinstance(exc_info.value.__cause__, OSError)
        assert exc_info.value.details["cause"] == "Connection refused"

    @pytest.mark.asyncio
    async def test_failed_state_retries_on_next_call(self, email_config):
        bad = FakeIMAPClient(login_result="NO")
        good = FakeIMAPClient()
        factory = CountingFactory(bad, good)
        connection = make_connection(email_config, factory)

        with pytest.raises(InvalidCredentialsError):
            await connection.get_client()

        assert await connection.get_client() is good
        assert connection.state is ConnectionState.READY
        assert factory.calls == 2

    @pytest.mark.asyncio
    async def test_close_logs_out_and_returns_to_idle(self, email_config, fake_imap):
        connection = make_connection(email_config, CountingFactory(fake_imap))
        await connection.get_client()

        await connection.close()
        await connection.close()

        assert fake_imap.command_names().count("logout") == 1
        assert connection.state is ConnectionState.IDLE

    @pytest.mark.asyncio
    async def test_close_cancels_attempt_in_flight(self, email_config):
        slow_client = FakeIMAPClient(hello_delay=0.5)
        connection = make_connection(email_config, CountingFactory(slow_client))
        caller = asyncio.ensure_future(connection.get_client())
        await asyncio.sleep(0.01)

        assert connection.state is ConnectionState.CONNECTING

        await connection.close()

        with pytest.raises(asyncio.CancelledError):
            await caller
        assert "login" not in slow_client.command_names()
        assert not connection.is_connected
        assert connection.state is ConnectionState.IDLE


class TestParseFetchResponse:
    """Tests for grouping FETCH lines into messages"""

    def test_literals_attach_to_their_message(self):
        first = make_raw_email(subject="One")
        second = make_raw_email(subject="Two")
        lines = [
            f"1 FETCH (UID 10 FLAGS (\\Seen) BODY[] {{{len(first)}}}".encode(),
            bytearray(first),
            b")",
            f"2 FETCH (UID 11 FLAGS () BODY[] {{{len(second)}}}".encode(),
            bytearray(second),
            b")",
            b"FETCH completed",
        ]

        messages = parse_fetch_response(lines)

        assert [m.uid for m in messages] == [10, 11]
        assert messages[0].flags == ["\\Seen"]
        assert messages[0].sections["FULL"] == first
        assert messages[1].flags == []

    def test_header_fields_section(self):
        header = b"Subject: Hi\r\n\r\n"
        lines = [
            b"1 FETCH (UID 7 FLAGS (\\Flagged) "
            b"BODY[HEADER.FIELDS (FROM TO CC BCC SUBJECT DATE)] {15}",
            bytearray(header),
            b")",
            b"FETCH completed",
        ]

        messages = parse_fetch_response(lines)

        assert messages[0].sections == {"HEADER": header}

    def test_response_without_uid_is_skipped(self):
        lines = [b"1 FETCH (FLAGS (\\Seen))", b"FETCH completed"]

        assert parse_fetch_response(lines) == []


class TestIMAPProtocol:
    """Tests for IMAP commands"""

    @pytest.mark.asyncio
    async def test_select_is_cached_per_connection(self, email_config, fake_imap):
        protocol = IMAPProtocol(make_connection(email_config, CountingFactory(fake_imap)))

        await protocol.select_folder()
        await protocol.select_folder()

        assert fake_imap.command_names().count("select") == 1

    @pytest.mark.asyncio
    async def test_search_returns_sorted_uids(self, email_config, fake_imap):
        fake_imap.search_results["ALL"] = [3, 1, 2]
        protocol = IMAPProtocol(make_connection(email_config, CountingFactory(fake_imap)))

        assert await protocol.search_uids("ALL") == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_rejected_store_raises(self, email_config, fake_imap):
        fake_imap.fail_store.add(2)
        protocol = IMAPProtocol(make_connection(email_config, CountingFactory(fake_imap)))

        with pytest.raises(IMAPError) as exc_info:
            await protocol.set_flags("2", ["\\Seen"])

        assert exc_info.value.details["operation"] == "store"

    @pytest.mark.asyncio
    async def test_fetch_of_no_uids_sends_nothing(self, email_config, fake_imap):
        protocol = IMAPProtocol(make_connection(email_config, CountingFactory(fake_imap)))

        assert await protocol.fetch([], "(UID FLAGS BODY.PEEK[])") == []
        assert fake_imap.calls == []

    @pytest.mark.asyncio
    async def test_concurrent_commands_are_sent_one_at_a_time(self, email_config, fake_imap):
        protocol = IMAPProtocol(make_connection(email_config, CountingFactory(fake_imap)))
        await protocol.select_folder()

        everything, unseen, flagged = await asyncio.gather(
            protocol.search_uids("ALL"),
            protocol.search_uids("UNSEEN"),
            protocol.search_uids("FLAGGED"),
        )

        assert everything == [1, 2, 3]
        assert unseen == [1, 2, 3]
        assert flagged == []
        assert fake_imap.overlapping_commands == 0
