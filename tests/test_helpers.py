"""
Test helper fakes and builders shared across test modules
"""
import asyncio
from collections import namedtuple
from contextlib import asynccontextmanager

from mailctl.core.email.imap import IMAPConnection
from mailctl.core.email.services import EmailService
from mailctl.core.email.smtp import SMTPConnection
from mailctl.utils.config import EmailConfig, IMAPConfig, SMTPConfig

Response = namedtuple("Response", "result lines")

TEST_USER = "me@example.com"


class ConfigTestHelper:
    """Helper methods for configuration"""

    @staticmethod
    def create_test_config(**overrides):
        """Create an EmailConfig for the test account"""
        smtp = SMTPConfig(
            host="smtp.example.com", port=587, user=TEST_USER, password="secret"
        )
        imap = IMAPConfig(
            host="imap.example.com",
            port=993,
            user=TEST_USER,
            password="secret",
            mark_seen=overrides.pop("mark_seen", False),
        )
        values = {"smtp": smtp, "imap": imap, "connect_timeout": 1.0, "operation_timeout": 1.0}
        values.update(overrides)
        return EmailConfig(**values)

    @staticmethod
    def write_env_file(path, **values):
        """Write a KEY=VALUE env file and return its path"""
        settings = {
            "SMTP_HOST": "smtp.example.com",
            "SMTP_PORT": "587",
            "EMAIL_USER": TEST_USER,
            "EMAIL_PASS": "secret",
            "IMAP_HOST": "imap.example.com",
            "IMAP_PORT": "993",
        }
        settings.update(values)
        lines = ["# mailctl test settings", ""]
        lines += [f"{key}={value}" for key, value in settings.items() if value is not None]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path


def make_raw_email(
    sender="alice@example.com",
    to=TEST_USER,
    cc=None,
    subject="Hello",
    body="Hi there",
    date="Mon, 01 Jan 2024 10:00:00 +0000",
):
    """Build a minimal text/plain RFC 822 message"""
    headers = [
        f"From: Alice <{sender}>",
        f"To: {to}",
    ]
    if cc:
        headers.append(f"Cc: {cc}")
    headers += [
        f"Subject: {subject}",
        f"Date: {date}",
        "MIME-Version: 1.0",
        "Content-Type: text/plain; charset=utf-8",
    ]
    return ("\r\n".join(headers) + "\r\n\r\n" + body + "\r\n").encode("utf-8")


class FakeIMAPClient:
    """Stands in for aioimaplib.IMAP4_SSL.

    Messages are held as ``{uid: [flags, raw_bytes]}``; every command is
    recorded in ``calls``. Like the real client, a command sent while
    another is still in flight fails.
    """

    def __init__(self, messages=None, login_result="OK", hello_delay=0.0):
        self.messages = messages or {}
        self.login_result = login_result
        self.hello_delay = hello_delay
        self.calls = []
        self.search_results = {}
        self.fail_store = set()
        self.store_error = None
        self.expunge_result = "OK"
        self.logged_out = False
        self.overlapping_commands = 0
        self._in_flight = None

    @classmethod
    def with_messages(cls, count, **kwargs):
        messages = {
            uid: [[], make_raw_email(subject=f"Message {uid}", body=f"Body {uid}")]
            for uid in range(1, count + 1)
        }
        return cls(messages, **kwargs)

    def add_message(self, uid, raw, flags=None):
        self.messages[uid] = [list(flags or []), raw]

    @asynccontextmanager
    async def _command(self, name):
        if self._in_flight is not None:
            self.overlapping_commands += 1
            raise RuntimeError(f"{name} sent while {self._in_flight} is in flight")
        self._in_flight = name
        try:
            # give other tasks a chance to interleave
            await asyncio.sleep(0)
            yield
        finally:
            self._in_flight = None

    async def wait_hello_from_server(self):
        self.calls.append(("hello",))
        if self.hello_delay:
            await asyncio.sleep(self.hello_delay)

    async def login(self, user, password):
        self.calls.append(("login", user))
        return Response(self.login_result, [b"LOGIN completed"])

    async def select(self, folder):
        self.calls.append(("select", folder))
        async with self._command("select"):
            return Response("OK", [b"[READ-WRITE] SELECT completed"])

    def _matches(self, key, flags):
        if key == "ALL":
            return True
        if key == "UNSEEN":
            return "\\Seen" not in flags
        if key == "SEEN":
            return "\\Seen" in flags
        if key == "FLAGGED":
            return "\\Flagged" in flags
        if key == "RECENT":
            return "\\Recent" in flags
        return True

    async def uid_search(self, *criteria, charset=None):
        self.calls.append(("search", criteria))
        query = " ".join(criteria)

        if query in self.search_results:
            uids = self.search_results[query]
        else:
            uids = [
                uid
                for uid, (flags, _) in sorted(self.messages.items())
                if self._matches(query, flags)
            ]

        data = " ".join(str(uid) for uid in uids).encode()
        async with self._command("search"):
            return Response("OK", [data, b"SEARCH completed"])

    async def uid(self, command, *args):
        self.calls.append((command, args))
        async with self._command(command):
            if command == "fetch":
                return self._fetch(*args)
            if command == "store":
                return self._store(*args)
            return Response("BAD", [b"Unknown command"])

    def _fetch(self, uid_set, items):
        lines = []
        for seq, uid in enumerate((int(u) for u in uid_set.split(",")), start=1):
            if uid not in self.messages:
                continue
            flags, raw = self.messages[uid]

            if "HEADER.FIELDS" in items:
                data = raw.split(b"\r\n\r\n", 1)[0] + b"\r\n\r\n"
                section = "BODY[HEADER.FIELDS (FROM TO CC BCC SUBJECT DATE)]"
            else:
                data = raw
                section = "BODY[]"

            lines.append(
                f"{seq} FETCH (UID {uid} FLAGS ({' '.join(flags)}) "
                f"{section} {{{len(data)}}}".encode()
            )
            lines.append(bytearray(data))
            lines.append(b")")

        lines.append(b"FETCH completed")
        return Response("OK", lines)

    def _store(self, uid, operation, flags_str):
        if self.store_error is not None:
            raise self.store_error
        uid = int(uid)
        if uid in self.fail_store or uid not in self.messages:
            return Response("NO", [b"STORE failed"])

        flags = flags_str.strip("()").split()
        current = self.messages[uid][0]
        for flag in flags:
            if operation == "+FLAGS" and flag not in current:
                current.append(flag)
            elif operation == "-FLAGS" and flag in current:
                current.remove(flag)
        return Response("OK", [b"STORE completed"])

    async def expunge(self):
        self.calls.append(("expunge",))
        async with self._command("expunge"):
            if self.expunge_result != "OK":
                return Response(self.expunge_result, [b"EXPUNGE failed"])
            for uid in [u for u, (flags, _) in self.messages.items() if "\\Deleted" in flags]:
                del self.messages[uid]
            return Response("OK", [b"EXPUNGE completed"])

    async def logout(self):
        self.calls.append(("logout",))
        self.logged_out = True
        return Response("OK", [b"LOGOUT completed"])

    def command_names(self):
        return [call[0] for call in self.calls]


class FakeSMTPClient:
    """Stands in for aiosmtplib.SMTP; sent messages land in ``sent``."""

    def __init__(self, connect_error=None, send_error=None, noop_error=None):
        self.is_connected = False
        self.connect_error = connect_error
        self.send_error = send_error
        self.noop_error = noop_error
        self.connect_calls = 0
        self.quit_calls = 0
        self.sent = []

    async def connect(self):
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        self.is_connected = True

    async def send_message(self, message, recipients=None):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((message, recipients))
        return {}, "250 OK queued"

    async def noop(self):
        if self.noop_error is not None:
            raise self.noop_error
        return 250, "OK"

    async def quit(self):
        self.quit_calls += 1
        self.is_connected = False


class CountingFactory:
    """Client factory that records how often a client was built"""

    def __init__(self, *clients, error=None):
        self.clients = list(clients)
        self.error = error
        self.calls = 0

    def __call__(self, config, timeout):
        self.calls += 1
        if self.error is not None:
            raise self.error
        if len(self.clients) > 1:
            return self.clients.pop(0)
        return self.clients[0]


class ServiceTestHelper:
    """Wires EmailService to fake clients through the connection factories"""

    def __init__(self, config, imap_client, smtp_client):
        self.config = config
        self.imap_factory = CountingFactory(imap_client)
        self.smtp_factory = CountingFactory(smtp_client)

    def connections(self):
        imap_connection = IMAPConnection(
            self.config.imap,
            connect_timeout=self.config.connect_timeout,
            operation_timeout=self.config.operation_timeout,
            client_factory=self.imap_factory,
        )
        smtp_connection = SMTPConnection(
            self.config.smtp,
            connect_timeout=self.config.connect_timeout,
            operation_timeout=self.config.operation_timeout,
            client_factory=self.smtp_factory,
        )
        return {"imap_connection": imap_connection, "smtp_connection": smtp_connection}

    def create_service(self):
        return EmailService(self.config, **self.connections())
