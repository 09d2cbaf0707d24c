"""IMAP connection management - handles connection setup and cleanup."""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import aioimaplib

from mailctl.utils.config import IMAPConfig
from mailctl.utils.errors import (
    IMAPConnectError,
    InvalidCredentialsError,
    MailctlError,
    NetworkTimeoutError,
    wrap_error,
)
from mailctl.utils.logging import async_log_call, get_logger

from ..constants import IMAPResponse, Timeouts

logger = get_logger(__name__)

ClientFactory = Callable[[IMAPConfig, float], aioimaplib.IMAP4]


def default_client_factory(config: IMAPConfig, timeout: float) -> aioimaplib.IMAP4:
    """Create an (unconnected) aioimaplib client for the configured server."""
    if config.tls:
        return aioimaplib.IMAP4_SSL(host=config.host, port=config.port, timeout=timeout)
    return aioimaplib.IMAP4(host=config.host, port=config.port, timeout=timeout)


class ConnectionState(Enum):
    """Lifecycle of the memoized IMAP connection."""

    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"


@dataclass
class ConnectionStats:
    """Tracks IMAP connection metrics."""

    connect_attempts: int = 0
    connections_created: int = 0
    connect_failures: int = 0
    last_connect_duration: Optional[float] = None


class IMAPConnection:
    """Owns one IMAP connection for the lifetime of a service.

    The connection is opened lazily. While an attempt is in flight every
    caller awaits the same task, so concurrent first use never opens a
    second connection. A failed attempt leaves the state FAILED and the
    next call starts a fresh attempt; nothing is retried automatically.
    """

    def __init__(
        self,
        config: IMAPConfig,
        connect_timeout: float = 15.0,
        operation_timeout: float = 30.0,
        client_factory: Optional[ClientFactory] = None,
    ):
        """Initialise IMAP connection.

        Args:
            config: IMAP account settings
            connect_timeout: Seconds allowed for greeting and login
            operation_timeout: Seconds allowed for each IMAP command
            client_factory: Builds the underlying client (tests inject fakes)
        """
        self.config = config
        self.connect_timeout = connect_timeout
        self.operation_timeout = operation_timeout
        self._client_factory = client_factory or default_client_factory
        self._client: Optional[aioimaplib.IMAP4] = None
        self._state = ConnectionState.IDLE
        self._connect_task: Optional[asyncio.Task] = None
        self._stats = ConnectionStats()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.READY and self._client is not None

    def get_stats(self) -> ConnectionStats:
        """Get current connection statistics."""
        return self._stats

    async def get_client(self) -> aioimaplib.IMAP4:
        """Get the active IMAP client, connecting on first use.

        Raises:
            NetworkTimeoutError: If greeting or login exceed the connect timeout
            InvalidCredentialsError: If the server rejects the login
            IMAPConnectError: If the connection fails for any other reason
        """
        if self.is_connected:
            return self._client

        if self._connect_task is None:
            self._state = ConnectionState.CONNECTING
            self._connect_task = asyncio.ensure_future(self._connect())

        # Shielded so one cancelled caller does not abort the shared attempt
        return await asyncio.shield(self._connect_task)

    async def _connect(self) -> aioimaplib.IMAP4:
        """Open and authenticate a new connection, updating the state."""
        start_time = time.time()
        self._stats.connect_attempts += 1

        logger.info(
            "Connecting to IMAP server",
            extra={"server": self.config.host, "port": self.config.port},
        )

        try:
            client = await self._open_and_login()

        except BaseException:
            self._state = ConnectionState.FAILED
            self._client = None
            self._stats.connect_failures += 1
            raise

        else:
            self._client = client
            self._state = ConnectionState.READY
            self._stats.connections_created += 1
            self._stats.last_connect_duration = time.time() - start_time

            logger.info(
                "IMAP connection established",
                extra={
                    "server": self.config.host,
                    "duration_seconds": round(self._stats.last_connect_duration, 2),
                },
            )
            return client

        finally:
            self._connect_task = None

    async def _open_and_login(self) -> aioimaplib.IMAP4:
        details = {"server": self.config.host, "port": self.config.port}

        try:
            client = self._client_factory(self.config, self.connect_timeout)

            await asyncio.wait_for(
                client.wait_hello_from_server(), timeout=self.connect_timeout
            )
            response = await asyncio.wait_for(
                client.login(self.config.user, self.config.password),
                timeout=self.connect_timeout,
            )

        except asyncio.TimeoutError as e:
            logger.error(
                f"IMAP connection timed out after {self.connect_timeout:.0f}s",
                extra=details,
            )
            raise NetworkTimeoutError("IMAP connection timeout", details=details) from e

        except MailctlError:
            raise

        except Exception as e:
            logger.error("IMAP connection failed", extra={**details, "error": str(e)})
            raise wrap_error(
                IMAPConnectError, "Failed to connect to IMAP server", e, **details
            ) from e

        if response.result != IMAPResponse.OK:
            server_text = _response_text(response)
            logger.warning(
                "IMAP authentication failed",
                extra={**details, "response": server_text},
            )
            raise InvalidCredentialsError(
                "IMAP authentication failed",
                details={**details, "response": server_text},
            )

        return client

    @async_log_call
    async def close(self) -> None:
        """Log out and drop the connection; errors are logged and discarded.

        An attempt still in flight is cancelled first, so it cannot leave
        a logged-in client behind after close returns.
        """
        task = self._connect_task
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        client, self._client = self._client, None
        self._state = ConnectionState.IDLE

        if client is None:
            return

        try:
            await asyncio.wait_for(client.logout(), timeout=Timeouts.IMAP_LOGOUT)
            logger.debug("IMAP connection closed successfully")

        except Exception as e:
            logger.debug(f"Error closing IMAP connection: {str(e)}")


def _response_text(response) -> str:
    """First line of an IMAP response as text."""
    if not response.lines:
        return "No response"
    line = response.lines[0]
    if isinstance(line, (bytes, bytearray)):
        return bytes(line).decode("utf-8", errors="replace")
    return str(line)
