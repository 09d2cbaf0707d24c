"""SMTP connection management - handles transport creation, verification and cleanup."""

import asyncio
import time
from dataclasses import dataclass
from email.message import Message
from typing import Callable, List, Optional

import aiosmtplib

from mailctl.utils.config import SMTPConfig
from mailctl.utils.errors import (
    InvalidCredentialsError,
    NetworkTimeoutError,
    SMTPInitError,
    wrap_error,
)
from mailctl.utils.logging import async_log_call, get_logger

from ..constants import Timeouts

logger = get_logger(__name__)

ClientFactory = Callable[[SMTPConfig, float], aiosmtplib.SMTP]


def default_client_factory(config: SMTPConfig, timeout: float) -> aiosmtplib.SMTP:
    """Create an aiosmtplib client; nothing is sent to the server yet.

    Implicit TLS when ``secure`` is set, otherwise STARTTLS is used when
    the server offers it.
    """
    return aiosmtplib.SMTP(
        hostname=config.host,
        port=config.port,
        username=config.user,
        password=config.password,
        use_tls=config.secure,
        start_tls=False if config.secure else None,
        timeout=timeout,
    )


@dataclass
class SMTPConnectionStats:
    """Tracks SMTP connection metrics."""

    connections_created: int = 0
    emails_sent: int = 0
    send_failures: int = 0
    total_send_time: float = 0.0

    def record_send(self, duration: float, success: bool = True) -> None:
        self.total_send_time += duration

        if success:
            self.emails_sent += 1
        else:
            self.send_failures += 1


class SMTPConnection:
    """Owns the memoized SMTP transport of one service.

    ``get_client`` only builds the transport object. The server is first
    contacted by ``verify`` or by the first send.
    """

    def __init__(
        self,
        config: SMTPConfig,
        connect_timeout: float = 15.0,
        operation_timeout: float = 30.0,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.config = config
        self.connect_timeout = connect_timeout
        self.operation_timeout = operation_timeout
        self._client_factory = client_factory or default_client_factory
        self._client: Optional[aiosmtplib.SMTP] = None
        self._lock = asyncio.Lock()
        self._stats = SMTPConnectionStats()

    def get_stats(self) -> SMTPConnectionStats:
        return self._stats

    def get_client(self) -> aiosmtplib.SMTP:
        """Get the transport, creating it on first use without connecting."""
        if self._client is None:
            self._client = self._client_factory(self.config, self.connect_timeout)
            logger.debug(
                "Created SMTP transport",
                extra={"server": self.config.host, "port": self.config.port},
            )
        return self._client

    async def _ensure_connection(self) -> aiosmtplib.SMTP:
        """Connect (and log in) if the transport is not connected yet.

        Raises:
            NetworkTimeoutError: If connecting exceeds the connect timeout
            InvalidCredentialsError: If the server rejects the login
            SMTPInitError: If connecting fails for any other reason
        """
        async with self._lock:
            client = self.get_client()
            if client.is_connected:
                return client

            details = {"server": self.config.host, "port": self.config.port}
            start_time = time.time()

            logger.info("Connecting to SMTP server", extra=details)

            try:
                await asyncio.wait_for(client.connect(), timeout=self.connect_timeout)

            except (asyncio.TimeoutError, aiosmtplib.SMTPTimeoutError) as e:
                logger.error(
                    f"SMTP connection timed out after {time.time() - start_time:.2f}s"
                )
                raise NetworkTimeoutError(
                    "SMTP connection timeout", details=details
                ) from e

            except aiosmtplib.SMTPAuthenticationError as e:
                logger.warning("SMTP authentication failed", extra=details)
                raise InvalidCredentialsError(
                    "SMTP authentication failed. Please verify your credentials.",
                    details=details,
                ) from e

            except Exception as e:
                logger.error(
                    "Failed to connect to SMTP server",
                    extra={**details, "error": str(e)},
                )
                raise wrap_error(
                    SMTPInitError, f"Failed to connect to SMTP server: {e}", e, **details
                ) from e

            self._stats.connections_created += 1
            logger.info(
                "SMTP connection established",
                extra={
                    "server": self.config.host,
                    "duration_seconds": round(time.time() - start_time, 2),
                },
            )
            return client

    @async_log_call
    async def verify(self) -> None:
        """Connect and issue a NOOP to prove the transport works.

        Raises:
            NetworkTimeoutError: If the server does not answer in time
            InvalidCredentialsError: If the server rejects the login
            SMTPInitError: If the server cannot be reached or rejects NOOP
        """
        client = await self._ensure_connection()

        try:
            await asyncio.wait_for(client.noop(), timeout=self.operation_timeout)

        except asyncio.TimeoutError as e:
            raise NetworkTimeoutError(
                "SMTP verification timed out", details={"server": self.config.host}
            ) from e

        except Exception as e:
            raise wrap_error(
                SMTPInitError, "SMTP verification failed", e, server=self.config.host
            ) from e

        logger.debug("SMTP transport verified")

    async def send(self, message: Message, recipients: List[str]) -> str:
        """Hand one message to the server.

        Returns:
            The server's final response text

        Raises:
            NetworkTimeoutError: If the send exceeds the operation timeout
            MailctlError: Connection errors from ``_ensure_connection``;
                any other transport failure propagates unchanged
        """
        client = await self._ensure_connection()
        start_time = time.time()

        try:
            _, response = await asyncio.wait_for(
                client.send_message(message, recipients=recipients),
                timeout=self.operation_timeout,
            )

        except asyncio.TimeoutError as e:
            self._stats.record_send(time.time() - start_time, success=False)
            raise NetworkTimeoutError(
                "SMTP send operation timed out",
                details={"recipients": len(recipients)},
            ) from e

        except Exception:
            self._stats.record_send(time.time() - start_time, success=False)
            raise

        self._stats.record_send(time.time() - start_time)
        return str(response)

    @async_log_call
    async def close(self) -> None:
        """Quit the SMTP session if one is open; errors are logged and discarded."""
        async with self._lock:
            client, self._client = self._client, None

            if client is None or not client.is_connected:
                return

            try:
                await asyncio.wait_for(client.quit(), timeout=Timeouts.SMTP_QUIT)
                logger.debug(
                    "SMTP connection closed successfully",
                    extra={"emails_sent": self._stats.emails_sent},
                )

            except Exception as e:
                logger.debug(f"Error closing SMTP connection: {str(e)}")
