"""Factory for EmailService with resource lifecycle management."""

from contextlib import asynccontextmanager
from typing import Optional

from mailctl.utils.config import EmailConfig, load_config
from mailctl.utils.logging import get_logger

from .email_service import EmailService

logger = get_logger(__name__)


class EmailServiceFactory:
    """Factory for creating EmailService with managed connections."""

    @classmethod
    @asynccontextmanager
    async def create(cls, config: Optional[EmailConfig] = None, **overrides):
        """Create a service and always close it afterwards.

        Args:
            config: Email configuration (loaded from the env file if None)
            overrides: Passed to EmailService (e.g. injected connections)

        Yields:
            EmailService instance ready to use
        """
        if config is None:
            config = load_config()

        service = EmailService(config, **overrides)
        logger.debug("Created EmailService")

        try:
            yield service
        finally:
            await service.close()
