"""Email validation utilities."""

import re
from typing import List, Sequence, Union

from mailctl.utils.errors import InvalidEmailAddressError

# local@domain.tld, no whitespace and exactly one @
ADDRESS_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class EmailValidator:
    """Validate email addresses and recipient lists"""

    @staticmethod
    def is_valid_email(email_address: str) -> bool:
        """Validate email address shape"""
        if not email_address or not isinstance(email_address, str):
            return False

        return bool(ADDRESS_PATTERN.match(email_address))

    @staticmethod
    def normalize_recipients(recipients: Union[str, Sequence[str]]) -> List[str]:
        """Return recipients as a list, accepting a single address string."""
        if recipients is None:
            return []
        if isinstance(recipients, str):
            return [recipients]
        return list(recipients)

    @staticmethod
    def validate_recipients(recipients: Union[str, Sequence[str]]) -> List[str]:
        """Check every recipient address.

        Returns:
            The recipients as a list

        Raises:
            InvalidEmailAddressError: If any address is malformed, or none given
        """
        emails = EmailValidator.normalize_recipients(recipients)
        invalid = [email for email in emails if not EmailValidator.is_valid_email(email)]

        if invalid or not emails:
            raise InvalidEmailAddressError(
                "Invalid email addresses",
                details={"invalid_emails": invalid},
            )

        return emails
