"""Centralized error handling module."""

from enum import Enum
from typing import Any, Dict, Optional

from mailctl.utils.logging import get_logger

_logger = None


def _get_logger():
    """Get logger with lazy initialisation."""
    global _logger
    if _logger is None:
        _logger = get_logger(__name__)
    return _logger


## Error Categories


class ErrorCategory(Enum):
    """Categories of errors for better handling."""

    NETWORK = "network"
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    FILE_SYSTEM = "file_system"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


## Custom Exceptions


class MailctlError(Exception):
    """Base exception for all mailctl errors."""

    category = ErrorCategory.UNKNOWN
    code = "UNKNOWN_ERROR"
    user_message = "An error occurred"

    def __init__(
        self,
        message: str | None = None,
        details: Dict[str, Any] | None = None,
        code: str | None = None,
    ):
        """Initialise MailctlError with optional message, details and code."""
        self.message = message or self.user_message
        self.details = details or {}
        if code is not None:
            self.code = code
        super().__init__(self.message)

    @property
    def cause(self) -> Optional[BaseException]:
        """The underlying exception, when this error wraps one."""
        return self.__cause__

    def to_dict(self) -> Dict[str, Any]:
        """Convert error details to a dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "category": self.category.value,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


def wrap_error(error_cls, message: str, cause: BaseException, **details):
    """Build ``error_cls`` carrying ``cause`` for diagnostics.

    The caller raises the result with ``from cause`` so the chain is kept.
    """
    details.setdefault("cause", str(cause) or cause.__class__.__name__)
    return error_cls(message, details=details)


## Network Errors


class NetworkError(MailctlError):
    """Base exception for network-related errors."""

    category = ErrorCategory.NETWORK
    code = "NETWORK_ERROR"
    user_message = "A network error occurred"


class IMAPConnectError(NetworkError):
    """Exception for IMAP connection failures."""

    code = "IMAP_CONNECT_FAILED"
    user_message = "Failed to connect to IMAP server"


class IMAPError(NetworkError):
    """Exception for IMAP commands rejected by the server."""

    code = "IMAP_ERROR"
    user_message = "IMAP operation failed"


class SMTPInitError(NetworkError):
    """Exception for SMTP connection initialisation failures."""

    code = "SMTP_INIT_FAILED"
    user_message = "Failed to initialize SMTP connection"


class NetworkTimeoutError(NetworkError):
    """Exception for network timeout errors."""

    code = "TIMEOUT"
    user_message = "The connection timed out"


## Operation Errors


class EmailOperationError(NetworkError):
    """Base exception for failed mailbox or transport operations."""

    code = "EMAIL_OPERATION_FAILED"
    user_message = "Email operation failed"


class SendEmailError(EmailOperationError):
    code = "SEND_EMAIL_FAILED"
    user_message = "Failed to send email"


class ReadEmailsError(EmailOperationError):
    code = "READ_EMAILS_FAILED"
    user_message = "Failed to read emails"


class GetEmailError(EmailOperationError):
    code = "GET_EMAIL_FAILED"
    user_message = "Failed to get email"


class DeleteEmailError(EmailOperationError):
    code = "DELETE_EMAIL_FAILED"
    user_message = "Failed to delete email"


class MarkEmailError(EmailOperationError):
    code = "MARK_EMAIL_FAILED"
    user_message = "Failed to update email read status"


class SearchError(EmailOperationError):
    code = "SEARCH_FAILED"
    user_message = "Email search failed"


class StatsError(EmailOperationError):
    code = "STATS_FAILED"
    user_message = "Failed to get email statistics"


## Authentication Errors


class AuthenticationError(MailctlError):
    """Base exception for authentication-related errors."""

    category = ErrorCategory.AUTHENTICATION
    code = "AUTH_ERROR"
    user_message = "An authentication error occurred"


class InvalidCredentialsError(AuthenticationError):
    """Exception for invalid login credentials."""

    code = "AUTH_FAILED"
    user_message = "Invalid email or password"


## Not Found Errors


class EmailNotFoundError(MailctlError):
    """Exception when an email is not found in the mailbox."""

    category = ErrorCategory.NOT_FOUND
    code = "EMAIL_NOT_FOUND"
    user_message = "Email not found"


## Validation Errors


class ValidationError(MailctlError):
    """Base exception for validation-related errors."""

    category = ErrorCategory.VALIDATION
    code = "VALIDATION_ERROR"
    user_message = "Invalid input"


class InvalidEmailAddressError(ValidationError):
    """Exception for invalid recipient addresses."""

    code = "INVALID_EMAIL_ADDRESS"
    user_message = "Invalid email addresses"


class MissingSubjectError(ValidationError):
    code = "MISSING_SUBJECT"
    user_message = "Subject is required"


class MissingBodyError(ValidationError):
    code = "MISSING_BODY"
    user_message = "Email body is required"


class MissingReplyBodyError(ValidationError):
    code = "MISSING_REPLY_BODY"
    user_message = "Reply body is required"


class NoAttachmentsError(ValidationError):
    code = "NO_ATTACHMENTS"
    user_message = "At least one attachment is required"


class NoRecipientsError(ValidationError):
    code = "NO_RECIPIENTS"
    user_message = "Recipients list cannot be empty"


class NoEmailsError(ValidationError):
    code = "NO_EMAILS"
    user_message = "Emails list cannot be empty"


class InvalidCountError(ValidationError):
    code = "INVALID_COUNT"
    user_message = "Count must be between 1 and 1000"


class InvalidPageError(ValidationError):
    code = "INVALID_PAGE"
    user_message = "Page must be >= 1"


class InvalidLimitError(ValidationError):
    code = "INVALID_LIMIT"
    user_message = "Limit must be between 1 and 100"


class MissingEmailIdError(ValidationError):
    code = "MISSING_EMAIL_ID"
    user_message = "Email ID is required"


class InvalidScheduleDateError(ValidationError):
    code = "INVALID_SCHEDULE_DATE"
    user_message = "Schedule date must be in the future"


class InvalidEmailError(ValidationError):
    """Exception for an invalid contact email address."""

    code = "INVALID_EMAIL"
    user_message = "Valid email address is required"


class MissingNameError(ValidationError):
    code = "MISSING_NAME"
    user_message = "Contact name is required"


class MissingContactIdError(ValidationError):
    code = "MISSING_CONTACT_ID"
    user_message = "Contact ID is required"


class InvalidContactFieldError(ValidationError):
    code = "INVALID_CONTACT_FIELD"
    user_message = "Unknown contact field"


class MissingPasswordError(ValidationError):
    code = "MISSING_PASSWORD"
    user_message = "Password is required"


## File System Errors


class FileSystemError(MailctlError):
    """Base exception for file system-related errors."""

    category = ErrorCategory.FILE_SYSTEM
    code = "FILE_SYSTEM_ERROR"
    user_message = "A file system error occurred"


## Configuration Errors


class ConfigurationError(MailctlError):
    """Base exception for configuration-related errors."""

    category = ErrorCategory.CONFIGURATION
    code = "CONFIG_ERROR"
    user_message = "A configuration error occurred"


class MissingConfigError(ConfigurationError):
    """Exception for a missing config file or missing required keys."""

    code = "MISSING_CONFIG"
    user_message = "Missing configuration settings"


class InvalidConfigError(ConfigurationError):
    """Exception for invalid configuration settings."""

    code = "INVALID_CONFIG"
    user_message = "Invalid configuration settings"


## Error Handler


class ErrorHandler:
    """Centralized error handling and logging."""

    @staticmethod
    def handle(
        error: Exception, context: str = "", log_traceback: bool = True
    ) -> Dict[str, Any]:
        """Handle errors with logging and user-friendly message."""
        if isinstance(error, MailctlError):
            _get_logger().error(
                f"{context}: {error.message}", extra={"details": error.details}
            )
            if log_traceback:
                _get_logger().exception(error)
            return error.to_dict()
        else:
            _get_logger().error(f"{context}: {str(error)}")
            if log_traceback:
                _get_logger().exception(error)
            return {
                "error_type": "UnknownError",
                "category": ErrorCategory.UNKNOWN.value,
                "code": MailctlError.code,
                "message": str(error),
                "details": {"context": context},
            }


## Utility Functions


def format_error_message(error: Exception) -> str:
    """Format an error message for display."""
    if isinstance(error, MailctlError):
        return error.message
    else:
        return "An unexpected error occurred - check logs for details."
