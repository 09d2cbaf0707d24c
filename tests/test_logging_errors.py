"""
Tests for logging helpers and the error taxonomy
"""
import json
import logging

import pytest

from mailctl.utils.errors import (
    ErrorCategory,
    ErrorHandler,
    InvalidEmailAddressError,
    MailctlError,
    NetworkTimeoutError,
    SendEmailError,
    ValidationError,
    format_error_message,
    wrap_error,
)
from mailctl.utils.logging import JSONFormatter, SensitiveDataMasker, async_log_call


class TestSensitiveDataMasker:
    """Tests for log masking"""

    def test_password_is_redacted(self):
        masker = SensitiveDataMasker()

        assert masker.mask_string("password=hunter2") == "password=[REDACTED]"

    def test_email_is_partially_masked(self):
        masker = SensitiveDataMasker()

        assert masker.mask_string("sent to alice@example.com") == "sent to a***@e***"

    def test_sensitive_keys_in_dicts(self):
        masker = SensitiveDataMasker()

        masked = masker.mask_dict({"password": "hunter2", "count": 3})

        assert masked == {"password": "[REDACTED]", "count": 3}


class TestJSONFormatter:
    """Tests for structured log lines"""

    def test_extra_fields_are_included(self):
        record = logging.makeLogRecord(
            {"msg": "Email sent", "levelname": "INFO", "recipients": 2}
        )

        entry = json.loads(JSONFormatter().format(record))

        assert entry["message"] == "Email sent"
        assert entry["context"] == {"recipients": 2}


class TestErrors:
    """Tests for the error taxonomy"""

    def test_default_message_and_code(self):
        error = InvalidEmailAddressError()

        assert error.message == "Invalid email addresses"
        assert error.code == "INVALID_EMAIL_ADDRESS"
        assert error.category is ErrorCategory.VALIDATION
        assert isinstance(error, ValidationError)

    def test_timeout_is_its_own_kind(self):
        assert NetworkTimeoutError().code == "TIMEOUT"

    def test_wrap_error_keeps_cause(self):
        cause = ConnectionResetError("reset by peer")

        with pytest.raises(SendEmailError) as exc_info:
            try:
                raise cause
            except ConnectionResetError as e:
                raise wrap_error(SendEmailError, "Failed to send email", e) from e

        error = exc_info.value
        assert error.cause is cause
        assert error.details["cause"] == "reset by peer"
        assert error.to_dict()["code"] == "SEND_EMAIL_FAILED"

    def test_format_error_message(self):
        assert format_error_message(MailctlError("Known")) == "Known"
        assert "unexpected" in format_error_message(KeyError("x"))

    def test_handler_reports_unknown_errors(self):
        result = ErrorHandler.handle(KeyError("x"), "testing", log_traceback=False)

        assert result["category"] == "unknown"
        assert result["details"] == {"context": "testing"}


class TestAsyncLogCall:
    """Tests for the logging decorator"""

    @pytest.mark.asyncio
    async def test_result_and_errors_pass_through(self):
        @async_log_call
        async def ok():
            return 42

        @async_log_call
        async def fails():
            raise ValueError("bad")

        assert await ok() == 42
        with pytest.raises(ValueError):
            await fails()
