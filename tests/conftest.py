"""
Shared test fixtures and configuration for pytest
"""
import os
import tempfile

# Keep logs and the user env file out of the real home directory
os.environ["MAILCTL_HOME"] = tempfile.mkdtemp(prefix="mailctl-tests-")

import pytest

from mailctl.core.contacts import ContactService, ContactStore
from mailctl.utils.config import REQUIRED_KEYS

from .test_helpers import (
    ConfigTestHelper,
    FakeIMAPClient,
    FakeSMTPClient,
    ServiceTestHelper,
)

OPTIONAL_KEYS = [
    "SMTP_SECURE",
    "IMAP_TLS",
    "IMAP_MARK_SEEN",
    "CONNECT_TIMEOUT",
    "OPERATION_TIMEOUT",
    "LOG_LEVEL",
    "MAILCTL_ENV_FILE",
]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Start every test without mail settings and outside any ./.env"""
    for key in REQUIRED_KEYS + OPTIONAL_KEYS:
        # setenv first so monkeypatch restores the key even if load_env sets it
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    yield tmp_path


@pytest.fixture
def email_config():
    """Complete email configuration for the test account"""
    return ConfigTestHelper.create_test_config()


@pytest.fixture
def fake_imap():
    """IMAP client fake with three messages in the inbox"""
    return FakeIMAPClient.with_messages(3)


@pytest.fixture
def fake_smtp():
    """SMTP client fake that accepts every message"""
    return FakeSMTPClient()


@pytest.fixture
def service_helper(email_config, fake_imap, fake_smtp):
    """Builds EmailService instances wired to the fakes"""
    return ServiceTestHelper(email_config, fake_imap, fake_smtp)


@pytest.fixture
def service(service_helper):
    """EmailService wired to the IMAP and SMTP fakes"""
    return service_helper.create_service()


@pytest.fixture
def contacts():
    """Contact service over an empty in-memory store"""
    return ContactService(ContactStore())
