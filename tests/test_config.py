"""
Tests for configuration loading

Tests cover:
- Env file discovery and parsing
- Required key validation
- Typed config building
"""
import os

import pytest

from mailctl.utils.config import (
    build_email_config,
    find_env_file,
    load_config,
    load_env,
    validate_env,
)
from mailctl.utils.errors import InvalidConfigError, MissingConfigError

from .test_helpers import ConfigTestHelper


class TestLoadEnv:
    """Tests for reading the env file"""

    def test_missing_file_raises_config_not_found(self, tmp_path):
        with pytest.raises(MissingConfigError) as exc_info:
            load_env(tmp_path / "missing.env")

        assert exc_info.value.code == "CONFIG_NOT_FOUND"

    def test_pairs_are_copied_into_environment(self, tmp_path):
        env_file = ConfigTestHelper.write_env_file(
            tmp_path / ".env", EMAIL_PASS="pa=ss"
        )

        values = load_env(env_file)

        assert values["SMTP_HOST"] == "smtp.example.com"
        assert os.environ["EMAIL_PASS"] == "pa=ss"

    def test_existing_environment_wins_over_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SMTP_HOST", "smtp.shell.example.com")
        env_file = ConfigTestHelper.write_env_file(tmp_path / ".env")

        values = load_env(env_file)

        assert values["SMTP_HOST"] == "smtp.example.com"
        assert os.environ["SMTP_HOST"] == "smtp.shell.example.com"
        assert os.environ["IMAP_HOST"] == values["IMAP_HOST"]

    def test_comments_and_blank_lines_are_ignored(self, tmp_path):
        env_file = ConfigTestHelper.write_env_file(tmp_path / ".env")

        values = load_env(env_file)

        assert all(not key.startswith("#") for key in values)
        assert len(values) == 6

    def test_cwd_env_file_is_found(self, isolated_env):
        ConfigTestHelper.write_env_file(isolated_env / ".env")

        assert find_env_file() is not None

    def test_env_file_variable_takes_precedence(self, tmp_path, monkeypatch):
        custom = ConfigTestHelper.write_env_file(tmp_path / "custom.env")
        monkeypatch.setenv("MAILCTL_ENV_FILE", str(custom))

        assert find_env_file() == custom


class TestValidateEnv:
    """Tests for required key validation"""

    def test_missing_keys_are_listed_in_order(self, monkeypatch):
        monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
        monkeypatch.setenv("EMAIL_USER", "me@example.com")

        with pytest.raises(MissingConfigError) as exc_info:
            validate_env()

        assert exc_info.value.details["missing"] == [
            "SMTP_PORT",
            "EMAIL_PASS",
            "IMAP_HOST",
            "IMAP_PORT",
        ]

    def test_complete_environment_passes(self, tmp_path):
        load_env(ConfigTestHelper.write_env_file(tmp_path / ".env"))

        validate_env()


class TestBuildEmailConfig:
    """Tests for the typed configuration"""

    def test_defaults(self, tmp_path):
        config = load_config(ConfigTestHelper.write_env_file(tmp_path / ".env"))

        assert config.smtp.port == 587
        assert config.smtp.secure is False
        assert config.imap.tls is True
        assert config.imap.mark_seen is False
        assert config.connect_timeout == 15.0
        assert config.operation_timeout == 30.0

    def test_only_literal_true_enables_smtp_secure(self, tmp_path):
        config = load_config(
            ConfigTestHelper.write_env_file(tmp_path / ".env", SMTP_SECURE="yes")
        )
        assert config.smtp.secure is False

        config = load_config(
            ConfigTestHelper.write_env_file(tmp_path / ".env", SMTP_SECURE="true")
        )
        assert config.smtp.secure is True

    def test_imap_tls_disabled_only_by_false(self, tmp_path):
        config = load_config(
            ConfigTestHelper.write_env_file(tmp_path / ".env", IMAP_TLS="false")
        )

        assert config.imap.tls is False

    def test_non_numeric_port_is_invalid(self, tmp_path):
        load_env(ConfigTestHelper.write_env_file(tmp_path / ".env", SMTP_PORT="abc"))

        with pytest.raises(InvalidConfigError) as exc_info:
            build_email_config()

        assert "smtp.port" in exc_info.value.details["fields"]

    def test_password_not_in_repr(self, tmp_path):
        config = load_config(ConfigTestHelper.write_env_file(tmp_path / ".env"))

        assert "secret" not in repr(config)
