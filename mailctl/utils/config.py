"""Configuration loading from a KEY=VALUE env file into typed settings."""

import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import dotenv_values, set_key
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from .errors import FileSystemError, InvalidConfigError, MissingConfigError
from .logging import get_logger, log_call
from .paths import CWD_ENV_PATH, USER_ENV_PATH

logger = get_logger(__name__)

ENV_FILE_VARIABLE = "MAILCTL_ENV_FILE"

REQUIRED_KEYS = [
    "SMTP_HOST",
    "SMTP_PORT",
    "EMAIL_USER",
    "EMAIL_PASS",
    "IMAP_HOST",
    "IMAP_PORT",
]

DEFAULT_CONNECT_TIMEOUT = 15.0
DEFAULT_OPERATION_TIMEOUT = 30.0


class SMTPConfig(BaseModel):
    """Pydantic model for the outbound SMTP account."""

    host: str
    port: int = 587
    secure: bool = False
    user: str
    password: str = Field(repr=False)


class IMAPConfig(BaseModel):
    """Pydantic model for the IMAP mailbox account."""

    host: str
    port: int = 993
    tls: bool = True
    user: str
    password: str = Field(repr=False)
    mark_seen: bool = False


class EmailConfig(BaseModel):
    """Pydantic model for the complete email service configuration."""

    smtp: SMTPConfig
    imap: IMAPConfig
    connect_timeout: float = Field(default=DEFAULT_CONNECT_TIMEOUT, gt=0)
    operation_timeout: float = Field(default=DEFAULT_OPERATION_TIMEOUT, gt=0)
    log_level: str = "WARNING"


def find_env_file(path: Optional[Path] = None) -> Optional[Path]:
    """Locate the env file: explicit path, $MAILCTL_ENV_FILE, ./.env, ~/.mailctl/.env."""

    if path is not None:
        return Path(path) if Path(path).is_file() else None

    candidates = []
    if os.environ.get(ENV_FILE_VARIABLE):
        candidates.append(Path(os.environ[ENV_FILE_VARIABLE]))
    candidates.extend([CWD_ENV_PATH, USER_ENV_PATH])

    for candidate in candidates:
        if candidate.is_file():
            return candidate

    return None


@log_call
def load_env(path: Optional[Path] = None) -> Dict[str, str]:
    """Read KEY=VALUE pairs from the env file into the process environment.

    Variables already set in the environment win over the file.

    Returns:
        The pairs read from the file.

    Raises:
        MissingConfigError: If no env file can be found
    """
    env_path = find_env_file(path)
    if env_path is None:
        raise MissingConfigError(
            ".env file not found",
            details={"searched": str(path) if path else ENV_FILE_VARIABLE},
            code="CONFIG_NOT_FOUND",
        )

    values = {
        key: value.strip()
        for key, value in dotenv_values(env_path).items()
        if key and value is not None
    }
    for key, value in values.items():
        os.environ.setdefault(key, value)

    logger.debug(f"Loaded {len(values)} settings from {env_path}")
    return values


def missing_keys() -> List[str]:
    """Return the required keys that are absent or empty, in declaration order."""
    return [key for key in REQUIRED_KEYS if not os.environ.get(key)]


def validate_env() -> None:
    """Ensure every required key is present in the environment.

    Raises:
        MissingConfigError: With ``details["missing"]`` listing the absent keys
    """
    missing = missing_keys()
    if missing:
        raise MissingConfigError(
            "Missing required environment variables: " + ", ".join(missing),
            details={"missing": missing},
        )


def _flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() == "true"


def build_email_config() -> EmailConfig:
    """Build the typed configuration from the process environment.

    Raises:
        InvalidConfigError: If a port or timeout is not a number
    """
    user = os.environ.get("EMAIL_USER", "")
    password = os.environ.get("EMAIL_PASS", "")

    try:
        return EmailConfig(
            smtp=dict(
                host=os.environ.get("SMTP_HOST", ""),
                port=os.environ.get("SMTP_PORT", "587"),
                # Only the literal "true" enables implicit TLS
                secure=_flag("SMTP_SECURE", False),
                user=user,
                password=password,
            ),
            imap=dict(
                host=os.environ.get("IMAP_HOST", ""),
                port=os.environ.get("IMAP_PORT", "993"),
                # TLS stays on unless explicitly disabled
                tls=os.environ.get("IMAP_TLS", "").strip().lower() != "false",
                user=user,
                password=password,
                mark_seen=_flag("IMAP_MARK_SEEN", False),
            ),
            connect_timeout=os.environ.get("CONNECT_TIMEOUT") or DEFAULT_CONNECT_TIMEOUT,
            operation_timeout=os.environ.get("OPERATION_TIMEOUT")
            or DEFAULT_OPERATION_TIMEOUT,
            log_level=os.environ.get("LOG_LEVEL") or "WARNING",
        )

    except PydanticValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        logger.error(f"Invalid configuration values: {fields}")
        raise InvalidConfigError(
            "Configuration values are invalid: " + ", ".join(fields),
            details={"fields": fields},
        ) from e


def load_config(path: Optional[Path] = None) -> EmailConfig:
    """Load, validate and build the email configuration in one step."""
    load_env(path)
    validate_env()
    config = build_email_config()
    logger.info(
        "Configuration loaded",
        extra={"smtp_host": config.smtp.host, "imap_host": config.imap.host},
    )
    return config


## Account Setup

# Keys written by email-setup, in file order
SETUP_KEYS = [
    "EMAIL_USER",
    "EMAIL_PASS",
    "SMTP_HOST",
    "SMTP_PORT",
    "IMAP_HOST",
    "IMAP_PORT",
    "SMTP_SECURE",
    "IMAP_TLS",
]

_OUTLOOK = {
    "SMTP_HOST": "smtp-mail.outlook.com",
    "SMTP_PORT": "587",
    "IMAP_HOST": "outlook.office365.com",
    "IMAP_PORT": "993",
}

PROVIDER_SETTINGS: Dict[str, Dict[str, str]] = {
    "gmail.com": {
        "SMTP_HOST": "smtp.gmail.com",
        "SMTP_PORT": "587",
        "IMAP_HOST": "imap.gmail.com",
        "IMAP_PORT": "993",
    },
    "outlook.com": _OUTLOOK,
    "hotmail.com": _OUTLOOK,
    "yahoo.com": {
        "SMTP_HOST": "smtp.mail.yahoo.com",
        "SMTP_PORT": "587",
        "IMAP_HOST": "imap.mail.yahoo.com",
        "IMAP_PORT": "993",
    },
    "icloud.com": {
        "SMTP_HOST": "smtp.mail.me.com",
        "SMTP_PORT": "587",
        "IMAP_HOST": "imap.mail.me.com",
        "IMAP_PORT": "993",
    },
}


def detect_provider(email: str) -> Optional[Dict[str, str]]:
    """Return known server settings for the address's domain, if any."""
    _, _, domain = (email or "").strip().rpartition("@")
    settings = PROVIDER_SETTINGS.get(domain.lower())
    return dict(settings) if settings else None


@log_call
def save_env_file(values: Dict[str, str], path: Path) -> Path:
    """Write settings into an env file, keeping any other keys already there.

    Existing keys are updated in place and new keys are appended. The file
    holds a password, so it is created readable by the owner only.

    Raises:
        FileSystemError: If the file or its directory cannot be written
    """
    path = Path(path)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch(mode=0o600, exist_ok=True)

        for key in SETUP_KEYS:
            if key in values:
                set_key(path, key, str(values[key]))

    except OSError as e:
        logger.error(f"Failed to write env file {path}: {e}")
        raise FileSystemError(
            f"Failed to write configuration to {path}", details={"path": str(path)}
        ) from e

    logger.info("Configuration saved", extra={"path": str(path)})
    return path
