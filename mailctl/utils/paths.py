"""Centralized path definitions for mailctl.

This module provides a single source of truth for all application paths.
The base directory can be moved with the ``MAILCTL_HOME`` environment
variable.
"""

import os
from pathlib import Path

# Base application directory
MAILCTL_DIR = Path(os.environ.get("MAILCTL_HOME", Path.home() / ".mailctl"))

# Subdirectories
LOGS_DIR = MAILCTL_DIR / "logs"

# Specific files
USER_ENV_PATH = MAILCTL_DIR / ".env"
CWD_ENV_PATH = Path(".env")
