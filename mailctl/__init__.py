"""mailctl - command-line email and contact management."""

__version__ = "0.1.0"
