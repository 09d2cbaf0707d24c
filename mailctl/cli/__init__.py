"""Command-line interface for mailctl."""
