"""Allow ``python -m mailctl``."""

from mailctl.cli.cli import run

run()
